# tests/test_pipeline.py
import pytest
import numpy as np
from mea_ds.analysis.pipeline import ChannelPipeline, process_channel
from mea_ds.analysis.tuning import TuningAnalyzer
from mea_ds.config import AnalysisConfig
from mea_ds.data.conditions import ConditionAxes, ConditionIndex
from mea_ds.data.parser import ConditionParser
from mea_ds.datasets import generate_recording

@pytest.fixture(scope="module")
def experiment():
    return generate_recording(n_tuned=3, n_untuned=2, n_silent=1, repeats=3, seed=7)

@pytest.fixture
def pipeline(experiment):
    index = ConditionIndex(experiment.trials)
    parser = ConditionParser(experiment.design, experiment.windows, index)
    analyzer = TuningAnalyzer(experiment.design, index.axes)
    return ChannelPipeline(parser, analyzer)

def neural_channels(experiment):
    return experiment.recording.channels[2:]

class TestChannelPipeline:
    def test_sequential_run(self, pipeline, experiment):
        channels = neural_channels(experiment)
        outputs = pipeline.run(channels, show_progress=False)
        assert [table.channel_id for table, _ in outputs] == [ch.channel_id for ch in channels]
        assert all(table.channel_id == summary.channel_id for table, summary in outputs)

    def test_process_channel_matches_components(self, pipeline, experiment):
        channel = neural_channels(experiment)[0]
        table, summary = process_channel((pipeline.parser, pipeline.analyzer, channel))
        assert table == pipeline.parser.parse(channel)
        assert summary == pipeline.analyzer.analyze(table)

    def test_parallel_matches_sequential(self, pipeline, experiment):
        """Worker processes produce the same results, in input order."""
        channels = neural_channels(experiment)
        sequential = pipeline.run(channels, n_workers=1, show_progress=False)
        parallel = pipeline.run(channels, n_workers=2, show_progress=False)
        assert len(parallel) == len(sequential)
        for (t1, s1), (t2, s2) in zip(sequential, parallel):
            assert t1 == t2
            assert s1 == s2
            assert t2.axes.directions.flags.writeable is False
            for _, arr in t2.items():
                assert arr.flags.writeable is False

    def test_no_channels(self, pipeline):
        assert pipeline.run([], show_progress=False) == []

    def test_mismatched_axes_raise(self, pipeline, experiment):
        axes = ConditionAxes(np.arange(0, 360, 90), [1.0], [1.0, 2.0, 3.0])
        analyzer = TuningAnalyzer(experiment.design, axes, AnalysisConfig())
        with pytest.raises(ValueError, match="different condition axes"):
            ChannelPipeline(pipeline.parser, analyzer)
