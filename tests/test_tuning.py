# tests/test_tuning.py
import pytest
import numpy as np
from mea_ds.analysis.tuning import (
    DIRECTION_SELECTIVE, NON_SELECTIVE, TuningAnalyzer, circular_distance, circular_mean,
    direction_selectivity, normalize_angle, null_direction_index
)
from mea_ds.config import AnalysisConfig
from mea_ds.data.conditions import ConditionAxes
from mea_ds.data.models import ConditionKey, StimulusDesign
from mea_ds.data.parser import ConditionSpikeTable
from mea_ds.exceptions import ConfigurationError, DegenerateConditionWarning

DIRECTIONS = np.arange(0, 360, 45, dtype=float)

def make_table(axes, counts, channel_id='D4'):
    """Builds a table with `counts[d, s, w]` evenly spaced spikes per condition."""
    spikes = {ConditionKey(*key): np.linspace(0.0, 1.0, int(counts[key]))
              for key in np.ndindex(*axes.shape) if counts[key]}
    return ConditionSpikeTable(channel_id, axes, spikes)

@pytest.fixture
def design():
    return StimulusDesign(directions=DIRECTIONS, speeds=[1], duration=2.0, repeats=5)

@pytest.fixture
def axes():
    return ConditionAxes(DIRECTIONS, [1.0], [1.0])

@pytest.fixture
def analyzer(design, axes):
    return TuningAnalyzer(design, axes, AnalysisConfig(rate_threshold=4.0, wavelength_indices=(0,)))


class TestAngles:
    def test_normalize_angle(self):
        assert normalize_angle(-90) == 270.0
        assert normalize_angle(720) == 0.0
        assert normalize_angle(-1e-15) == 0.0

    def test_circular_mean_across_zero(self):
        assert circular_distance(circular_mean([350, 10]), 0.0) < 1e-9

    def test_circular_mean_undefined(self):
        assert circular_mean([]) is None
        assert circular_mean([0, 180]) is None

    def test_circular_distance(self):
        np.testing.assert_allclose(circular_distance([10, 350, 180], 0.0), [10, 10, 180])

    def test_null_direction(self):
        assert null_direction_index(DIRECTIONS, 90.0) == 6

    def test_null_direction_tie_goes_to_lowest_index(self):
        assert null_direction_index(DIRECTIONS, 22.5) == 4

    def test_null_direction_skips_excluded(self):
        assert null_direction_index(DIRECTIONS, 90.0, exclude=[6]) == 5

    def test_null_direction_all_excluded(self):
        assert null_direction_index(DIRECTIONS, 90.0, exclude=range(8)) is None


class TestDirectionSelectivity:
    def test_single_direction(self):
        rates = np.zeros(8); rates[2] = 25.0
        dsi, pref = direction_selectivity(rates, DIRECTIONS)
        assert dsi == pytest.approx(1.0)
        assert pref == pytest.approx(90.0)

    def test_uniform_has_no_preferred_direction(self):
        assert direction_selectivity(np.full(8, 5.0), DIRECTIONS) == (0.0, None)

    def test_zero_rates(self):
        assert direction_selectivity(np.zeros(8), DIRECTIONS) == (0.0, None)

    def test_dsi_bounded(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            dsi, pref = direction_selectivity(rng.exponential(size=8), DIRECTIONS)
            assert 0.0 <= dsi <= 1.0
            assert 0.0 <= pref < 360.0


class TestTuningAnalyzer:
    def test_single_direction_channel_is_selective(self, analyzer, axes):
        counts = np.zeros(axes.shape, dtype=int); counts[2, 0, 0] = 50
        summary = analyzer.analyze(make_table(axes, counts))
        # 50 spikes over 5 repeats of 2 s
        assert summary.rates[2, 0, 0] == pytest.approx(5.0)
        assert summary.dsi[0, 0] == pytest.approx(1.0)
        assert summary.preferred_direction[0, 0] == pytest.approx(90.0)
        assert summary.mean_dsi == pytest.approx(1.0)
        assert summary.canonical_direction == pytest.approx(90.0)
        assert summary.is_direction_selective
        assert summary.label == DIRECTION_SELECTIVE
        assert summary.preferred_indices == (2,)
        assert summary.null_index == 6
        assert summary.warnings == []

    def test_uniform_channel_is_not_selective(self, analyzer, axes):
        summary = analyzer.analyze(make_table(axes, np.full(axes.shape, 50)))
        assert summary.max_rate == pytest.approx(5.0)
        assert summary.mean_dsi == pytest.approx(0.0, abs=1e-12)
        assert not summary.is_direction_selective
        assert summary.label == NON_SELECTIVE
        assert summary.canonical_direction is None
        assert summary.preferred_indices == ()
        assert summary.null_index is None
        assert summary.warnings == []
        assert not summary.degenerate.any()
        assert np.isnan(summary.preferred_direction).all()
        assert summary.pair(0, 0).preferred_direction is None

    def test_null_index_never_in_preferred(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int)
        counts[:, 0, 0] = [10, 10, 30, 10, 10, 10, 20, 10]
        config = AnalysisConfig(n_preferred=2, wavelength_indices=(0,))
        summary = TuningAnalyzer(design, axes, config).analyze(make_table(axes, counts))
        assert summary.canonical_direction == pytest.approx(90.0)
        assert summary.preferred_indices == (2, 6)
        # 270 is preferred, so the nearest remaining direction wins
        assert summary.null_index == 5

    def test_silent_channel_is_degenerate(self, analyzer, axes):
        summary = analyzer.analyze(make_table(axes, np.zeros(axes.shape, dtype=int)))
        assert summary.dsi[0, 0] == 0.0
        assert summary.degenerate[0, 0]
        assert np.isnan(summary.preferred_direction[0, 0])
        assert summary.mean_dsi is None
        assert summary.canonical_direction is None
        assert summary.preferred_indices == ()
        assert summary.null_index is None
        assert not summary.is_direction_selective
        assert len(summary.warnings) == 1
        assert isinstance(summary.warnings[0], DegenerateConditionWarning)
        assert summary.warnings[0].channel_id == 'D4'

    def test_rate_threshold_is_strict(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int); counts[2, 0, 0] = 50
        analyzer = TuningAnalyzer(design, axes, AnalysisConfig(rate_threshold=5.0, wavelength_indices=(0,)))
        summary = analyzer.analyze(make_table(axes, counts))
        assert summary.mean_dsi == pytest.approx(1.0)
        assert not summary.is_direction_selective

    def test_dsi_threshold_is_inclusive(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int); counts[2, 0, 0] = 50
        analyzer = TuningAnalyzer(design, axes, AnalysisConfig(dsi_threshold=1.0, wavelength_indices=(0,)))
        assert analyzer.analyze(make_table(axes, counts)).is_direction_selective

    def test_rates_round_trip_to_counts(self, analyzer, axes, design):
        counts = np.random.default_rng(1).integers(0, 40, size=axes.shape)
        rates = analyzer.rates(make_table(axes, counts))
        np.testing.assert_allclose(rates * design.duration * design.repeats, counts)

    def test_analyze_is_idempotent(self, analyzer, axes):
        counts = np.random.default_rng(2).integers(0, 40, size=axes.shape)
        table = make_table(axes, counts)
        assert analyzer.analyze(table) == analyzer.analyze(table)


class TestDesignatedPairs:
    @pytest.fixture
    def axes(self):
        return ConditionAxes(DIRECTIONS, [1.0], [1.0, 2.0, 3.0])

    @pytest.fixture
    def design(self):
        return StimulusDesign(DIRECTIONS, [1], 1.0, 1)

    def test_canonical_direction_is_circular_mean(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int)
        counts[2, 0, 1] = 20  # 90 deg at wavelength 1
        counts[0, 0, 2] = 20  # 0 deg at wavelength 2
        counts[4, 0, 0] = 20  # not designated
        summary = TuningAnalyzer(design, axes).analyze(make_table(axes, counts))
        assert summary.mean_dsi == pytest.approx(1.0)
        assert summary.canonical_direction == pytest.approx(45.0)
        assert summary.preferred_indices == (0,)
        assert summary.null_index == 5

    def test_degenerate_designated_pair_is_excluded(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int)
        counts[2, 0, 1] = 20
        counts[3, 0, 1] = 20
        summary = TuningAnalyzer(design, axes).analyze(make_table(axes, counts))
        assert summary.mean_dsi == pytest.approx(summary.dsi[0, 1])
        assert summary.canonical_direction == pytest.approx(112.5)
        assert summary.degenerate.tolist() == [[True, False, True]]
        assert {(w.speed_index, w.wavelength_index) for w in summary.warnings} == {(0, 0), (0, 2)}

    def test_n_preferred(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int)
        counts[:, 0, 1] = [1, 2, 9, 3, 0, 0, 0, 0]
        counts[:, 0, 2] = [1, 2, 9, 3, 0, 0, 0, 0]
        analyzer = TuningAnalyzer(design, axes, AnalysisConfig(n_preferred=2))
        assert analyzer.analyze(make_table(axes, counts)).preferred_indices == (2, 3)

    def test_pair_view(self, design, axes):
        counts = np.zeros(axes.shape, dtype=int); counts[2, 0, 1] = 20
        summary = TuningAnalyzer(design, axes).analyze(make_table(axes, counts))
        assert summary.pair(0, 0).degenerate
        pair = summary.pair(0, 1)
        assert pair.preferred_direction == pytest.approx(90.0)
        assert pair.rates[2] == pytest.approx(20.0)


class TestAnalyzerConfiguration:
    @pytest.mark.parametrize("kwargs, match", [
        ({'dsi_threshold': 1.5}, "dsi_threshold"),
        ({'rate_threshold': 0.0}, "rate_threshold"),
        ({'n_preferred': 9, 'wavelength_indices': (0,)}, "n_preferred"),
        ({'speed_index': 1, 'wavelength_indices': (0,)}, "speed_index"),
        ({'wavelength_indices': (0, 1)}, "wavelength_indices"),
    ])
    def test_invalid_config_raises(self, design, axes, kwargs, match):
        with pytest.raises(ConfigurationError, match=match):
            TuningAnalyzer(design, axes, AnalysisConfig(**kwargs))

    def test_invalid_design_raises(self, axes):
        with pytest.raises(ConfigurationError, match="Repeat count"):
            TuningAnalyzer(StimulusDesign(DIRECTIONS, [1], 2.0, 0), axes,
                           AnalysisConfig(wavelength_indices=(0,)))
