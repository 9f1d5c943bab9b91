# tests/test_config.py
import json
import pytest
from mea_ds.config import AnalysisConfig, PipelineConfig, SyncConfig, load_config, save_config

class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.sync.analog_channels == (0, 1)
        assert config.analysis.rate_threshold == 4.0
        assert config.analysis.dsi_threshold == 0.3
        assert config.analysis.speed_index == 0
        assert config.analysis.wavelength_indices == (1, 2)
        assert config.n_workers is None

    def test_from_dict_nested(self):
        config = PipelineConfig.from_dict({
            'sync': {'first_pulse_threshold': 10.0, 'analog_channels': [3, 4]},
            'analysis': {'wavelength_indices': [0], 'n_preferred': 2},
            'n_workers': 2,
        })
        assert config.sync == SyncConfig(first_pulse_threshold=10.0, analog_channels=(3, 4))
        assert config.analysis == AnalysisConfig(wavelength_indices=(0,), n_preferred=2)
        assert config.n_workers == 2

    def test_unknown_keys_are_ignored(self):
        config = PipelineConfig.from_dict({'analysis': {'bogus': 1}, 'other': True})
        assert config == PipelineConfig()

    def test_section_must_be_dict(self):
        with pytest.raises(TypeError, match="'sync' configuration must be a dictionary"):
            PipelineConfig.from_dict({'sync': [1, 2]})

    def test_is_immutable(self):
        with pytest.raises(AttributeError):
            PipelineConfig().n_workers = 3

    def test_json_round_trip(self, tmp_path):
        config = PipelineConfig(sync=SyncConfig(1.0, 2.0, (2, 5)),
                                analysis=AnalysisConfig(rate_threshold=2.5, wavelength_indices=(0, 3)),
                                show_progress=False)
        path = tmp_path / "config.json"
        save_config(config, path)
        assert json.loads(path.read_text())['analysis']['wavelength_indices'] == [0, 3]
        assert load_config(path) == config

def test_set_verbosity():
    import logging
    from mea_ds.logger import logger, set_verbosity
    set_verbosity('WARNING')
    assert logger.level == logging.WARNING
    set_verbosity(3)
    assert logger.level == logging.INFO

def test_verbosity_is_restored():
    import logging
    from mea_ds.logger import logger, verbosity
    before = logger.level
    with verbosity('ERROR'):
        assert logger.level == logging.ERROR
    assert logger.level == before
