# mea_ds/config.py
"""Immutable configuration objects for the mea_ds pipeline.

All experiment-specific constants (sync thresholds, classification
thresholds, designated speed/wavelength indices) live here and are passed
explicitly to the components that need them. Indices are zero-based.
"""
import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from mea_ds.logger import logger


@dataclass(frozen=True)
class SyncConfig:
    """Parameters for extracting trial windows from the synchronization channels.

    Attributes
    ----------
    first_pulse_threshold : float
        A trial onset is the first pulse on the onset channel exceeding this
        value (and the previous trial's offset).
    last_pulse_threshold : float
        A trial offset is the last pulse on the offset channel below this value
        (and the next trial's onset).
    analog_channels : Tuple[int, int]
        Positions of the onset and offset pulse channels inside an imported
        recording. They are removed from the neural channels before parsing.
    """
    first_pulse_threshold: float = 2980.0
    last_pulse_threshold: float = 3990.0
    analog_channels: Tuple[int, int] = (0, 1)

    def __post_init__(self):
        object.__setattr__(self, 'analog_channels', tuple(int(i) for i in self.analog_channels))


@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters for direction-selectivity classification.

    Attributes
    ----------
    rate_threshold : float
        Minimum peak firing rate (Hz) for a cell to be considered direction
        selective. The peak rate must be strictly greater than this value.
    dsi_threshold : float
        Minimum averaged direction-selectivity index, in [0, 1].
    n_preferred : int
        Number of preferred direction indices reported per cell.
    speed_index : int
        Speed index used to determine the canonical preferred direction.
    wavelength_indices : Tuple[int, ...]
        Wavelength indices used to determine the canonical preferred direction.
    """
    rate_threshold: float = 4.0
    dsi_threshold: float = 0.3
    n_preferred: int = 1
    speed_index: int = 0
    wavelength_indices: Tuple[int, ...] = (1, 2)

    def __post_init__(self):
        object.__setattr__(self, 'wavelength_indices', tuple(int(i) for i in self.wavelength_indices))


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level configuration bundling all stages of a batch run."""
    sync: SyncConfig = field(default_factory=SyncConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    apply_coordinate_transform: bool = True
    show_progress: bool = True
    verbose: bool = True
    n_workers: Optional[int] = None

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'PipelineConfig':
        """Builds a configuration from a (possibly nested) dictionary.

        Unknown keys are ignored with a warning so that configuration files
        written for other versions remain loadable.
        """
        params = dict(params)
        sync = _build(SyncConfig, params.pop('sync', {}) or {}, 'sync')
        analysis = _build(AnalysisConfig, params.pop('analysis', {}) or {}, 'analysis')
        top = _filter_known(cls, params, 'pipeline')
        return cls(sync=sync, analysis=analysis, **top)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['sync']['analog_channels'] = list(self.sync.analog_channels)
        d['analysis']['wavelength_indices'] = list(self.analysis.wavelength_indices)
        return d


def _filter_known(cls, params: Dict[str, Any], section: str) -> Dict[str, Any]:
    known = set(cls.__dataclass_fields__) - {'sync', 'analysis'}
    unknown = set(params) - known
    if unknown:
        logger.warning(f"Ignoring unknown {section} configuration keys: {sorted(unknown)}.")
    return {k: v for k, v in params.items() if k in known}

def _build(cls, params: Dict[str, Any], section: str):
    if not isinstance(params, dict):
        raise TypeError(f"'{section}' configuration must be a dictionary, got {type(params).__name__}.")
    return cls(**_filter_known(cls, params, section))

def load_config(path: Union[str, Path]) -> PipelineConfig:
    """Loads a `PipelineConfig` from a JSON file.

    Parameters
    ----------
    path : str or Path
        Path to a JSON file with optional ``sync`` and ``analysis`` sections
        and top-level pipeline options.

    Returns
    -------
    PipelineConfig
        The loaded configuration. Values are not validated here; see
        `mea_ds.validation.ConfigValidator`.
    """
    with open(path, 'r', encoding='utf-8') as f:
        params = json.load(f)
    logger.debug(f"Loaded configuration from {path}.")
    return PipelineConfig.from_dict(params)

def save_config(config: PipelineConfig, path: Union[str, Path]):
    """Writes a `PipelineConfig` to a JSON file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
