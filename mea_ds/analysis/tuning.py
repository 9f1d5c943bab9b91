# mea_ds/analysis/tuning.py
"""Computes direction tuning and classifies channels as direction selective.

For every speed x wavelength pair, firing rates per direction are combined
into a rate-weighted resultant vector. Its length is the direction
selectivity index (DSI) and its angle the preferred direction. A channel is
direction selective when its peak rate exceeds `rate_threshold` and the DSI
averaged over the designated speed/wavelength pairs reaches `dsi_threshold`.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from mea_ds.config import AnalysisConfig
from mea_ds.data.conditions import ConditionAxes
from mea_ds.data.models import StimulusDesign
from mea_ds.data.parser import ConditionSpikeTable
from mea_ds.exceptions import DegenerateConditionWarning
from mea_ds.logger import logger
from mea_ds.validation import ConfigValidator, DesignValidator

DIRECTION_SELECTIVE = 'direction-selective'
NON_SELECTIVE = 'non-selective'
# Resultant lengths (relative to the summed rate) below this are cancellation noise.
CANCELLATION_TOL = 1e-9

def normalize_angle(degrees: float) -> float:
    """Wraps an angle in degrees into [0, 360)."""
    wrapped = float(degrees) % 360.0
    # -1e-15 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped

def resultant_vector(weights: np.ndarray, angles_deg: np.ndarray) -> Tuple[float, float]:
    """Returns the (x, y) components of the weighted sum of unit vectors."""
    theta = np.deg2rad(np.asarray(angles_deg, dtype=float))
    weights = np.asarray(weights, dtype=float)
    return float(np.sum(weights * np.cos(theta))), float(np.sum(weights * np.sin(theta)))

def direction_selectivity(rates: np.ndarray, directions: np.ndarray) -> Tuple[float, Optional[float]]:
    """Computes the direction selectivity index and preferred direction.

    Parameters
    ----------
    rates : np.ndarray
        Non-negative firing rate for each direction.
    directions : np.ndarray
        The directions in degrees.

    Returns
    -------
    Tuple[float, Optional[float]]
        The DSI in [0, 1] and the preferred direction in [0, 360). If all
        rates are zero, or the resultant cancels to below `CANCELLATION_TOL`
        of the summed rate (e.g. uniform firing), the DSI is 0.0 and the
        preferred direction is None.
    """
    total = float(np.sum(rates))
    if total == 0:
        return 0.0, None
    x, y = resultant_vector(rates, directions)
    dsi = min(np.hypot(x, y) / total, 1.0)
    if dsi < CANCELLATION_TOL:
        return 0.0, None
    return float(dsi), normalize_angle(np.rad2deg(np.arctan2(y, x)))

def circular_mean(angles_deg: Sequence[float], tol: float = 1e-12) -> Optional[float]:
    """Returns the angle of the mean unit vector, or None if it is undefined.

    The mean is undefined for an empty input or when the unit vectors cancel.
    """
    angles = np.asarray(angles_deg, dtype=float)
    if angles.size == 0:
        return None
    x, y = resultant_vector(np.ones_like(angles), angles)
    if np.hypot(x, y) / angles.size < tol:
        return None
    return normalize_angle(np.rad2deg(np.arctan2(y, x)))

def circular_distance(a: np.ndarray, b: float) -> np.ndarray:
    """Absolute angular difference in degrees, in [0, 180]."""
    return np.abs((np.asarray(a, dtype=float) - b + 180.0) % 360.0 - 180.0)

def null_direction_index(directions: np.ndarray, preferred_deg: float,
                         exclude: Sequence[int] = ()) -> Optional[int]:
    """Returns the index of the direction closest to ``preferred_deg + 180``.

    Ties are broken in favour of the lowest index. Indices in `exclude` (the
    preferred indices) are never returned; None if every index is excluded.
    """
    target = normalize_angle(preferred_deg + 180.0)
    distances = np.round(circular_distance(directions, target), 9)
    distances[list(exclude)] = np.inf
    if not np.isfinite(distances).any():
        return None
    return int(np.argmin(distances))


@dataclass
class ConditionTuning:
    """Tuning of one channel at a single speed x wavelength pair."""
    speed_index: int
    wavelength_index: int
    rates: np.ndarray
    dsi: float
    preferred_direction: Optional[float]
    degenerate: bool = False


@dataclass
class TuningSummary:
    """Direction tuning and classification of one channel.

    Attributes
    ----------
    channel_id : str
        The channel this summary belongs to.
    rates : np.ndarray
        Firing rates (Hz), shape ``(n_directions, n_speeds, n_wavelengths)``.
    dsi : np.ndarray
        DSI per pair, shape ``(n_speeds, n_wavelengths)``. Degenerate pairs
        hold 0.0 and are flagged in `degenerate`.
    preferred_direction : np.ndarray
        Preferred direction (degrees) per pair; NaN where `degenerate` or
        where the resultant cancels (no preferred direction exists).
    degenerate : np.ndarray
        Boolean mask of pairs with zero firing in every direction.
    max_rate : float
        Peak rate over all conditions.
    mean_dsi : float, optional
        DSI averaged over the designated, non-degenerate pairs. None if there
        are none.
    canonical_direction : float, optional
        Circular mean of the designated pairs' preferred directions. None
        if no designated pair has a preferred direction.
    is_direction_selective : bool
        The classification result.
    preferred_indices : Tuple[int, ...]
        Direction indices with the highest rates at the designated pairs.
    null_index : int, optional
        Direction index opposite the canonical direction, never one of
        `preferred_indices`.
    warnings : List[DegenerateConditionWarning]
        One entry per degenerate pair.
    """
    channel_id: str
    rates: np.ndarray
    dsi: np.ndarray
    preferred_direction: np.ndarray
    degenerate: np.ndarray
    max_rate: float
    mean_dsi: Optional[float]
    canonical_direction: Optional[float]
    is_direction_selective: bool
    preferred_indices: Tuple[int, ...] = ()
    null_index: Optional[int] = None
    warnings: List[DegenerateConditionWarning] = field(default_factory=list)

    @property
    def label(self) -> str:
        return DIRECTION_SELECTIVE if self.is_direction_selective else NON_SELECTIVE

    def pair(self, speed_index: int, wavelength_index: int) -> ConditionTuning:
        """Returns the tuning at a single speed x wavelength pair."""
        direction = float(self.preferred_direction[speed_index, wavelength_index])
        return ConditionTuning(
            speed_index, wavelength_index, self.rates[:, speed_index, wavelength_index].copy(),
            float(self.dsi[speed_index, wavelength_index]),
            None if np.isnan(direction) else direction,
            bool(self.degenerate[speed_index, wavelength_index])
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, TuningSummary):
            return NotImplemented
        arrays = ('rates', 'dsi', 'preferred_direction', 'degenerate')
        scalars = ('channel_id', 'max_rate', 'mean_dsi', 'canonical_direction',
                   'is_direction_selective', 'preferred_indices', 'null_index')
        return (all(np.array_equal(getattr(self, a), getattr(other, a), equal_nan=a != 'degenerate') for a in arrays)
                and all(getattr(self, s) == getattr(other, s) for s in scalars))


class TuningAnalyzer:
    """Turns `ConditionSpikeTable` objects into `TuningSummary` objects.

    The analyzer holds no per-channel state; `analyze` can be called on any
    number of channels in any order.
    """
    def __init__(self, design: StimulusDesign, axes: ConditionAxes, config: Optional[AnalysisConfig] = None):
        """
        Parameters
        ----------
        design : StimulusDesign
            Supplies the trial duration and repeat count used to convert spike
            counts into rates.
        axes : ConditionAxes
            The condition axes of the tables to be analyzed.
        config : AnalysisConfig, optional
            Classification thresholds and designated indices. Defaults to
            `AnalysisConfig()`.

        Raises
        ------
        ConfigurationError
            If the design or the configuration is invalid, or the designated
            indices fall outside the axes.
        """
        self.design, self.axes = design, axes
        self.config = config if config is not None else AnalysisConfig()
        DesignValidator(design).validate()
        validator = ConfigValidator(analysis=self.config)
        validator.validate()
        validator.validate_against_axes(*axes.shape)
        self._exposure = design.duration * design.repeats

    def rates(self, table: ConditionSpikeTable) -> np.ndarray:
        """Firing rates in Hz for every condition, shape ``axes.shape``."""
        return table.counts() / self._exposure

    def analyze(self, table: ConditionSpikeTable) -> TuningSummary:
        """Computes the tuning summary of one channel."""
        cfg = self.config
        rates = self.rates(table)
        _, n_speeds, n_wavelengths = self.axes.shape

        dsi = np.zeros((n_speeds, n_wavelengths))
        preferred = np.full((n_speeds, n_wavelengths), np.nan)
        degenerate = np.zeros((n_speeds, n_wavelengths), dtype=bool)
        warnings: List[DegenerateConditionWarning] = []
        for s in range(n_speeds):
            for w in range(n_wavelengths):
                value, direction = direction_selectivity(rates[:, s, w], self.axes.directions)
                dsi[s, w] = value
                if direction is not None:
                    preferred[s, w] = direction
                if not rates[:, s, w].any():
                    degenerate[s, w] = True
                    warnings.append(DegenerateConditionWarning(table.channel_id, s, w))

        designated = [(cfg.speed_index, w) for w in cfg.wavelength_indices]
        defined = [(s, w) for s, w in designated if not degenerate[s, w]]
        mean_dsi = float(np.mean([dsi[p] for p in defined])) if defined else None
        canonical = circular_mean([preferred[p] for p in defined if not np.isnan(preferred[p])])

        max_rate = float(rates.max()) if rates.size else 0.0
        is_ds = max_rate > cfg.rate_threshold and mean_dsi is not None and mean_dsi >= cfg.dsi_threshold

        preferred_indices: Tuple[int, ...] = ()
        null_index = None
        if canonical is not None:
            designated_rates = rates[:, cfg.speed_index, list(cfg.wavelength_indices)].mean(axis=1)
            order = np.argsort(-designated_rates, kind='stable')
            preferred_indices = tuple(int(i) for i in order[:cfg.n_preferred])
            null_index = null_direction_index(self.axes.directions, canonical, exclude=preferred_indices)

        if warnings:
            logger.debug(f"Channel '{table.channel_id}': {len(warnings)} degenerate speed/wavelength pair(s).")

        return TuningSummary(
            channel_id=table.channel_id, rates=rates, dsi=dsi, preferred_direction=preferred,
            degenerate=degenerate, max_rate=max_rate, mean_dsi=mean_dsi,
            canonical_direction=canonical, is_direction_selective=bool(is_ds),
            preferred_indices=preferred_indices, null_index=null_index, warnings=warnings
        )
