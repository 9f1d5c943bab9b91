# mea_ds/validation.py
"""Provides classes for validating input data and parameters.

This module contains validators that are used by `run` and by the individual
components to ensure that the recording, stimulus design and configuration
are valid and mutually consistent before any per-channel work starts.
"""
import numbers
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from mea_ds.config import AnalysisConfig, SyncConfig
from mea_ds.exceptions import AlignmentError, ConfigurationError, DesignInconsistencyError
from mea_ds.logger import logger

if TYPE_CHECKING:
    from mea_ds.data.models import Recording, StimulusDesign, TrialSequence, TrialWindow

class RecordingValidator:
    """Validates the spike channels of a recording."""
    def __init__(self, recording: 'Recording'):
        self.recording = recording

    def validate(self):
        """Runs all checks. Unsorted channels are replaced by sorted copies."""
        if len(self.recording) == 0:
            logger.warning("Recording contains no neural channels.")
        seen = set()
        for i, channel in enumerate(self.recording.channels):
            if channel.channel_id in seen:
                raise ValueError(f"Duplicate channel id '{channel.channel_id}'.")
            seen.add(channel.channel_id)
            if not np.all(np.isfinite(channel.spike_times)):
                raise ValueError(f"Channel '{channel.channel_id}' contains NaN or Inf spike times.")
            if not channel.is_sorted:
                logger.warning(f"Channel '{channel.channel_id}' not sorted. Sorting automatically.")
                self.recording.channels[i] = channel.sorted()

class DesignValidator:
    """Validates the stimulus design and the realized trial sequence."""
    def __init__(self, design: 'StimulusDesign', trials: Optional['TrialSequence'] = None):
        self.design, self.trials = design, trials

    def validate(self):
        self._validate_design()
        if self.trials is not None:
            validate_trial_sequence(self.trials)

    def _validate_design(self):
        if not self.design.duration > 0:
            raise ConfigurationError(f"Stimulus duration must be positive, got {self.design.duration}.")
        if self.design.repeats < 1:
            raise ConfigurationError(f"Repeat count must be at least 1, got {self.design.repeats}.")

def validate_trial_sequence(trials: 'TrialSequence'):
    """Checks that the per-trial direction, speed and wavelength sequences align."""
    lengths = {'direction': len(trials.direction), 'speed': len(trials.speed),
               'wavelength': len(trials.wavelength)}
    if len(set(lengths.values())) != 1:
        raise DesignInconsistencyError(f"Trial sequence axes have mismatched lengths: {lengths}.")
    for name in lengths:
        if not np.all(np.isfinite(getattr(trials, name))):
            raise DesignInconsistencyError(f"Trial sequence '{name}' contains NaN or Inf values.")

def validate_windows(windows: Sequence['TrialWindow'], n_trials: Optional[int] = None):
    """Checks the trial windows against the trial count and for ordering.

    Raises
    ------
    AlignmentError
        If the number of windows differs from `n_trials`, or if any window is
        empty, non-increasing, or overlaps the next one.
    """
    if n_trials is not None and len(windows) != n_trials:
        raise AlignmentError(f"Expected {n_trials} trial windows, found {len(windows)}.")
    for i, (onset, offset) in enumerate(windows):
        if not onset < offset:
            raise AlignmentError(f"Trial window {i} has onset {onset} not before offset {offset}.")
        if i + 1 < len(windows) and not offset < windows[i + 1][0]:
            raise AlignmentError(
                f"Trial window {i} (offset {offset}) overlaps trial window {i + 1} "
                f"(onset {windows[i + 1][0]})."
            )

class ConfigValidator:
    """Validates the sync and analysis configuration.

    Checks that only need the configuration are run by `validate`; checks that
    depend on the observed condition axes are run by `validate_against_axes`.
    """
    def __init__(self, analysis: Optional[AnalysisConfig] = None, sync: Optional[SyncConfig] = None):
        self.analysis, self.sync = analysis, sync

    def validate(self):
        if self.analysis is not None: self._validate_analysis()
        if self.sync is not None: self._validate_sync()

    def _validate_analysis(self):
        cfg = self.analysis
        checks = {"rate_threshold": cfg.rate_threshold, "dsi_threshold": cfg.dsi_threshold}
        for key, value in checks.items():
            if not isinstance(value, numbers.Real) or isinstance(value, bool):
                raise ConfigurationError(f"'{key}' must be numeric, got {type(value).__name__}.")
        if not cfg.rate_threshold > 0:
            raise ConfigurationError(f"'rate_threshold' must be positive, got {cfg.rate_threshold}.")
        if not 0 <= cfg.dsi_threshold <= 1:
            raise ConfigurationError(f"'dsi_threshold' must be in [0, 1], got {cfg.dsi_threshold}.")
        if (not isinstance(cfg.n_preferred, numbers.Integral) or isinstance(cfg.n_preferred, bool)
                or cfg.n_preferred < 1):
            raise ConfigurationError(f"'n_preferred' must be a positive integer, got {cfg.n_preferred}.")
        if cfg.speed_index < 0 or any(w < 0 for w in cfg.wavelength_indices):
            raise ConfigurationError("'speed_index' and 'wavelength_indices' must be non-negative.")
        if len(cfg.wavelength_indices) == 0:
            raise ConfigurationError("'wavelength_indices' must name at least one wavelength.")

    def _validate_sync(self):
        cfg = self.sync
        if len(cfg.analog_channels) != 2 or cfg.analog_channels[0] == cfg.analog_channels[1]:
            raise ConfigurationError(
                f"'analog_channels' must name two distinct channels, got {cfg.analog_channels}."
            )
        if not cfg.first_pulse_threshold < cfg.last_pulse_threshold:
            raise ConfigurationError(
                f"'first_pulse_threshold' ({cfg.first_pulse_threshold}) must be below "
                f"'last_pulse_threshold' ({cfg.last_pulse_threshold})."
            )

    def validate_against_axes(self, n_directions: int, n_speeds: int, n_wavelengths: int):
        """Checks the designated indices against the observed condition axes."""
        cfg = self.analysis
        if cfg.n_preferred > n_directions:
            raise ConfigurationError(
                f"'n_preferred' ({cfg.n_preferred}) exceeds the number of directions ({n_directions})."
            )
        if cfg.speed_index >= n_speeds:
            raise ConfigurationError(
                f"'speed_index' {cfg.speed_index} is out of range for {n_speeds} observed speeds."
            )
        bad = [w for w in cfg.wavelength_indices if w >= n_wavelengths]
        if bad:
            raise ConfigurationError(
                f"'wavelength_indices' {bad} are out of range for {n_wavelengths} observed wavelengths."
            )
