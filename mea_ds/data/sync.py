# mea_ds/data/sync.py
"""Extracts trial windows from the two synchronization pulse channels.

The onset channel (A) carries one pulse at the start of every trial and the
offset channel (B) at least one pulse before the end of every trial. The
two thresholds bound the stimulus block in recording time: onsets must
exceed `first_pulse_threshold` and offsets must lie below
`last_pulse_threshold`.
"""
from typing import List, Optional, Union

import numpy as np

from mea_ds.config import SyncConfig
from mea_ds.data.models import SpikeChannel, TrialWindow
from mea_ds.logger import logger
from mea_ds.validation import ConfigValidator, validate_windows

class SyncExtractor:
    """Derives an ordered sequence of `TrialWindow` objects from sync pulses.

    For each trial, the onset is the first pulse on channel A that exceeds
    both the first-pulse threshold and the previous trial's offset. The offset
    is the last pulse on channel B that lies after the onset and below both
    the last-pulse threshold and the next pulse on channel A.
    """
    def __init__(self, config: Optional[SyncConfig] = None):
        """
        Parameters
        ----------
        config : SyncConfig, optional
            The sync thresholds. Defaults to `SyncConfig()`.
        """
        self.config = config if config is not None else SyncConfig()
        ConfigValidator(sync=self.config).validate()

    @staticmethod
    def _pulses(channel: Union[SpikeChannel, np.ndarray]) -> np.ndarray:
        times = channel.spike_times if isinstance(channel, SpikeChannel) else np.asarray(channel, dtype=float)
        return np.sort(times)

    def extract(self, sync_a: Union[SpikeChannel, np.ndarray],
                sync_b: Union[SpikeChannel, np.ndarray],
                n_trials: Optional[int] = None) -> List[TrialWindow]:
        """Extracts the trial windows.

        Parameters
        ----------
        sync_a : SpikeChannel or np.ndarray
            Pulse timestamps marking trial onsets.
        sync_b : SpikeChannel or np.ndarray
            Pulse timestamps marking trial offsets.
        n_trials : int, optional
            The expected number of trials. If given, the result is checked
            against it and an `AlignmentError` is raised on a mismatch.

        Returns
        -------
        List[TrialWindow]
            The trial windows, strictly increasing and non-overlapping.
        """
        onsets, offsets = self._pulses(sync_a), self._pulses(sync_b)
        last = self.config.last_pulse_threshold
        windows: List[TrialWindow] = []
        cursor = self.config.first_pulse_threshold

        while True:
            i = np.searchsorted(onsets, cursor, side='right')
            if i >= len(onsets):
                break
            onset = onsets[i]
            k = np.searchsorted(onsets, onset, side='right')
            next_onset = onsets[k] if k < len(onsets) else np.inf
            j = np.searchsorted(offsets, min(next_onset, last), side='left') - 1
            if j < 0 or offsets[j] <= onset:
                if onset < last:
                    logger.warning(f"No offset pulse found for the onset at {onset:.4f} s; stopping extraction.")
                break
            windows.append(TrialWindow(float(onset), float(offsets[j])))
            cursor = offsets[j]

        logger.debug(f"Extracted {len(windows)} trial windows from sync pulses.")
        validate_windows(windows, n_trials)
        return windows
