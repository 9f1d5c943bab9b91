# mea_ds/data/parser.py
"""Groups each channel's spikes into per-condition spike collections.

For every trial, the spikes inside its window are made onset-relative and
shifted by ``repeat_index * duration``, then appended to the collection of
that trial's condition. The result for one channel is a
`ConditionSpikeTable` covering the full direction x speed x wavelength
product, with explicitly empty arrays for conditions without spikes.
"""
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np
import pandas as pd

from mea_ds.data.conditions import ConditionAxes, ConditionIndex
from mea_ds.data.models import ConditionKey, SpikeChannel, StimulusDesign, TrialWindow
from mea_ds.validation import DesignValidator, validate_windows

SPIKE_DTYPES = {'channel': object, 'direction_index': int, 'speed_index': int,
                'wavelength_index': int, 'time': float}
SPIKE_COLUMNS = list(SPIKE_DTYPES)

class ConditionSpikeTable:
    """The per-condition spike collections of one channel.

    Indexing with a `ConditionKey` (or any ``(direction, speed, wavelength)``
    index triple) returns a read-only 1D array of onset-relative spike times,
    concatenated across repeats.
    """
    def __init__(self, channel_id: str, axes: ConditionAxes, spikes: Dict[ConditionKey, np.ndarray]):
        self.channel_id = channel_id
        self.axes = axes
        self._spikes: Dict[ConditionKey, np.ndarray] = {}
        for key in axes.keys():
            arr = np.array(spikes.get(key, ()), dtype=float).reshape(-1)
            arr.setflags(write=False)
            self._spikes[key] = arr
        extra = set(spikes) - set(self._spikes)
        if extra:
            raise KeyError(f"Condition keys {sorted(extra)} are outside the axes of shape {axes.shape}.")

    def __reduce__(self):
        # Rebuild through __init__ so arrays unpickled in another process stay read-only
        return (self.__class__, (self.channel_id, self.axes, dict(self._spikes)))

    def __getitem__(self, key: Sequence[int]) -> np.ndarray:
        return self._spikes[ConditionKey(*key)]

    def __len__(self) -> int:
        return len(self._spikes)

    def __iter__(self) -> Iterator[ConditionKey]:
        return iter(self._spikes)

    def items(self) -> Iterator[Tuple[ConditionKey, np.ndarray]]:
        return iter(self._spikes.items())

    def __repr__(self) -> str:
        return (f"ConditionSpikeTable(channel='{self.channel_id}', shape={self.shape}, "
                f"total_spikes={self.total_spikes})")

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConditionSpikeTable):
            return NotImplemented
        return (self.channel_id == other.channel_id and self.axes == other.axes
                and all(np.array_equal(v, other._spikes[k]) for k, v in self._spikes.items()))

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.axes.shape

    @property
    def total_spikes(self) -> int:
        return int(sum(len(v) for v in self._spikes.values()))

    def counts(self) -> np.ndarray:
        """Returns the spike count of every condition as an array of shape `shape`."""
        counts = np.zeros(self.shape, dtype=int)
        for key, spikes in self._spikes.items():
            counts[tuple(key)] = len(spikes)
        return counts

    def to_array(self) -> np.ndarray:
        """Returns a 3D object array holding the spike arrays."""
        out = np.empty(self.shape, dtype=object)
        for key, spikes in self._spikes.items():
            out[tuple(key)] = spikes
        return out

    def to_dataframe(self) -> pd.DataFrame:
        """Returns the spikes in long format, one row per spike.

        Empty conditions produce no rows; they are restored from the axes by
        `from_dataframe`.
        """
        frames = [pd.DataFrame({'channel': self.channel_id, 'direction_index': key.direction_index,
                                'speed_index': key.speed_index, 'wavelength_index': key.wavelength_index,
                                'time': spikes})
                  for key, spikes in self._spikes.items() if len(spikes)]
        if not frames:
            return pd.DataFrame({c: pd.Series(dtype=t) for c, t in SPIKE_DTYPES.items()})
        return pd.concat(frames, ignore_index=True)[SPIKE_COLUMNS]

    @classmethod
    def from_dataframe(cls, channel_id: str, axes: ConditionAxes, df: pd.DataFrame) -> 'ConditionSpikeTable':
        """Rebuilds a table from the long format produced by `to_dataframe`."""
        spikes = {}
        if len(df):
            for triple, group in df.groupby(['direction_index', 'speed_index', 'wavelength_index'], sort=False):
                spikes[ConditionKey(*(int(i) for i in triple))] = group['time'].to_numpy()
        return cls(channel_id, axes, spikes)


class ConditionParser:
    """Builds a `ConditionSpikeTable` for each channel of a recording.

    The trial windows and condition index are shared, read-only inputs, so
    channels can be parsed independently and in any order.
    """
    def __init__(self, design: StimulusDesign, windows: Sequence[TrialWindow], index: ConditionIndex):
        """
        Parameters
        ----------
        design : StimulusDesign
            The declared design; its `duration` separates concatenated repeats.
        windows : Sequence[TrialWindow]
            One window per trial, in trial order.
        index : ConditionIndex
            The condition key and repeat number of each trial.

        Raises
        ------
        AlignmentError
            If the number of windows differs from the number of trials, or the
            windows are not strictly increasing and non-overlapping.
        ConfigurationError
            If the design has a non-positive duration or fewer than one repeat.
        """
        DesignValidator(design).validate()
        validate_windows(windows, len(index))
        self.design = design
        self.index = index
        self.axes = index.axes
        self._onsets = np.array([w[0] for w in windows], dtype=float)
        self._offsets = np.array([w[1] for w in windows], dtype=float)
        self._shifts = index.repeat_indices * design.duration

    def parse(self, channel: SpikeChannel) -> ConditionSpikeTable:
        """Partitions one channel's spikes into condition collections.

        Spikes with a timestamp within ``[onset, offset]`` of a trial belong
        to that trial. Repeats are appended in trial order.
        """
        spikes = channel.spike_times
        if not channel.is_sorted:
            spikes = np.sort(spikes)
        starts = np.searchsorted(spikes, self._onsets, side='left')
        stops = np.searchsorted(spikes, self._offsets, side='right')

        pieces: Dict[ConditionKey, List[np.ndarray]] = {key: [] for key in self.axes.keys()}
        for trial, key in enumerate(self.index.keys):
            segment = spikes[starts[trial]:stops[trial]] - self._onsets[trial]
            pieces[key].append(segment + self._shifts[trial])

        collected = {key: np.concatenate(parts) if parts else np.empty(0)
                     for key, parts in pieces.items()}
        return ConditionSpikeTable(channel.channel_id, self.axes, collected)

    def parse_all(self, channels: Sequence[SpikeChannel]) -> List[ConditionSpikeTable]:
        return [self.parse(ch) for ch in channels]
