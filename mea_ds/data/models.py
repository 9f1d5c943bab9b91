# mea_ds/data/models.py
"""Defines the core data structures shared by every stage of the pipeline.

- `SpikeChannel`: the spike timestamps of one electrode.
- `Recording`: an ordered collection of `SpikeChannel` objects.
- `StimulusDesign`: the declared experiment (directions, speeds, duration,
  number of repeats).
- `TrialSequence`: the trials actually presented, in presentation order.
- `TrialWindow`: the (onset, offset) time pair of one trial.
- `ConditionKey`: the (direction, speed, wavelength) index triple of a trial.
"""
from dataclasses import dataclass, replace
from typing import Iterator, List, NamedTuple, Sequence, Tuple, Union

import numpy as np

from mea_ds.exceptions import ConfigurationError


def _frozen_array(values) -> np.ndarray:
    """Returns a read-only 1D float copy of `values`."""
    arr = np.array(values, dtype=float).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SpikeChannel:
    """Spike timestamps (in seconds) recorded on a single electrode.

    Attributes
    ----------
    channel_id : str
        The electrode name, e.g. ``'D12'``.
    spike_times : np.ndarray
        1D array of spike timestamps. May be empty.
    coordinate : Tuple[float, float]
        The (x, y) position of the electrode on the array. ``(nan, nan)`` when
        the position is unknown (e.g. for analog channels).
    """
    channel_id: str
    spike_times: np.ndarray
    coordinate: Tuple[float, float] = (np.nan, np.nan)

    def __post_init__(self):
        object.__setattr__(self, 'channel_id', str(self.channel_id))
        object.__setattr__(self, 'spike_times', _frozen_array(self.spike_times))
        object.__setattr__(self, 'coordinate', tuple(float(c) for c in self.coordinate))

    def __reduce__(self):
        # Pickled arrays come back writeable; rebuilding re-freezes them
        return (self.__class__, (self.channel_id, self.spike_times, self.coordinate))

    def __len__(self) -> int:
        return len(self.spike_times)

    @property
    def is_sorted(self) -> bool:
        return bool(np.all(self.spike_times[:-1] <= self.spike_times[1:]))

    def sorted(self) -> 'SpikeChannel':
        """Returns a copy of this channel with its spike times sorted."""
        return replace(self, spike_times=np.sort(self.spike_times))


class Recording:
    """An ordered collection of spike channels from one recording session."""
    def __init__(self, channels: Sequence[SpikeChannel], name: str = ''):
        self.channels: List[SpikeChannel] = list(channels)
        self.name = name

    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[SpikeChannel]:
        return iter(self.channels)

    def __getitem__(self, item: Union[int, str]) -> SpikeChannel:
        if isinstance(item, str):
            for channel in self.channels:
                if channel.channel_id == item:
                    return channel
            raise KeyError(f"No channel named '{item}'.")
        return self.channels[item]

    def __repr__(self) -> str:
        return f"Recording(name='{self.name}', n_channels={len(self)})"

    @property
    def channel_ids(self) -> List[str]:
        return [ch.channel_id for ch in self.channels]

    def split_sync(self, analog_channels: Sequence[int] = (0, 1)) -> Tuple[SpikeChannel, SpikeChannel, 'Recording']:
        """Separates the two synchronization channels from the neural channels.

        Parameters
        ----------
        analog_channels : Sequence[int], optional
            Positions of the onset (A) and offset (B) pulse channels, in that
            order. Defaults to ``(0, 1)``.

        Returns
        -------
        Tuple[SpikeChannel, SpikeChannel, Recording]
            The onset channel, the offset channel, and a new `Recording`
            holding the remaining channels in their original order.
        """
        if len(analog_channels) != 2 or analog_channels[0] == analog_channels[1]:
            raise ConfigurationError(
                f"Exactly two distinct analog channels are required, got {tuple(analog_channels)}."
            )
        for idx in analog_channels:
            if not 0 <= idx < len(self.channels):
                raise ConfigurationError(
                    f"Analog channel index {idx} is out of range for a recording with {len(self)} channels."
                )
        sync_a, sync_b = self.channels[analog_channels[0]], self.channels[analog_channels[1]]
        neural = [ch for i, ch in enumerate(self.channels) if i not in set(analog_channels)]
        return sync_a, sync_b, Recording(neural, name=self.name)


@dataclass(frozen=True)
class StimulusDesign:
    """The declared experimental design.

    Attributes
    ----------
    directions : Tuple[float, ...]
        Motion directions in degrees, conventionally in [0, 360).
    speeds : Tuple[float, ...]
        Stimulus speeds.
    duration : float
        Duration of a single trial in seconds. Must be positive.
    repeats : int
        Number of repeats of each condition. Must be at least 1.
    """
    directions: Tuple[float, ...]
    speeds: Tuple[float, ...]
    duration: float
    repeats: int

    def __post_init__(self):
        object.__setattr__(self, 'directions', tuple(float(d) for d in self.directions))
        object.__setattr__(self, 'speeds', tuple(float(s) for s in self.speeds))
        object.__setattr__(self, 'duration', float(self.duration))
        object.__setattr__(self, 'repeats', int(self.repeats))


@dataclass(frozen=True, eq=False)
class TrialSequence:
    """The realized, time-ordered list of presented trials.

    The three arrays hold, for each trial, its direction (degrees), speed and
    wavelength. They are expected to share the same length; this is checked
    by `DesignValidator`.
    """
    direction: np.ndarray
    speed: np.ndarray
    wavelength: np.ndarray

    def __post_init__(self):
        for name in ('direction', 'speed', 'wavelength'):
            object.__setattr__(self, name, _frozen_array(getattr(self, name)))

    def __reduce__(self):
        return (self.__class__, (self.direction, self.speed, self.wavelength))

    def __len__(self) -> int:
        return len(self.direction)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TrialSequence):
            return NotImplemented
        return all(np.array_equal(getattr(self, n), getattr(other, n))
                   for n in ('direction', 'speed', 'wavelength'))


class TrialWindow(NamedTuple):
    """Onset and offset time (seconds) of one trial."""
    onset: float
    offset: float


class ConditionKey(NamedTuple):
    """Indices of a condition into the sorted direction, speed and wavelength axes."""
    direction_index: int
    speed_index: int
    wavelength_index: int
