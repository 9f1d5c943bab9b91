# mea_ds/data/conditions.py
"""Maps every trial of a `TrialSequence` to its `ConditionKey`.

The condition axes are the distinct, ascending direction, speed and
wavelength values observed in the trial sequence. Values are matched
exactly; no tolerance or binning is applied.
"""
import itertools
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from mea_ds.data.models import ConditionKey, TrialSequence
from mea_ds.exceptions import DesignInconsistencyError
from mea_ds.validation import validate_trial_sequence

@dataclass(frozen=True, eq=False)
class ConditionAxes:
    """The sorted, de-duplicated direction, speed and wavelength values."""
    directions: np.ndarray
    speeds: np.ndarray
    wavelengths: np.ndarray

    def __post_init__(self):
        for name in ('directions', 'speeds', 'wavelengths'):
            arr = np.array(getattr(self, name), dtype=float).reshape(-1)
            if np.any(np.diff(arr) <= 0):
                raise DesignInconsistencyError(f"Condition axis '{name}' must be strictly increasing.")
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    def __reduce__(self):
        return (self.__class__, (self.directions, self.speeds, self.wavelengths))

    @classmethod
    def from_trials(cls, trials: TrialSequence) -> 'ConditionAxes':
        return cls(np.unique(trials.direction), np.unique(trials.speed), np.unique(trials.wavelength))

    @property
    def shape(self) -> Tuple[int, int, int]:
        return len(self.directions), len(self.speeds), len(self.wavelengths)

    def keys(self) -> Iterator[ConditionKey]:
        """Yields every key of the full direction x speed x wavelength product."""
        for triple in itertools.product(*(range(n) for n in self.shape)):
            yield ConditionKey(*triple)

    def to_dict(self) -> Dict[str, List[float]]:
        return {'directions': self.directions.tolist(), 'speeds': self.speeds.tolist(),
                'wavelengths': self.wavelengths.tolist()}

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConditionAxes):
            return NotImplemented
        return (np.array_equal(self.directions, other.directions)
                and np.array_equal(self.speeds, other.speeds)
                and np.array_equal(self.wavelengths, other.wavelengths))

    def __repr__(self) -> str:
        return (f"ConditionAxes(directions={self.directions.tolist()}, speeds={self.speeds.tolist()}, "
                f"wavelengths={self.wavelengths.tolist()})")


def _locate(values: np.ndarray, axis: np.ndarray, name: str) -> np.ndarray:
    """Returns the index of each value in `axis`, requiring exact matches."""
    idx = np.searchsorted(axis, values)
    found = idx < len(axis)
    found[found] = axis[idx[found]] == values[found]
    if not np.all(found):
        missing = np.unique(values[~found]).tolist()
        raise DesignInconsistencyError(f"Trial {name} values {missing} are not on the {name} axis {axis.tolist()}.")
    return idx


class ConditionIndex:
    """Assigns a `ConditionKey` and a repeat number to every trial.

    Attributes
    ----------
    axes : ConditionAxes
        The condition axes used for indexing.
    keys : List[ConditionKey]
        The condition of each trial, in trial order.
    repeat_indices : np.ndarray
        For each trial, how many earlier trials share its condition
        (0 for the first occurrence).
    """
    def __init__(self, trials: TrialSequence, axes: Optional[ConditionAxes] = None):
        """
        Parameters
        ----------
        trials : TrialSequence
            The realized trial sequence.
        axes : ConditionAxes, optional
            Externally supplied axes. If None, they are derived from `trials`.

        Raises
        ------
        DesignInconsistencyError
            If the trial axes have different lengths or a trial value is not
            found on its axis.
        """
        validate_trial_sequence(trials)
        self.axes = axes if axes is not None else ConditionAxes.from_trials(trials)

        d_idx = _locate(trials.direction, self.axes.directions, 'direction')
        s_idx = _locate(trials.speed, self.axes.speeds, 'speed')
        w_idx = _locate(trials.wavelength, self.axes.wavelengths, 'wavelength')
        self.keys: List[ConditionKey] = [ConditionKey(int(d), int(s), int(w)) for d, s, w in zip(d_idx, s_idx, w_idx)]

        seen: Dict[ConditionKey, int] = {}
        repeats = np.zeros(len(self.keys), dtype=int)
        for i, key in enumerate(self.keys):
            repeats[i] = seen.get(key, 0)
            seen[key] = repeats[i] + 1
        self.repeat_indices = repeats

    def __len__(self) -> int:
        return len(self.keys)

    def trials_for(self, key: ConditionKey) -> List[int]:
        """Returns the positions of all trials presented under `key`."""
        return [i for i, k in enumerate(self.keys) if k == key]

    def trial_counts(self) -> np.ndarray:
        """Returns an integer array of shape `axes.shape` with trials per condition."""
        counts = np.zeros(self.axes.shape, dtype=int)
        for key in self.keys:
            counts[tuple(key)] += 1
        return counts
