# mea_ds/datasets/generators.py
"""Generates synthetic moving-stimulus experiments.

These functions create trial sequences, sync pulse channels and spike trains
with known direction tuning. They are useful for tutorials, debugging, and
checking the parser and analyzer against ground truth.
"""
import itertools
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from mea_ds.config import SyncConfig
from mea_ds.data.models import Recording, SpikeChannel, StimulusDesign, TrialSequence, TrialWindow
from mea_ds.io.reader import GRID_SIZE, ROW_LETTERS, electrode_coordinate

DEFAULT_DIRECTIONS = tuple(float(d) for d in range(0, 360, 45))

class SyntheticExperiment(NamedTuple):
    """Everything needed to run the pipeline on synthetic data."""
    recording: Recording
    design: StimulusDesign
    trials: TrialSequence
    windows: List[TrialWindow]
    sync_config: SyncConfig
    preferred_directions: dict

def electrode_names(n: int) -> List[str]:
    """Returns the first `n` electrode labels of the grid in row-major order."""
    names = [f"{r}{c}" for r, c in itertools.product(ROW_LETTERS, range(1, GRID_SIZE + 1))]
    if n > len(names):
        raise ValueError(f"The grid has only {len(names)} electrodes, {n} requested.")
    return names[:n]

def generate_trial_sequence(directions: Sequence[float] = DEFAULT_DIRECTIONS,
                            speeds: Sequence[float] = (1.0,), wavelengths: Sequence[float] = (1.0,),
                            repeats: int = 5, shuffle: bool = True,
                            seed: Optional[int] = None) -> TrialSequence:
    """Generates a block-randomized trial sequence.

    Every repeat is a block containing each direction x speed x wavelength
    condition once. With `shuffle`, the order inside each block is randomized.

    Parameters
    ----------
    directions, speeds, wavelengths : Sequence[float]
        The condition values.
    repeats : int, optional
        Number of blocks. Defaults to 5.
    shuffle : bool, optional
        Randomize the order within blocks. Defaults to True.
    seed : int, optional
        Seed for the random generator.

    Returns
    -------
    TrialSequence
        ``repeats * len(directions) * len(speeds) * len(wavelengths)`` trials.
    """
    rng = np.random.default_rng(seed)
    block = np.array(list(itertools.product(directions, speeds, wavelengths)), dtype=float)
    blocks = [block[rng.permutation(len(block))] if shuffle else block for _ in range(repeats)]
    trials = np.concatenate(blocks) if blocks else np.empty((0, 3))
    return TrialSequence(trials[:, 0], trials[:, 1], trials[:, 2])

def generate_sync_pulses(n_trials: int, duration: float, inter_trial_interval: float = 1.0,
                         start_time: float = 3000.0, pulses_per_trial: int = 1
                         ) -> Tuple[np.ndarray, np.ndarray, List[TrialWindow]]:
    """Generates onset and offset pulse trains for back-to-back trials.

    Parameters
    ----------
    n_trials : int
        Number of trials.
    duration : float
        Trial duration in seconds.
    inter_trial_interval : float, optional
        Gap between the end of one trial and the next onset. Defaults to 1.0.
    start_time : float, optional
        Onset of the first trial in recording time. Defaults to 3000.0.
    pulses_per_trial : int, optional
        Number of evenly spaced offset pulses per trial, the last one at the
        trial end. Defaults to 1.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, List[TrialWindow]]
        Onset pulses, offset pulses, and the true trial windows.
    """
    onsets = start_time + np.arange(n_trials) * (duration + inter_trial_interval)
    fractions = np.arange(1, pulses_per_trial + 1) / pulses_per_trial
    offsets = (onsets[:, None] + duration * fractions[None, :]).reshape(-1)
    windows = [TrialWindow(float(t), float(t + duration)) for t in onsets]
    return onsets, offsets, windows

def tuning_rates(directions: np.ndarray, preferred_direction: float, peak_rate: float,
                 baseline_rate: float = 0.0, kappa: float = 2.0) -> np.ndarray:
    """Von Mises direction tuning curve in Hz."""
    delta = np.deg2rad(np.asarray(directions, dtype=float) - preferred_direction)
    return baseline_rate + peak_rate * np.exp(kappa * (np.cos(delta) - 1.0))

def generate_tuned_spike_train(windows: Sequence[TrialWindow], trial_directions: np.ndarray,
                               preferred_direction: Optional[float], peak_rate: float,
                               baseline_rate: float = 0.0, kappa: float = 2.0,
                               rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Generates Poisson spikes inside trial windows with direction tuning.

    If `preferred_direction` is None the channel fires at ``peak_rate`` in
    every direction.
    """
    rng = rng if rng is not None else np.random.default_rng()
    if preferred_direction is None:
        rates = np.full(len(trial_directions), peak_rate, dtype=float)
    else:
        rates = tuning_rates(trial_directions, preferred_direction, peak_rate, baseline_rate, kappa)
    spikes = []
    for (onset, offset), rate in zip(windows, rates):
        n = rng.poisson(rate * (offset - onset))
        spikes.append(rng.uniform(onset, offset, size=n))
    return np.sort(np.concatenate(spikes)) if spikes else np.empty(0)

def generate_recording(n_tuned: int = 4, n_untuned: int = 3, n_silent: int = 1,
                       directions: Sequence[float] = DEFAULT_DIRECTIONS,
                       speeds: Sequence[float] = (1.0,), wavelengths: Sequence[float] = (1.0, 2.0, 3.0),
                       repeats: int = 5, duration: float = 2.0, peak_rate: float = 20.0,
                       untuned_rate: float = 10.0, seed: Optional[int] = None) -> SyntheticExperiment:
    """Generates a full synthetic experiment.

    The recording starts with the onset and offset sync channels
    (``'TTL_A'`` and ``'TTL_B'``), followed by direction-tuned, untuned and
    silent channels named after consecutive grid electrodes.

    Parameters
    ----------
    n_tuned, n_untuned, n_silent : int, optional
        Number of channels of each kind.
    directions, speeds, wavelengths : Sequence[float], optional
        The condition values.
    repeats : int, optional
        Number of repeats of each condition. Defaults to 5.
    duration : float, optional
        Trial duration in seconds. Defaults to 2.0.
    peak_rate : float, optional
        Peak rate of tuned channels. Defaults to 20.0.
    untuned_rate : float, optional
        Rate of untuned channels. Defaults to 10.0.
    seed : int, optional
        Seed for the random generator.

    Returns
    -------
    SyntheticExperiment
        The recording, design, trials, true windows, a matching
        `SyncConfig`, and the preferred direction of each tuned channel.
    """
    rng = np.random.default_rng(seed)
    trials = generate_trial_sequence(directions, speeds, wavelengths, repeats, seed=seed)
    start = 3000.0
    sync_a, sync_b, windows = generate_sync_pulses(len(trials), duration, start_time=start)
    sync_config = SyncConfig(first_pulse_threshold=start - 1.0,
                             last_pulse_threshold=float(sync_b[-1]) + 1.0 if len(sync_b) else start + 1.0)

    names = electrode_names(n_tuned + n_untuned + n_silent)
    channels = [SpikeChannel('TTL_A', sync_a), SpikeChannel('TTL_B', sync_b)]
    preferred = {}
    for i, name in enumerate(names):
        if i < n_tuned:
            pref = float(rng.choice(np.asarray(directions, dtype=float)))
            preferred[name] = pref
            spikes = generate_tuned_spike_train(windows, trials.direction, pref, peak_rate, rng=rng)
        elif i < n_tuned + n_untuned:
            spikes = generate_tuned_spike_train(windows, trials.direction, None, untuned_rate, rng=rng)
        else:
            spikes = np.empty(0)
        channels.append(SpikeChannel(name, spikes, electrode_coordinate(name)))

    design = StimulusDesign(directions, speeds, duration, repeats)
    return SyntheticExperiment(Recording(channels, name='synthetic'), design, trials, windows,
                               sync_config, preferred)
