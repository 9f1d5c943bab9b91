# mea_ds/io/stimulus.py
"""Reads and writes stimulus logs.

A stimulus log is a JSON document holding the declared design and the
realized trial sequence::

    {"directions": [0, 45, ...], "speeds": [500], "duration": 2.0, "repeats": 5,
     "trials": {"direction": [...], "speed": [...], "wavelength": [...]}}
"""
import json
from pathlib import Path
from typing import Tuple, Union

from mea_ds.data.models import StimulusDesign, TrialSequence

_REQUIRED = ('directions', 'speeds', 'duration', 'repeats', 'trials')
_TRIAL_KEYS = ('direction', 'speed', 'wavelength')

def read_stimulus_log(path: Union[str, Path]) -> Tuple[StimulusDesign, TrialSequence]:
    """Reads a stimulus log.

    Returns
    -------
    Tuple[StimulusDesign, TrialSequence]
        The declared design and the realized trials.

    Raises
    ------
    ValueError
        If a required key is missing.
    """
    with open(path, 'r', encoding='utf-8') as f:
        log = json.load(f)
    missing = [k for k in _REQUIRED if k not in log]
    missing += [f"trials.{k}" for k in _TRIAL_KEYS if k not in log.get('trials', {})]
    if missing:
        raise ValueError(f"Stimulus log {path} is missing keys: {missing}.")
    design = StimulusDesign(log['directions'], log['speeds'], log['duration'], log['repeats'])
    trials = TrialSequence(*(log['trials'][k] for k in _TRIAL_KEYS))
    return design, trials

def write_stimulus_log(path: Union[str, Path], design: StimulusDesign, trials: TrialSequence):
    log = {
        'directions': list(design.directions), 'speeds': list(design.speeds),
        'duration': design.duration, 'repeats': design.repeats,
        'trials': {k: getattr(trials, k).tolist() for k in _TRIAL_KEYS},
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(log, f, indent=2)
