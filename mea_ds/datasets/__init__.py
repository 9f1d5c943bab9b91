# mea_ds/datasets/__init__.py
"""This package contains functions for generating synthetic experiments.

These functions are useful for testing, validating, and demonstrating the
condition parser and tuning analyzer on data with known direction tuning.
"""
from .generators import (
    SyntheticExperiment,
    electrode_names,
    generate_trial_sequence,
    generate_sync_pulses,
    tuning_rates,
    generate_tuned_spike_train,
    generate_recording,
)

__all__ = [
    'SyntheticExperiment',
    'electrode_names',
    'generate_trial_sequence',
    'generate_sync_pulses',
    'tuning_rates',
    'generate_tuned_spike_train',
    'generate_recording',
]
