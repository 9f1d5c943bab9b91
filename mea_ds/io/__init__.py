# mea_ds/io/__init__.py
"""This package contains readers and writers for recordings, stimulus logs
and analysis results."""
from .reader import read_spike_export, write_spike_export, electrode_coordinate
from .stimulus import read_stimulus_log, write_stimulus_log
from .store import save_results, load_results
