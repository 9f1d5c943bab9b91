# mea_ds/analysis/__init__.py
"""This package contains the direction tuning analysis and the per-channel pipeline."""
from .tuning import (TuningAnalyzer, TuningSummary, ConditionTuning, direction_selectivity,
                     circular_mean, circular_distance, null_direction_index)
from .pipeline import ChannelPipeline
