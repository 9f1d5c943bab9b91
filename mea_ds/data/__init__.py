# mea_ds/data/__init__.py
"""This package contains the data model and the stages that turn raw spike
timestamps into per-condition spike tables.

It provides the `SyncExtractor` for trial windows, the `ConditionIndex` for
mapping trials to conditions, and the `ConditionParser`.
"""
from .models import SpikeChannel, Recording, StimulusDesign, TrialSequence, TrialWindow, ConditionKey
from .conditions import ConditionAxes, ConditionIndex
from .sync import SyncExtractor
from .parser import ConditionParser, ConditionSpikeTable
