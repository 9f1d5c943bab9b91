# Expose the main run function and other key components at the top level
from .run import run, run_from_files
from .logger import logger, set_verbosity, verbosity
from .exceptions import (MEADSError, AlignmentError, DesignInconsistencyError,
                         ConfigurationError, DegenerateConditionWarning)
from .config import PipelineConfig, SyncConfig, AnalysisConfig, load_config
from .data import SpikeChannel, Recording, StimulusDesign, TrialSequence, TrialWindow
from . import analysis
from . import data
from . import datasets
from . import io
from . import results
from . import validation
from . import visualize

__all__ = [
    'run', 'run_from_files', 'logger', 'set_verbosity', 'verbosity', 'MEADSError', 'AlignmentError',
    'DesignInconsistencyError', 'ConfigurationError', 'DegenerateConditionWarning',
    'PipelineConfig', 'SyncConfig', 'AnalysisConfig', 'load_config', 'SpikeChannel',
    'Recording', 'StimulusDesign', 'TrialSequence', 'TrialWindow', 'analysis', 'data',
    'datasets', 'io', 'results', 'validation', 'visualize'
]
