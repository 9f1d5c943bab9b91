# mea_ds/exceptions.py
"""Defines custom exceptions and warnings for the mea_ds library.

Fatal errors abort a whole recording batch before any channel is processed.
Per-channel degeneracies are represented by `DegenerateConditionWarning`
instances that are recorded on the channel's summary rather than raised.
"""

class MEADSError(Exception):
    """Base class for all custom exceptions in the mea_ds library."""
    pass

class AlignmentError(MEADSError, ValueError):
    """Exception raised when trial windows cannot be aligned to the trials.

    This is raised when the number of detected trial windows differs from the
    number of trials in the stimulus log, or when the windows are not strictly
    increasing and non-overlapping.
    """
    pass

class DesignInconsistencyError(MEADSError, ValueError):
    """Exception raised when the stimulus design and trial sequence disagree.

    For example, when the per-trial direction, speed and wavelength sequences
    have different lengths, or a trial value is missing from its axis.
    """
    pass

class ConfigurationError(MEADSError, ValueError):
    """Exception raised for invalid analysis or stimulus parameters.

    These are checked before any computation starts.
    """
    pass

class DegenerateConditionWarning(UserWarning):
    """Marks a speed/wavelength pair with zero firing in every direction.

    The DSI of such a pair is reported as 0 and its preferred direction is
    undefined. Instances are stored on `TuningSummary.warnings`.
    """
    def __init__(self, channel_id: str, speed_index: int, wavelength_index: int):
        self.channel_id = channel_id
        self.speed_index = speed_index
        self.wavelength_index = wavelength_index
        super().__init__(
            f"Channel '{channel_id}' has no spikes in any direction for "
            f"speed index {speed_index}, wavelength index {wavelength_index}."
        )

    def __reduce__(self):
        return (self.__class__, (self.channel_id, self.speed_index, self.wavelength_index))
