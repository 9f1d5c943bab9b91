# mea_ds/logger.py
"""The `mea_ds` library logger.

All modules log through the single `logger` defined here. Batch-level
progress (trial windows, condition grid, classification counts) is logged at
INFO, per-channel details at DEBUG. `set_verbosity` changes the level for the
rest of the session; `verbosity` changes it only for the duration of a block,
which is how `run(verbose=False)` silences a single batch.
"""
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Union

_LEVELS = {
    0: logging.CRITICAL, 1: logging.ERROR, 2: logging.WARNING,
    3: logging.INFO, 4: logging.DEBUG,
    'CRITICAL': logging.CRITICAL, 'ERROR': logging.ERROR,
    'WARNING': logging.WARNING, 'INFO': logging.INFO, 'DEBUG': logging.DEBUG
}

def setup_logger(name: str = 'mea_ds', level: int = logging.INFO, stream=None) -> logging.Logger:
    """Creates the library logger with a single console handler.

    Parameters
    ----------
    name : str, optional
        The logger name. Defaults to 'mea_ds'.
    level : int, optional
        Initial level of the logger and its handler. Defaults to `logging.INFO`.
    stream : file-like, optional
        Where records are written. Defaults to `sys.stdout`.

    Returns
    -------
    logging.Logger
        The configured logger. Calling this again returns it unchanged.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)
    return logger

logger = setup_logger()

def _resolve(level: Union[int, str]) -> int:
    return _LEVELS.get(level.upper() if isinstance(level, str) else level, logging.INFO)

def set_verbosity(level: Union[int, str]):
    """Sets the level of the library logger and its handlers.

    Parameters
    ----------
    level : int or str
        0 (CRITICAL) to 4 (DEBUG), or a level name such as 'WARNING'.
        Unrecognized values fall back to INFO.
    """
    log_level = _resolve(level)
    logger.setLevel(log_level)
    for handler in logger.handlers:
        handler.setLevel(log_level)

@contextmanager
def verbosity(level: Union[int, str]) -> Iterator[logging.Logger]:
    """Temporarily sets the logger level, restoring the previous one on exit."""
    previous = logger.level
    set_verbosity(level)
    try:
        yield logger
    finally:
        logger.setLevel(previous)
        for handler in logger.handlers:
            handler.setLevel(previous)
