# mea_ds/io/reader.py
"""Reads spike timestamp exports from the multi-electrode array software.

The export is a delimited text table whose header row holds the channel
names and whose columns hold spike timestamps in seconds. Columns are
ragged; shorter columns are padded with blank cells.
"""
import re
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import pandas as pd

from mea_ds.data.models import Recording, SpikeChannel
from mea_ds.logger import logger

# Row labels of the 16 x 16 electrode grid; I and Q are not used.
ROW_LETTERS = 'ABCDEFGHJKLMNOPR'
GRID_SIZE = 16
_GRID_NAME = re.compile(r'^(?:.*_)?([A-HJ-PR])(\d{1,2})[a-z]?$')

def electrode_coordinate(name: str, apply_transform: bool = True) -> Tuple[float, float]:
    """Returns the (x, y) grid position of an electrode from its name.

    Parameters
    ----------
    name : str
        The channel name, e.g. ``'D12'``, ``'adch_D12'`` or ``'D12a'``.
    apply_transform : bool, optional
        If True, the row axis is flipped so that ``y`` grows upwards, with
        row ``A`` at the top of the array. If False, ``y`` is the raw row
        index. Defaults to True.

    Returns
    -------
    Tuple[float, float]
        Zero-based column and row position, or ``(nan, nan)`` if the name is
        not an electrode label.
    """
    match = _GRID_NAME.match(name.strip())
    if match is None:
        return np.nan, np.nan
    row = ROW_LETTERS.index(match.group(1))
    col = int(match.group(2)) - 1
    if not 0 <= col < GRID_SIZE:
        return np.nan, np.nan
    y = GRID_SIZE - 1 - row if apply_transform else row
    return float(col), float(y)

def read_spike_export(path: Union[str, Path], apply_coordinate_transform: bool = True,
                      sep: str = '\t', time_scale: float = 1.0) -> Recording:
    """Reads a spike timestamp export into a `Recording`.

    Parameters
    ----------
    path : str or Path
        Path to the exported text file.
    apply_coordinate_transform : bool, optional
        Passed to `electrode_coordinate`. Defaults to True.
    sep : str, optional
        Column delimiter. Defaults to a tab.
    time_scale : float, optional
        Factor converting the stored timestamps to seconds (e.g. ``1e-3`` for
        milliseconds). Defaults to 1.0.

    Returns
    -------
    Recording
        One `SpikeChannel` per column, in file order.

    Raises
    ------
    ValueError
        If a column contains non-numeric entries.
    """
    path = Path(path)
    df = pd.read_csv(path, sep=sep, float_precision='round_trip')
    channels = []
    for name in df.columns:
        raw = df[name]
        times = pd.to_numeric(raw, errors='coerce')
        bad = times.isna() & raw.notna()
        if bad.any():
            raise ValueError(f"Column '{name}' of {path.name} contains non-numeric entries: "
                             f"{raw[bad].head(3).tolist()}.")
        times = times.dropna().to_numpy(dtype=float) * time_scale
        coordinate = electrode_coordinate(str(name), apply_coordinate_transform)
        channels.append(SpikeChannel(str(name), times, coordinate))
    logger.info(f"Read {len(channels)} channels from {path.name}.")
    return Recording(channels, name=path.stem)

def write_spike_export(recording: Recording, path: Union[str, Path], sep: str = '\t'):
    """Writes a `Recording` in the export format read by `read_spike_export`."""
    df = pd.DataFrame({ch.channel_id: pd.Series(ch.spike_times, dtype=float) for ch in recording})
    df.to_csv(path, sep=sep, index=False)
