# mea_ds/io/store.py
"""Persists `Results` objects to disk and loads them back.

Results are stored as a pickled dictionary of pandas DataFrames plus the
metadata needed to rebuild them. Spike tables are stored in long format and
empty conditions are restored from the condition axes on load. Tuning
summaries are recomputed from the restored spike tables, which is exact
because the analysis is deterministic.
"""
from pathlib import Path
from typing import Union

import pandas as pd

from mea_ds.analysis.tuning import TuningAnalyzer
from mea_ds.config import PipelineConfig
from mea_ds.data.conditions import ConditionAxes
from mea_ds.data.models import StimulusDesign, TrialWindow
from mea_ds.data.parser import SPIKE_DTYPES, ConditionSpikeTable
from mea_ds.logger import logger
from mea_ds.results import Results

FORMAT_VERSION = 1

def save_results(results: Results, path: Union[str, Path]):
    """Saves `results` to `path`.

    The stored dictionary contains the DataFrames ``spikes``, ``cells`` and
    ``tuning`` and a ``meta`` dictionary (design, axes, windows, coordinates,
    channel order and configuration).
    """
    frames = [table.to_dataframe() for table in results.spike_tables.values()]
    frames = [f for f in frames if len(f)]
    spikes = (pd.concat(frames, ignore_index=True) if frames
              else pd.DataFrame({c: pd.Series(dtype=t) for c, t in SPIKE_DTYPES.items()}))
    payload = {
        'format_version': FORMAT_VERSION,
        'spikes': spikes,
        'cells': results.dataframe,
        'tuning': results.tuning_dataframe,
        'meta': results.to_dict(),
    }
    pd.to_pickle(payload, path)
    logger.info(f"Saved results for {len(results)} channels to {path}.")

def load_results(path: Union[str, Path]) -> Results:
    """Loads results written by `save_results`."""
    payload = pd.read_pickle(path)
    if payload.get('format_version') != FORMAT_VERSION:
        raise ValueError(f"Unsupported results format version: {payload.get('format_version')}.")
    meta = payload['meta']
    d = meta['design']
    design = StimulusDesign(d['directions'], d['speeds'], d['duration'], d['repeats'])
    axes = ConditionAxes(**meta['axes'])
    config = PipelineConfig.from_dict(meta['config'])
    analyzer = TuningAnalyzer(design, axes, config.analysis)

    spikes = payload['spikes']
    grouped = {cid: group for cid, group in spikes.groupby('channel', sort=False)} if len(spikes) else {}
    tables, summaries = {}, {}
    for cid in meta['channels']:
        table = ConditionSpikeTable.from_dataframe(cid, axes, grouped.get(cid, spikes.iloc[0:0]))
        tables[cid] = table
        summaries[cid] = analyzer.analyze(table)

    return Results(
        design=design, axes=axes,
        windows=[TrialWindow(*w) for w in meta['windows']],
        spike_tables=tables, summaries=summaries,
        coordinates={k: tuple(v) for k, v in meta['coordinates'].items()},
        config=config,
    )
