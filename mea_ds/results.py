# mea_ds/results.py
"""Defines the `Results` class for storing and interacting with analysis outcomes.

A `Results` object holds, for every neural channel of a recording, its
complete per-condition spike table and its tuning summary, together with
the design, condition axes and trial windows they were computed from.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from mea_ds.analysis.tuning import TuningSummary
from mea_ds.config import PipelineConfig
from mea_ds.data.conditions import ConditionAxes
from mea_ds.data.models import StimulusDesign, TrialWindow
from mea_ds.data.parser import ConditionSpikeTable

def _optional(values) -> pd.arrays.FloatingArray:
    """Nullable float column; undefined values become <NA>."""
    return pd.array([pd.NA if v is None or pd.isna(v) else float(v) for v in values], dtype='Float64')

@dataclass
class Results:
    """A data class to store and interact with the results of a batch run.

    Attributes
    ----------
    design : StimulusDesign
        The declared stimulus design.
    axes : ConditionAxes
        The observed direction, speed and wavelength axes.
    windows : List[TrialWindow]
        The trial windows used for parsing.
    spike_tables : Dict[str, ConditionSpikeTable]
        Per-condition spike collections, keyed by channel id.
    summaries : Dict[str, TuningSummary]
        Tuning summaries, keyed by channel id.
    coordinates : Dict[str, Tuple[float, float]]
        Electrode coordinates, keyed by channel id.
    config : PipelineConfig
        The configuration used for the run.
    """
    design: StimulusDesign
    axes: ConditionAxes
    windows: List[TrialWindow]
    spike_tables: Dict[str, ConditionSpikeTable]
    summaries: Dict[str, TuningSummary]
    coordinates: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    config: PipelineConfig = field(default_factory=PipelineConfig)

    def __repr__(self) -> str:
        return (f"Results(n_channels={len(self.summaries)}, n_direction_selective={len(self.ds_channels)}, "
                f"condition_shape={self.axes.shape})")

    def __len__(self) -> int:
        return len(self.summaries)

    @property
    def channel_ids(self) -> List[str]:
        return list(self.summaries)

    @property
    def ds_channels(self) -> List[str]:
        """Ids of the channels classified as direction selective."""
        return [cid for cid, s in self.summaries.items() if s.is_direction_selective]

    @property
    def dataframe(self) -> pd.DataFrame:
        """One row per channel with its classification.

        Undefined averaged DSI, canonical direction and null index are <NA>.
        """
        s = list(self.summaries.values())
        coords = [self.coordinates.get(x.channel_id, (np.nan, np.nan)) for x in s]
        return pd.DataFrame({
            'channel': [x.channel_id for x in s],
            'x': [c[0] for c in coords],
            'y': [c[1] for c in coords],
            'label': [x.label for x in s],
            'is_direction_selective': [x.is_direction_selective for x in s],
            'max_rate': [x.max_rate for x in s],
            'mean_dsi': _optional([x.mean_dsi for x in s]),
            'canonical_direction': _optional([x.canonical_direction for x in s]),
            'preferred_indices': [x.preferred_indices for x in s],
            'null_index': pd.array([x.null_index for x in s], dtype='Int64'),
            'n_degenerate': [len(x.warnings) for x in s],
        })

    @property
    def tuning_dataframe(self) -> pd.DataFrame:
        """One row per channel and speed x wavelength pair, with per-direction rates.

        Rate columns are named by direction index (``rate_0``, ``rate_1``, ...),
        following the order of `axes.directions`.
        """
        rows = []
        for summary in self.summaries.values():
            for s, speed in enumerate(self.axes.speeds):
                for w, wavelength in enumerate(self.axes.wavelengths):
                    pair = summary.pair(s, w)
                    row = {'channel': summary.channel_id, 'speed_index': s, 'wavelength_index': w,
                           'speed': speed, 'wavelength': wavelength, 'dsi': pair.dsi,
                           'preferred_direction': pair.preferred_direction, 'degenerate': pair.degenerate}
                    row.update({f'rate_{i}': r for i, r in enumerate(pair.rates)})
                    rows.append(row)
        df = pd.DataFrame(rows)
        if len(df):
            df['preferred_direction'] = _optional(df['preferred_direction'].tolist())
        return df

    def plot(self, kind: str = 'dsi', ax: Optional[plt.Axes] = None, **kwargs) -> plt.Axes:
        """Visualizes the results.

        Parameters
        ----------
        kind : {'dsi', 'tuning', 'array'}, optional
            'dsi' plots the distribution of averaged DSI, 'tuning' the polar
            tuning curve of one channel (requires ``channel=``), 'array' the
            electrode map coloured by classification. Defaults to 'dsi'.
        ax : plt.Axes, optional
            Axes to draw on. For 'tuning' it must be a polar axes.
        **kwargs : dict
            Passed to the plotting function; ``show`` (default True) controls
            whether `plt.show()` is called.

        Returns
        -------
        plt.Axes
            The axes containing the plot.
        """
        from mea_ds.visualize.plot import plot_array_map, plot_dsi_distribution, plot_tuning_curve

        show = kwargs.pop('show', True)
        if kind == 'dsi':
            ax = plot_dsi_distribution(self.dataframe, self.config.analysis.dsi_threshold, ax=ax, **kwargs)
        elif kind == 'tuning':
            channel = kwargs.pop('channel', None)
            if channel is None:
                raise ValueError("A 'channel' must be given for kind='tuning'.")
            ax = plot_tuning_curve(self.summaries[channel], self.axes, ax=ax, **kwargs)
        elif kind == 'array':
            ax = plot_array_map(self.dataframe, ax=ax, **kwargs)
        else:
            raise NotImplementedError(f"Plotting is not implemented for kind: '{kind}'")

        if show:
            plt.tight_layout()
            plt.show()
        return ax

    def to_dict(self) -> Dict[str, Any]:
        """Returns the metadata needed to rebuild the results from stored tables."""
        return {
            'design': {'directions': list(self.design.directions), 'speeds': list(self.design.speeds),
                       'duration': self.design.duration, 'repeats': self.design.repeats},
            'axes': self.axes.to_dict(),
            'windows': [list(w) for w in self.windows],
            'coordinates': {k: list(v) for k, v in self.coordinates.items()},
            'channels': self.channel_ids,
            'config': self.config.to_dict(),
        }
