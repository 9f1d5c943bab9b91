# mea_ds/visualize/plot.py
"""Provides plotting functions for visualizing direction tuning results.

These are typically called via the `.plot()` method of the `Results` object.
"""
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.lines import Line2D

from mea_ds.analysis.tuning import TuningSummary
from mea_ds.data.conditions import ConditionAxes
from mea_ds.io.reader import GRID_SIZE

DS_COLOR = '#d62728'
NON_DS_COLOR = '#7f7f7f'

def set_publication_style():
    """Applies a clean, publication-ready style to matplotlib plots."""
    sns.set_context("paper")
    plt.rcParams.update({
        "font.family": "serif", "mathtext.fontset": "cm",
        'figure.dpi': 100, 'font.size': 14, 'axes.titlesize': 16, 'axes.labelsize': 14,
        'xtick.labelsize': 12, 'ytick.labelsize': 12, 'legend.fontsize': 12
    })

def plot_tuning_curve(summary: TuningSummary, axes: ConditionAxes, speed_index: int = 0,
                      wavelength_index: int = 0, ax: Optional[plt.Axes] = None, **kwargs) -> plt.Axes:
    """Plots a polar tuning curve for one speed x wavelength pair.

    The closed curve shows the firing rate per direction. Where a preferred
    direction exists, an arrow points at it with a length equal to
    ``DSI * max rate``.

    Parameters
    ----------
    summary : TuningSummary
        The channel's tuning summary.
    axes : ConditionAxes
        The condition axes, supplying the direction values.
    speed_index, wavelength_index : int, optional
        The pair to plot. Default to 0.
    ax : plt.Axes, optional
        A polar Axes object to plot on. If None, a new figure is created.
    **kwargs : dict
        Additional keyword arguments passed to `ax.plot`.
    """
    if ax is None: fig, ax = plt.subplots(1, 1, figsize=(6, 6), subplot_kw={'projection': 'polar'})

    pair = summary.pair(speed_index, wavelength_index)
    theta = np.deg2rad(np.append(axes.directions, axes.directions[0]))
    r = np.append(pair.rates, pair.rates[0])
    ax.plot(theta, r, 'o-', label='Rate (Hz)', **kwargs)
    ax.fill(theta, r, alpha=0.15)

    if pair.preferred_direction is not None:
        length = pair.dsi * pair.rates.max()
        ax.annotate('', xy=(np.deg2rad(pair.preferred_direction), length), xytext=(0, 0),
                    arrowprops=dict(arrowstyle='->', color=DS_COLOR, lw=2))
        title = f"{summary.channel_id}: DSI = {pair.dsi:.2f}, pref = {pair.preferred_direction:.0f}°"
    elif pair.degenerate:
        title = f"{summary.channel_id}: no spikes"
    else:
        title = f"{summary.channel_id}: no preferred direction"
    ax.set_title(title, pad=20)
    return ax

def plot_dsi_distribution(cells_df: pd.DataFrame, dsi_threshold: Optional[float] = None,
                          ax: Optional[plt.Axes] = None, bins: int = 20, **kwargs) -> plt.Axes:
    """Plots a histogram of averaged DSI, split by classification.

    Channels with an undefined averaged DSI are left out.

    Parameters
    ----------
    cells_df : pd.DataFrame
        The per-channel table from `Results.dataframe`.
    dsi_threshold : float, optional
        If given, drawn as a vertical dashed line.
    ax : plt.Axes, optional
        Axes to draw on. If None, a new figure is created.
    bins : int, optional
        Number of histogram bins over [0, 1]. Defaults to 20.
    """
    if ax is None: fig, ax = plt.subplots(1, 1, figsize=(8, 5))

    df = cells_df.dropna(subset=['mean_dsi'])
    edges = np.linspace(0, 1, bins + 1)
    for is_ds, color, label in [(False, NON_DS_COLOR, 'Non-selective'), (True, DS_COLOR, 'Direction-selective')]:
        values = df.loc[df['is_direction_selective'] == is_ds, 'mean_dsi'].to_numpy(dtype=float)
        ax.hist(values, bins=edges, color=color, alpha=0.7, label=f"{label} (n={len(values)})", **kwargs)
    if dsi_threshold is not None:
        ax.axvline(x=dsi_threshold, color='k', linestyle='--', label=f'Threshold = {dsi_threshold}')

    ax.set_xlabel('Mean DSI'); ax.set_ylabel('Channels')
    ax.set_title('Direction Selectivity'); ax.legend()
    ax.grid(True, linestyle=':'); sns.despine(ax=ax)
    return ax

def plot_array_map(cells_df: pd.DataFrame, ax: Optional[plt.Axes] = None, **kwargs) -> plt.Axes:
    """Plots the electrode grid coloured by classification.

    Direction-selective channels get an arrow along their canonical
    preferred direction. Channels without coordinates are skipped.
    """
    if ax is None: fig, ax = plt.subplots(1, 1, figsize=(7, 7))

    df = cells_df.dropna(subset=['x', 'y'])
    colors = np.where(df['is_direction_selective'], DS_COLOR, NON_DS_COLOR)
    ax.scatter(df['x'], df['y'], c=colors, s=kwargs.pop('s', 60), **kwargs)

    ds = df[df['is_direction_selective']].dropna(subset=['canonical_direction'])
    if len(ds):
        angle = np.deg2rad(ds['canonical_direction'].to_numpy(dtype=float))
        ax.quiver(ds['x'].to_numpy(dtype=float), ds['y'].to_numpy(dtype=float),
                  np.cos(angle), np.sin(angle), color=DS_COLOR, scale=25, width=0.004)

    ax.set_xlim(-1, GRID_SIZE); ax.set_ylim(-1, GRID_SIZE)
    ax.set_aspect('equal'); ax.set_xlabel('Column'); ax.set_ylabel('Row')
    handles = [Line2D([0], [0], marker='o', color='w', markerfacecolor=c, markersize=9, label=l)
               for c, l in [(DS_COLOR, 'Direction-selective'), (NON_DS_COLOR, 'Non-selective')]]
    ax.legend(handles=handles, loc='upper right'); ax.set_title('Array Map')
    sns.despine(ax=ax)
    return ax
