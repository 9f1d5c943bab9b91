# tests/test_visualize.py
import pytest
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from unittest.mock import patch

import mea_ds
from mea_ds.analysis.tuning import TuningAnalyzer
from mea_ds.data.conditions import ConditionAxes
from mea_ds.data.models import ConditionKey, StimulusDesign
from mea_ds.data.parser import ConditionSpikeTable
from mea_ds.visualize.plot import (plot_array_map, plot_dsi_distribution, plot_tuning_curve,
                                   set_publication_style)

@pytest.fixture(scope="module")
def results():
    exp = mea_ds.datasets.generate_recording(n_tuned=2, n_untuned=1, n_silent=1, repeats=2, seed=3)
    config = mea_ds.PipelineConfig(sync=exp.sync_config, show_progress=False)
    return mea_ds.run(exp.recording, exp.design, exp.trials, config=config)

@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')

def test_set_publication_style_runs_without_error():
    set_publication_style()

def test_plot_tuning_curve(results):
    fig, ax = plt.subplots(subplot_kw={'projection': 'polar'})
    summary = results.summaries[results.ds_channels[0]]
    assert plot_tuning_curve(summary, results.axes, wavelength_index=1, ax=ax) is ax
    assert 'DSI' in ax.get_title()

def test_plot_tuning_curve_degenerate(results):
    silent = results.summaries[results.channel_ids[-1]]
    ax = plot_tuning_curve(silent, results.axes)
    assert 'no spikes' in ax.get_title()

def test_set_publication_style_overrides_seaborn_context():
    set_publication_style()
    assert plt.rcParams['font.size'] == 14
    assert plt.rcParams['axes.titlesize'] == 16

def test_plot_tuning_curve_uniform_has_no_arrow():
    directions = np.arange(0, 360, 45, dtype=float)
    design = StimulusDesign(directions=directions, speeds=[1], duration=2.0, repeats=5)
    axes = ConditionAxes(directions, [1.0], [1.0])
    spikes = {ConditionKey(d, 0, 0): np.linspace(0.0, 1.0, 50) for d in range(8)}
    config = mea_ds.AnalysisConfig(wavelength_indices=(0,))
    summary = TuningAnalyzer(design, axes, config).analyze(ConditionSpikeTable('B2', axes, spikes))
    ax = plot_tuning_curve(summary, axes)
    assert ax.get_title() == 'B2: no preferred direction'
    assert not ax.texts

def test_plot_dsi_distribution(results):
    ax = plot_dsi_distribution(results.dataframe, dsi_threshold=0.3)
    assert ax.get_xlabel() == 'Mean DSI'

def test_plot_array_map(results):
    ax = plot_array_map(results.dataframe)
    assert ax.get_title() == 'Array Map'

@patch('matplotlib.pyplot.show')
@pytest.mark.parametrize("kind, kwargs", [('dsi', {}), ('array', {}), ('tuning', {'channel': 'A1'})])
def test_results_plot_dispatch(mock_show, results, kind, kwargs):
    results.plot(kind=kind, **kwargs)
    mock_show.assert_called_once()

def test_results_plot_without_show(results):
    with patch('matplotlib.pyplot.show') as mock_show:
        results.plot(kind='dsi', show=False)
        mock_show.assert_not_called()

def test_results_plot_errors(results):
    with pytest.raises(ValueError, match="channel"):
        results.plot(kind='tuning', show=False)
    with pytest.raises(NotImplementedError):
        results.plot(kind='raster', show=False)
