# mea_ds/visualize/__init__.py
"""This package contains modules for visualizing analysis results."""
from .plot import plot_tuning_curve, plot_dsi_distribution, plot_array_map, set_publication_style
