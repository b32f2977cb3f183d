#!/usr/bin/env python3
"""
Fit Plotting Package

This package provides modular components for plotting a fit result: scaled
signal spectra, their summed fit curve and the observed data, overlaid per
dataset and observable.

Components:
- FitDataProcessor: Parameter vector, efficiencies and data records
- FitHistogramMaker: Histogram projection, rescaling and styling (PyROOT)
- DatasetAggregator: Per-dataset totals and data histograms (PyROOT)
- SpectralOverlay: Incremental multi-curve plot with multi-format export (PyROOT)
- FitPlotter: High-level interface combining all components (PyROOT)

The PyROOT-backed components live in their own modules so that the
numerical bookkeeping can be used without a ROOT installation.

Usage:
    from fit_plotting.fit_plotter import FitPlotter

    plotter = FitPlotter(live_time=1.0)
    result = plotter.plot_fit(best_fit, sources, signals, systematics,
                              observables, datasets, data, 'plots/')
"""

from .exceptions import (
    FitPlotError, ConfigurationError, DimensionalityError, DegenerateNormalizationError
)
from .fit_entities import Interval, Source, Systematic, Signal, Observable
from .palette import Palette, default_palette
from .fit_data_processor import FitDataProcessor
from .model_evaluation import ModelEvaluator, TemplateEvaluator

__all__ = [
    'FitPlotError',
    'ConfigurationError',
    'DimensionalityError',
    'DegenerateNormalizationError',
    'Interval',
    'Source',
    'Systematic',
    'Signal',
    'Observable',
    'Palette',
    'default_palette',
    'FitDataProcessor',
    'ModelEvaluator',
    'TemplateEvaluator',
]

__version__ = '1.0.0'
