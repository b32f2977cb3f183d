#!/usr/bin/env python3
"""
FitHistogramMaker - ROOT histogram handling for fit result plots.

This module handles:
- Resolving model histograms of dimension 1, 2 or 3 into projectable variants
- Projecting full-dimensional histograms onto each observable axis
- Rescaling model histograms to absolute expected counts
- Creating and filling observed-data histograms
- Styling signal, total and data curves

Designed to work with FitDataProcessor and DatasetAggregator.
"""

import ROOT
import numpy as np
from typing import Dict, List, Optional

from .exceptions import DegenerateNormalizationError, DimensionalityError
from .fit_entities import Observable

# Enable batch mode; histograms are owned by Python, not gDirectory
ROOT.gROOT.SetBatch(True)
ROOT.TH1.AddDirectory(False)


class ProjectedHistogram:
    """Full-dimensional histogram paired with its projection rule."""
    dimension = 0

    def __init__(self, hist: ROOT.TH1):
        self.hist = hist

    def projections(self, name: str) -> List[ROOT.TH1]:
        """One marginal histogram per axis, in X, Y, Z order."""
        raise NotImplementedError

    def _detach(self, hists: List[ROOT.TH1]) -> List[ROOT.TH1]:
        for h in hists:
            h.SetDirectory(0)
        return hists


class ProjectedHistogram1D(ProjectedHistogram):
    dimension = 1

    def projections(self, name: str) -> List[ROOT.TH1]:
        return [self.hist]


class ProjectedHistogram2D(ProjectedHistogram):
    dimension = 2

    def projections(self, name: str) -> List[ROOT.TH1]:
        # Explicit bin ranges keep the other axis' under/overflow out
        nx, ny = self.hist.GetNbinsX(), self.hist.GetNbinsY()
        return self._detach([
            self.hist.ProjectionX(f"{name}_x", 1, ny),
            self.hist.ProjectionY(f"{name}_y", 1, nx),
        ])


class ProjectedHistogram3D(ProjectedHistogram):
    dimension = 3

    def projections(self, name: str) -> List[ROOT.TH1]:
        nx, ny, nz = self.hist.GetNbinsX(), self.hist.GetNbinsY(), self.hist.GetNbinsZ()
        return self._detach([
            self.hist.ProjectionX(f"{name}_x", 1, ny, 1, nz),
            self.hist.ProjectionY(f"{name}_y", 1, nx, 1, nz),
            self.hist.ProjectionZ(f"{name}_z", 1, nx, 1, ny),
        ])


_PROJECTED_TYPES = {
    cls.dimension: cls
    for cls in (ProjectedHistogram1D, ProjectedHistogram2D, ProjectedHistogram3D)
}


def ingest_histogram(hist, n_observables: Optional[int] = None,
                     signal_name: Optional[str] = None) -> ProjectedHistogram:
    """
    Resolve a model histogram into its projectable variant.

    Args:
        hist: ROOT histogram returned by a model evaluation
        n_observables: Expected dimension (skipped if None)
        signal_name: Used in error messages

    Raises:
        DimensionalityError: dimension not in {1, 2, 3} or != n_observables
    """
    dimension = hist.GetDimension()
    if dimension not in _PROJECTED_TYPES:
        raise DimensionalityError(dimension, signal_name=signal_name)
    if n_observables is not None and dimension != n_observables:
        raise DimensionalityError(dimension, n_observables, signal_name)

    return _PROJECTED_TYPES[dimension](hist)


class FitHistogramMaker:
    def __init__(self, total_color: int = ROOT.kMagenta):
        """Initialize the histogram maker."""
        self.default_styles = {
            'total': {
                'line_color': total_color,
                'line_style': 1,
            },
            'data': {
                'line_color': ROOT.kBlack,
                'line_style': 1,
                'marker_style': 20,
                'marker_size': 0.7,
            },
        }

    def scale_to_expected(self, hist: ROOT.TH1, expected: float,
                          signal_name: Optional[str] = None) -> ROOT.TH1:
        """
        Rescale hist in place so that its integral equals expected.

        Raises:
            DegenerateNormalizationError: if the histogram integral is zero
        """
        integral = hist.Integral()
        if integral == 0:
            raise DegenerateNormalizationError(signal_name, expected)

        hist.Scale(expected / integral)
        return hist

    def create_observable_histogram(self, observable: Observable, name: str) -> ROOT.TH1D:
        """Empty 1D histogram with the binning of an observable."""
        hist = ROOT.TH1D(name, "", observable.bins, observable.lower, observable.upper)
        hist.SetDirectory(0)
        hist.GetXaxis().SetTitle(observable.title)
        return hist

    def fill_histogram(self, hist: ROOT.TH1, values: np.ndarray) -> ROOT.TH1:
        """Fill one entry per value."""
        for value in np.asarray(values, dtype=np.float64):
            hist.Fill(float(value))
        return hist

    def style_histogram(self, hist: ROOT.TH1, style_type: str = 'signal',
                        color: Optional[int] = None, line_style: Optional[int] = None) -> None:
        """
        Apply styling to a histogram.

        Args:
            hist: ROOT histogram to style
            style_type: 'signal', 'total' or 'data'
            color: Line color override (required for signals)
            line_style: Line style override
        """
        style_opts: Dict = dict(self.default_styles.get(style_type, {}))
        if color is not None:
            style_opts['line_color'] = color
        if line_style is not None:
            style_opts['line_style'] = line_style

        if 'line_color' in style_opts:
            hist.SetLineColor(style_opts['line_color'])
        if 'line_style' in style_opts:
            hist.SetLineStyle(style_opts['line_style'])
        if 'marker_style' in style_opts:
            hist.SetMarkerStyle(style_opts['marker_style'])
        if 'marker_size' in style_opts:
            hist.SetMarkerSize(style_opts['marker_size'])
