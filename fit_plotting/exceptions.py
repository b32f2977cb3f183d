#!/usr/bin/env python3
"""
Custom exceptions for fit result plotting

All fatal conditions of a plotting run derive from FitPlotError, so a caller
can abort on any of them with a single except clause. Non-fatal conditions
(empty marginals, empty datasets) are logged and never raised.
"""


class FitPlotError(Exception):
    """Base exception for all fit plotting errors"""
    pass


class ConfigurationError(FitPlotError):
    """
    Raised when the fit inputs are inconsistent

    Examples:
    - Best-fit result is missing a Source or Systematic parameter
    - Signal refers to an unknown dataset or Source index
    - Raw data array does not hold whole records
    """
    pass


class DimensionalityError(FitPlotError):
    """
    Raised when a model histogram cannot be projected onto the observables

    Examples:
    - Histogram dimension outside {1, 2, 3}
    - Histogram dimension differs from the number of observables
    """
    def __init__(self, dimension: int, n_observables: int = None, signal_name: str = None):
        self.dimension = dimension
        self.n_observables = n_observables
        self.signal_name = signal_name

        if n_observables is None:
            message = f"Unsupported observable dimensionality: {dimension}"
        else:
            message = (f"Model histogram has {dimension} dimension(s) "
                       f"but {n_observables} observable(s) are defined")
        if signal_name:
            message += f" (signal '{signal_name}')"

        super().__init__(message)


class DegenerateNormalizationError(FitPlotError):
    """
    Raised when a model histogram with zero integral must be rescaled
    to an absolute expected count
    """
    def __init__(self, signal_name: str = None, expected: float = None):
        self.signal_name = signal_name
        self.expected = expected

        message = "Cannot rescale a model histogram with zero integral"
        if signal_name:
            message += f" for signal '{signal_name}'"
        if expected is not None:
            message += f" to {expected:g} expected events"

        super().__init__(message)
