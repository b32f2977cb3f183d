#!/usr/bin/env python3
"""
Fit entities - plain containers describing one fit result to be plotted.

Sources and Systematics define the layout of the parameter vector, Signals
tie a model to a Source and a dataset, and Observables fix the binning and
axis order of every histogram that gets compared.
"""

from dataclasses import dataclass, field
from typing import Any, Tuple


@dataclass
class Interval:
    """Best-fit point estimate with its (unused) interval bounds."""
    point_estimate: float
    lower: float = 0.0
    upper: float = 0.0


@dataclass
class Source:
    """Named fit component; index is its position in the parameter vector."""
    name: str
    index: int


@dataclass
class Systematic:
    """Nuisance component contributing npars entries after all Sources."""
    name: str
    npars: int = 1

    def parameter_names(self):
        return [f"{self.name}_{j}" for j in range(self.npars)]


@dataclass
class Signal:
    """
    One expected-rate model contributing to a dataset prediction.

    Attributes:
        name: Internal name, used for histogram object names
        title: Legend title
        source: Source whose normalization parameter scales this signal
        dataset: Dataset id the signal belongs to
        nexpected: Nominal expected number of events
        n_mc: Number of Monte Carlo events the model was generated from
        histogram: Model-evaluation object (see model_evaluation.ModelEvaluator)
    """
    name: str
    title: str
    source: Source
    dataset: int
    nexpected: float
    n_mc: int
    histogram: Any = None


@dataclass
class Observable:
    """One measured quantity with its binning and display configuration."""
    name: str
    title: str
    lower: float
    upper: float
    bins: int
    units: str = ""
    yrange: Tuple[float, float] = field(default=(-1.0, -1.0))
    logscale: bool = False

    @property
    def bin_width(self) -> float:
        return (self.upper - self.lower) / self.bins

    def y_axis_title(self, live_time: float) -> str:
        """Events per bin width per unit live time, e.g. 'Events/0.25 MeV/1 y'."""
        return f"Events/{self.bin_width:.3g} {self.units}/{live_time:g} y"
