#!/usr/bin/env python3
"""
Model evaluation contract used by FitPlotter.

The evaluation engine turns a parameter vector into a model histogram. It is
asynchronous-capable: a request is submitted with evaluate_async() and its
results (the histogram and the accepted-event count written into the
normalization slot) are only valid after evaluate_finished() returns.
"""

from abc import ABC, abstractmethod
from itertools import count

import numpy as np


class ModelEvaluator(ABC):
    def __init__(self):
        self.parameter_buffer = None
        self.n_sources = 0
        self.normalization_buffer = None
        self.normalization_index = None

    def set_parameter_buffer(self, params: np.ndarray, n_sources: int) -> None:
        """Parameters are read-only for the evaluator; the first n_sources are normalizations."""
        self.parameter_buffer = params
        self.n_sources = n_sources

    def set_normalization_buffer(self, norms: np.ndarray, index: int) -> None:
        """Slot norms[index] receives the accepted-event count of the next evaluation."""
        self.normalization_buffer = norms
        self.normalization_index = index

    @abstractmethod
    def evaluate_async(self) -> bool:
        """Submit an evaluation; returns True once the request is queued."""

    @abstractmethod
    def evaluate_finished(self) -> None:
        """Block until the submitted evaluation has completed."""

    @abstractmethod
    def create_histogram(self):
        """ROOT histogram (TH1/TH2/TH3) of the last completed evaluation."""


class TemplateEvaluator(ModelEvaluator):
    """
    Evaluator serving a fixed template histogram and accepted-event count.

    Useful for previews and tests, where the model shape does not depend
    on the parameters.
    """
    _serial = count()

    def __init__(self, template, accepted: int):
        super().__init__()
        self.template = template
        self.accepted = accepted
        self._pending = False
        self._completed = False

    def evaluate_async(self) -> bool:
        if self.normalization_buffer is None:
            raise RuntimeError("Normalization buffer must be set before evaluation")
        self._pending = True
        self._completed = False
        return True

    def evaluate_finished(self) -> None:
        if self._pending:
            self.normalization_buffer[self.normalization_index] = self.accepted
            self._pending = False
            self._completed = True

    def create_histogram(self):
        if not self._completed:
            raise RuntimeError("No completed evaluation to create a histogram from")
        hist = self.template.Clone(f"{self.template.GetName()}_eval{next(self._serial)}")
        hist.SetDirectory(0)
        return hist
