"""Shared fixtures for fit_plotting tests."""

import pytest

from fit_plotting.fit_entities import Interval, Observable, Signal, Source, Systematic


@pytest.fixture
def sources():
    return [Source("b8", 0), Source("cno", 1)]


@pytest.fixture
def systematics():
    return [Systematic("energy_scale", 2), Systematic("resolution", 1)]


@pytest.fixture
def best_fit():
    return {
        "b8": Interval(2.0, 1.5, 2.5),
        "cno": Interval(0.5, 0.1, 0.9),
        "energy_scale_0": Interval(0.01),
        "energy_scale_1": Interval(1.02),
        "resolution_0": Interval(0.3),
    }


@pytest.fixture
def energy():
    return Observable("energy", "Energy (MeV)", 0.0, 10.0, 10, units="MeV")


@pytest.fixture
def radius():
    return Observable("radius", "Radius (mm)", 0.0, 10.0, 5, units="mm")


@pytest.fixture
def b8_signal(sources):
    return Signal("b8_av", "^{8}B (AV)", sources[0], 0, nexpected=100.0, n_mc=1000)


class FakeHistogram:
    """Minimal stand-in for a ROOT histogram where only the interface matters."""

    def __init__(self, name="fake", dimension=1, integral=1.0):
        self.name = name
        self.dimension = dimension
        self.integral = integral
        self.directory = "gDirectory"

    def GetName(self):
        return self.name

    def GetDimension(self):
        return self.dimension

    def Integral(self):
        return self.integral

    def Clone(self, name):
        return FakeHistogram(name, self.dimension, self.integral)

    def SetDirectory(self, directory):
        self.directory = directory


@pytest.fixture
def fake_histogram_factory():
    return FakeHistogram
