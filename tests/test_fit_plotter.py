"""
End-to-end tests for FitPlotter.

Requires PyROOT; persisted totals are read back with uproot.
"""

import os

import numpy as np
import pytest

ROOT = pytest.importorskip("ROOT")

from fit_plotting.exceptions import (
    ConfigurationError, DegenerateNormalizationError, DimensionalityError
)
from fit_plotting.fit_data_processor import FitDataProcessor
from fit_plotting.fit_entities import Interval, Observable, Signal, Source, Systematic
from fit_plotting.fit_plotter import FitPlotter, plot_fit
from fit_plotting.dataset_aggregator import DatasetAggregator
from fit_plotting.model_evaluation import ModelEvaluator, TemplateEvaluator
from fit_plotting.palette import Palette
from fit_plotting.spectral_overlay import SpectralOverlay


def _flat_template(name, nbins=10, xmax=10.0):
    hist = ROOT.TH1D(name, "", nbins, 0, xmax)
    for i in range(1, nbins + 1):
        hist.SetBinContent(i, 1.0)
    return hist


class RecordingEvaluator(TemplateEvaluator):
    """Template evaluator remembering the order of its two phases."""

    def __init__(self, template, accepted, log):
        super().__init__(template, accepted)
        self.log = log

    def evaluate_async(self):
        self.log.append(("submit", self.normalization_index))
        return super().evaluate_async()

    def evaluate_finished(self):
        super().evaluate_finished()
        self.log.append(("finished", self.normalization_index))


class FourDimensionalEvaluator(ModelEvaluator):
    def __init__(self, fake):
        super().__init__()
        self.fake = fake

    def evaluate_async(self):
        return True

    def evaluate_finished(self):
        self.normalization_buffer[self.normalization_index] = 10

    def create_histogram(self):
        return self.fake


@pytest.fixture
def plotter():
    return FitPlotter(live_time=1.0, show_progress=False)


@pytest.fixture
def scenario(energy):
    source = Source("b8", 0)
    signal = Signal("b8_av", "^{8}B", source, 0, nexpected=100.0, n_mc=1000,
                    histogram=TemplateEvaluator(_flat_template("e2e_template"), 500))
    return {
        'best_fit': {"b8": Interval(2.0)},
        'sources': [source],
        'signals': [signal],
        'systematics': [],
        'observables': [energy],
        'datasets': {0},
        'data': [1.5, 0, 2.5, 0, 7.5, 0],
    }


def _run(plotter, scenario, output_path):
    return plotter.plot_fit(scenario['best_fit'], scenario['sources'], scenario['signals'],
                            scenario['systematics'], scenario['observables'],
                            scenario['datasets'], scenario['data'], output_path)


@pytest.mark.integration
class TestEndToEnd:
    def test_single_signal_scenario(self, plotter, scenario, tmp_path):
        output_path = f"{tmp_path}/"
        result = _run(plotter, scenario, output_path)

        plot = result['plots'][(0, "energy")]
        # signal, total and data
        assert plot['curves'] == 3
        assert plot['legend_entries'] == 3
        for fmt in ("pdf", "C", "root"):
            assert os.path.exists(f"{output_path}energy_0.{fmt}")

        assert result['totals_path'] == f"{output_path}fit_pdfs.root"
        totals = FitDataProcessor().load_fit_totals(result['totals_path'])
        assert totals[0]['integral'] == pytest.approx(100.0)

    def test_expected_count_recorded(self, plotter, scenario, tmp_path):
        _run(plotter, scenario, f"{tmp_path}/")
        summary = plotter.data_processor.processing_summary
        assert summary['efficiencies']['b8_av'] == pytest.approx(0.5)
        assert summary['expected_counts']['b8_av'] == pytest.approx(100.0)
        assert summary['parameters'] == {"b8": 2.0}

    def test_module_level_entry_point(self, scenario, tmp_path):
        result = plot_fit(scenario['best_fit'], 2.5, scenario['sources'], scenario['signals'],
                          scenario['systematics'], scenario['observables'],
                          scenario['datasets'], scenario['data'], f"{tmp_path}/",
                          show_progress=False, output_formats=["root"])
        assert result['plots'][(0, "energy")]['files'] == [f"{tmp_path}/energy_0.root"]

    def test_two_datasets_two_observables(self, plotter, tmp_path):
        observables = [Observable("energy", "Energy", 0.0, 10.0, 10, "MeV"),
                       Observable("radius", "Radius", 0.0, 5.0, 5, "m")]
        sources = [Source("b8", 0), Source("bkg", 1)]
        systematics = [Systematic("scale", 2)]
        best_fit = {"b8": 1.0, "bkg": 3.0, "scale_0": 0.0, "scale_1": 1.0}

        def template(name):
            hist = ROOT.TH2D(name, "", 10, 0, 10, 5, 0, 5)
            for i in range(1, 11):
                for j in range(1, 6):
                    hist.SetBinContent(i, j, 1.0)
            return hist

        signals = []
        for ds in (0, 1):
            signals.append(Signal(f"b8_{ds}", "B8", sources[0], ds, 10.0, 100,
                                  TemplateEvaluator(template(f"t_b8_{ds}"), 100)))
            signals.append(Signal(f"bkg_{ds}", "Bkg", sources[1], ds, 20.0, 100,
                                  TemplateEvaluator(template(f"t_bkg_{ds}"), 50)))
        data = [1.0, 1.0, 0, 2.0, 4.0, 1, 3.0, 2.0, 1]

        result = plotter.plot_fit(best_fit, sources, signals, systematics, observables,
                                  {0, 1}, data, f"{tmp_path}/out/")

        assert set(result['plots']) == {(0, "energy"), (0, "radius"), (1, "energy"), (1, "radius")}
        for plot in result['plots'].values():
            assert plot['curves'] == 4
        totals = FitDataProcessor().load_fit_totals(result['totals_path'])
        # 10 * 1.0 * 1.0 + 20 * 0.5 * 3.0
        for ds in (0, 1):
            assert totals[ds]['integral'] == pytest.approx(40.0)
            assert totals[ds]['values'].shape == (10, 5)

    def test_evaluations_are_serialized(self, plotter, scenario, energy, tmp_path):
        log = []
        source = scenario['sources'][0]
        scenario['signals'] = [
            Signal(f"s{i}", f"S{i}", source, 0, 10.0, 10,
                   RecordingEvaluator(_flat_template(f"serial_{i}"), 5, log))
            for i in range(3)
        ]
        _run(plotter, scenario, f"{tmp_path}/")
        assert log == [("submit", 0), ("finished", 0),
                       ("submit", 1), ("finished", 1),
                       ("submit", 2), ("finished", 2)]

    def test_palette_ordinal_within_dataset(self, scenario, tmp_path, monkeypatch):
        source = scenario['sources'][0]
        scenario['datasets'] = {0, 1}
        scenario['signals'] = [
            Signal(f"s{i}", f"S{i}", source, ds, 10.0, 10,
                   TemplateEvaluator(_flat_template(f"pal_{i}"), 5))
            for i, ds in enumerate([0, 0, 1])
        ]
        palette = Palette([(ROOT.kRed, 1), (ROOT.kBlue, 2)])
        plotter = FitPlotter(palette=palette, show_progress=False, output_formats=["root"])

        styled = []
        original = plotter.histogram_maker.style_histogram

        def recording(hist, style_type='signal', color=None, line_style=None):
            if style_type == 'signal':
                styled.append((color, line_style))
            original(hist, style_type, color, line_style)

        monkeypatch.setattr(plotter.histogram_maker, "style_histogram", recording)
        _run(plotter, scenario, f"{tmp_path}/")

        assert styled == [(ROOT.kRed, 1), (ROOT.kBlue, 2), (ROOT.kRed, 1)]


@pytest.mark.integration
class TestFailures:
    def test_four_dimensional_model_writes_nothing(self, plotter, scenario, tmp_path,
                                                   fake_histogram_factory):
        scenario['signals'][0].histogram = FourDimensionalEvaluator(
            fake_histogram_factory(dimension=4))

        with pytest.raises(DimensionalityError):
            _run(plotter, scenario, f"{tmp_path}/")
        assert os.listdir(tmp_path) == []

    def test_dimension_mismatch(self, plotter, scenario, tmp_path, radius):
        scenario['observables'].append(radius)
        scenario['data'] = [1.0, 1.0, 0]
        with pytest.raises(DimensionalityError, match="b8_av"):
            _run(plotter, scenario, f"{tmp_path}/")
        assert os.listdir(tmp_path) == []

    def test_missing_best_fit_key(self, plotter, scenario, tmp_path):
        scenario['systematics'] = [Systematic("scale", 1)]
        with pytest.raises(ConfigurationError, match="scale_0"):
            _run(plotter, scenario, f"{tmp_path}/")
        assert os.listdir(tmp_path) == []

    def test_zero_integral_model(self, plotter, scenario, tmp_path):
        empty = ROOT.TH1D("zero_model", "", 10, 0, 10)
        scenario['signals'][0].histogram = TemplateEvaluator(empty, 500)
        with pytest.raises(DegenerateNormalizationError):
            _run(plotter, scenario, f"{tmp_path}/")

    def test_dataset_without_signals_plots_data(self, plotter, scenario, tmp_path):
        scenario['datasets'] = {0, 7}
        scenario['data'] = scenario['data'] + [4.0, 7]
        result = _run(plotter, scenario, f"{tmp_path}/")

        assert result['plots'][(7, "energy")]['curves'] == 1
        assert result['plots'][(7, "energy")]['legend_entries'] == 2
        totals = FitDataProcessor().load_fit_totals(result['totals_path'])
        assert set(totals) == {0}

    def test_unlisted_source_rejected(self, plotter, scenario, tmp_path):
        scenario['signals'][0].source = Source("ghost", 0)
        with pytest.raises(ConfigurationError, match="ghost"):
            _run(plotter, scenario, f"{tmp_path}/")
        assert os.listdir(tmp_path) == []

    def test_totals_file_closed_when_write_fails(self, plotter, energy, tmp_path):
        class FailingTotal:
            def Write(self, name):
                raise RuntimeError("disk full")

            def Integral(self):
                return 0.0

        aggregator = DatasetAggregator({0}, [energy])
        aggregator[0].total_nd = FailingTotal()
        totals_path = f"{tmp_path}/fit_pdfs.root"

        with pytest.raises(RuntimeError, match="disk full"):
            plotter._write_totals(aggregator, f"{tmp_path}/")
        assert not ROOT.gROOT.GetListOfFiles().FindObject(totals_path)


@pytest.mark.integration
def test_negative_estimate_keeps_fit_curve_consistent(energy, tmp_path, monkeypatch):
    sources = [Source("a", 0), Source("b", 1)]
    signals = [
        Signal(name, name, source, 0, nexpected=100.0, n_mc=100,
               histogram=TemplateEvaluator(_flat_template(f"neg_{name}"), 100))
        for name, source in zip(("a", "b"), sources)
    ]
    plotter = FitPlotter(show_progress=False, output_formats=["root"])

    added = {}
    original_add = SpectralOverlay.add

    def recording_add(self, hist, objname, title, options=""):
        added[objname] = hist.Integral()
        return original_add(self, hist, objname, title, options)

    monkeypatch.setattr(SpectralOverlay, "add", recording_add)
    result = plotter.plot_fit({"a": 1.0, "b": -0.2}, sources, signals, [], [energy],
                              {0}, [5.0, 0], f"{tmp_path}/")

    totals = FitDataProcessor().load_fit_totals(result['totals_path'])
    assert totals[0]['integral'] == pytest.approx(80.0)
    assert added["b"] == pytest.approx(-20.0)
    assert added["fit"] == pytest.approx(80.0)
