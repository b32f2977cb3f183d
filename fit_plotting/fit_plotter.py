#!/usr/bin/env python3
"""
FitPlotter - Main interface for plotting a fit result.

This class provides a high-level interface that combines:
- FitDataProcessor: Parameter vector, efficiencies and data records
- FitHistogramMaker: Projection, rescaling and styling of histograms
- DatasetAggregator: Per-dataset totals and data histograms
- SpectralOverlay: One overlay plot per dataset and observable

For every dataset and observable it overlays the scaled signal spectra,
their summed fit curve and the observed data, and writes the
full-dimensional totals of every dataset to a single ROOT file.
"""

import logging
import os
import ROOT
import numpy as np
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from tqdm import tqdm

from .dataset_aggregator import DatasetAggregator
from .exceptions import ConfigurationError
from .fit_data_processor import FitDataProcessor
from .fit_entities import Observable, Signal, Source, Systematic
from .fit_histogram_maker import FitHistogramMaker, ingest_histogram
from .palette import Palette, default_palette
from .spectral_overlay import DEFAULT_FORMATS, SpectralOverlay

logger = logging.getLogger(__name__)

# Enable batch mode
ROOT.gROOT.SetBatch(True)


class FitPlotter:
    def __init__(self, live_time: float = 1.0, palette: Optional[Palette] = None,
                 line_width: int = 2, total_color: int = ROOT.kMagenta,
                 output_formats: Optional[List[str]] = None,
                 totals_filename: str = "fit_pdfs.root",
                 show_progress: bool = True):
        """
        Initialize the fit plotter.

        Args:
            live_time: Live time in years, used in the y-axis title
            palette: Signal (color, style) palette (default six-entry palette)
            line_width: Line width of every curve
            total_color: Line color of the total fit curve
            output_formats: Export formats of each overlay
            totals_filename: Name of the ROOT file holding the dataset totals
            show_progress: Show a progress bar over signals
        """
        self.live_time = live_time
        self.palette = palette or default_palette()
        self.line_width = line_width
        self.output_formats = list(output_formats or DEFAULT_FORMATS)
        self.totals_filename = totals_filename
        self.show_progress = show_progress

        # Initialize components
        self.data_processor = FitDataProcessor()
        self.histogram_maker = FitHistogramMaker(total_color=total_color)

        # Analysis tracking
        self.analysis_summary = {
            'signals_processed': [],
            'plots_created': [],
            'totals_written': [],
            'skipped': [],
        }

    def create_overlays(self, datasets: Iterable[int],
                        observables: Sequence[Observable]) -> Dict[int, List[SpectralOverlay]]:
        """One overlay per observable for every dataset."""
        overlays = {}
        for dataset in sorted(set(datasets)):
            overlays[dataset] = [
                SpectralOverlay(self.line_width, o.lower, o.upper,
                                o.yrange[0], o.yrange[1], o.logscale,
                                "", o.title, o.y_axis_title(self.live_time),
                                name=f"c_{o.name}_{dataset}",
                                formats=self.output_formats)
                for o in observables
            ]
        return overlays

    def evaluate_signal(self, index: int, signal: Signal, params: np.ndarray,
                        norms: np.ndarray, n_sources: int) -> Tuple[float, ROOT.TH1]:
        """
        Evaluate one signal model at the best-fit parameters.

        Submits the evaluation and waits for it before reading the accepted
        count from norms[index].

        Returns:
            Tuple of (accepted event count, full-dimensional model histogram)
        """
        phist = signal.histogram
        if phist is None:
            raise ConfigurationError(f"Signal '{signal.name}' has no model to evaluate")

        phist.set_parameter_buffer(params, n_sources)
        phist.set_normalization_buffer(norms, index)

        phist.evaluate_async()
        phist.evaluate_finished()

        return float(norms[index]), phist.create_histogram()

    def plot_fit(self, best_fit: Mapping[str, object],
                 sources: Sequence[Source], signals: Sequence[Signal],
                 systematics: Sequence[Systematic], observables: Sequence[Observable],
                 datasets: Iterable[int], data, output_path: str) -> Dict:
        """
        Plot a fit result for every dataset and observable.

        Args:
            best_fit: Mapping from parameter name to Interval (or float)
            sources: Ordered fit sources
            signals: Signals, each tied to a source and a dataset
            systematics: Ordered systematics
            observables: Ordered observables
            datasets: All dataset ids
            data: Flat row-major data records, last value of each is the dataset id
            output_path: Output prefix; plots go to '<output_path><observable>_<dataset>.*'

        Returns:
            Dictionary with the totals file path and, per (dataset, observable
            name), the written files and the number of drawn curves and
            legend entries

        Raises:
            ConfigurationError: inconsistent inputs (before any output)
            DimensionalityError: model histogram cannot be projected
            DegenerateNormalizationError: model histogram with zero integral
        """
        datasets = sorted(set(datasets))
        observables = list(observables)

        # Step 1: Validate inputs and rebuild parameters
        records = self.data_processor.split_data_records(data, len(observables))
        self.data_processor.validate_signals(signals, sources, datasets)
        params = self.data_processor.build_parameter_vector(best_fit, sources, systematics)

        # Step 2: Plots and running totals for every dataset
        overlays = self.create_overlays(datasets, observables)
        aggregator = DatasetAggregator(datasets, observables, self.histogram_maker,
                                       self.data_processor)

        try:
            # Step 3: Evaluate, scale, project and accumulate each signal
            self._process_signals(signals, sources, observables, params, overlays, aggregator)

            # Step 4: Data histograms, totals and export
            aggregator.fill_data(records)
            plots = self._finalize_overlays(observables, overlays, aggregator, output_path)

            # Step 5: Persist full-dimensional totals
            totals_path = self._write_totals(aggregator, output_path)
        finally:
            for dataset_overlays in overlays.values():
                for overlay in dataset_overlays:
                    overlay.close()
            aggregator.close()

        return {
            'totals_path': totals_path,
            'plots': plots,
        }

    def _process_signals(self, signals: Sequence[Signal], sources: Sequence[Source],
                         observables: Sequence[Observable], params: np.ndarray,
                         overlays: Dict[int, List[SpectralOverlay]],
                         aggregator: DatasetAggregator) -> None:
        norms = np.zeros(len(signals), dtype=np.uint32)
        ordinals = defaultdict(int)

        for i, signal in enumerate(tqdm(signals, desc="Evaluating signals", unit="signal",
                                        disable=not self.show_progress)):
            accepted, hpdf_nd = self.evaluate_signal(i, signal, params, norms, len(sources))

            projected = ingest_histogram(hpdf_nd, len(observables), signal.name)
            nexp = self.data_processor.expected_count(signal, accepted, params)
            self.histogram_maker.scale_to_expected(projected.hist, nexp, signal.name)
            hpdf = projected.projections(f"hpdf_{signal.name}_{i}")

            # Colors group signals by their position within the dataset
            ds = signal.dataset
            color, style = self.palette[ordinals[ds]]
            ordinals[ds] += 1

            for j, marginal in enumerate(hpdf):
                self.histogram_maker.style_histogram(marginal, 'signal', color, style)
                drawn = overlays[ds][j].add(marginal, signal.name, signal.title, "hist")
                if drawn is None:
                    self.analysis_summary['skipped'].append(
                        f"{signal.name} ({observables[j].name}, dataset {ds})")

            aggregator.add_signal(ds, projected.hist, hpdf, signal.name)
            self.analysis_summary['signals_processed'].append(f"{signal.name}: {nexp:.2f} expected")

    def _finalize_overlays(self, observables: Sequence[Observable],
                           overlays: Dict[int, List[SpectralOverlay]],
                           aggregator: DatasetAggregator, output_path: str) -> Dict:
        plots = {}
        for ds in aggregator.datasets:
            record = aggregator[ds]
            if record.is_empty:
                logger.warning("Dataset %s has no signals; plotting data only", ds)

            for j, observable in enumerate(observables):
                overlay = overlays[ds][j]
                total = record.totals[j]
                if total is None:
                    # Empty fit curve keeps the legend uniform across datasets
                    total = self.histogram_maker.create_observable_histogram(
                        observable, f"htotal_{ds}{observable.name}")
                    self.histogram_maker.style_histogram(total, 'total')
                overlay.add(total, "fit", "Fit", "hist")
                overlay.add(record.data[j], "data", "Data")

                files = overlay.save(f"{output_path}{observable.name}_{ds}")
                self.analysis_summary['plots_created'].append(
                    f"{output_path}{observable.name}_{ds} ({', '.join(overlay.canvas_config['formats'])})")

                plots[(ds, observable.name)] = {
                    'files': files,
                    'curves': len(overlay.histograms),
                    'legend_entries': len(overlay.legend_entries),
                }
        return plots

    def _write_totals(self, aggregator: DatasetAggregator, output_path: str) -> str:
        totals_path = f"{output_path}{self.totals_filename}"
        directory = os.path.dirname(totals_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        root_file = ROOT.TFile(totals_path, "RECREATE")
        try:
            root_file.cd()
            for ds in aggregator.datasets:
                total = aggregator[ds].total_nd
                if total is None:
                    continue
                total.Write(f"htotal_{ds}")
                self.analysis_summary['totals_written'].append(f"htotal_{ds}: {total.Integral():.2f}")
        finally:
            root_file.Close()

        logger.info("Saved dataset totals to %s", totals_path)
        return totals_path

    def print_summary(self) -> None:
        """Print analysis summary."""
        print("\n" + "=" * 80)
        print("FIT PLOTTER SUMMARY")
        print("=" * 80)

        print(f"\n🎨 CONFIGURATION:")
        print("-" * 50)
        print(f"    • Live time: {self.live_time:g} y")
        print(f"    • Palette entries: {len(self.palette)}")
        print(f"    • Output formats: {', '.join(self.output_formats)}")

        sections = [
            ('signals_processed', "📁 SIGNALS PROCESSED"),
            ('plots_created', "📊 PLOTS CREATED"),
            ('totals_written', "💾 TOTALS WRITTEN"),
            ('skipped', "⚠️  SKIPPED CURVES"),
        ]
        for key, header in sections:
            entries = self.analysis_summary[key]
            if entries:
                print(f"\n{header} ({len(entries)}):")
                print("-" * 50)
                for entry in entries:
                    print(f"    • {entry}")

        # Print component summaries
        self.data_processor.print_processing_summary()

        print("\n" + "=" * 80)


def plot_fit(best_fit: Mapping[str, object], live_time: float,
             sources: Sequence[Source], signals: Sequence[Signal],
             systematics: Sequence[Systematic], observables: Sequence[Observable],
             datasets: Iterable[int], data, output_path: str, **kwargs) -> Dict:
    """
    Plot a fit result with a default FitPlotter.

    Extra keyword arguments are passed to FitPlotter.
    """
    plotter = FitPlotter(live_time=live_time, **kwargs)
    return plotter.plot_fit(best_fit, sources, signals, systematics,
                            observables, datasets, data, output_path)
