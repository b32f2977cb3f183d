#!/usr/bin/env python3
"""
DatasetAggregator - per-dataset running totals and observed-data histograms.

For every known dataset id this class keeps:
- the full-dimensional sum of all scaled signal histograms
- one summed marginal ("total fit" curve) per observable
- one observed-data histogram per observable, binned like the model marginals

Aggregation records are created up front for every dataset, so an empty
record always means "no contribution", never "not seen yet".
"""

import logging
import ROOT
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .fit_data_processor import FitDataProcessor
from .fit_entities import Observable
from .fit_histogram_maker import FitHistogramMaker
from .spectral_overlay import SpectralOverlay

logger = logging.getLogger(__name__)


@dataclass
class DatasetAggregation:
    """Running totals of one dataset."""
    dataset: int
    totals: List[Optional[ROOT.TH1]]
    data: List[Optional[ROOT.TH1]]
    total_nd: Optional[ROOT.TH1] = None
    n_signals: int = 0
    n_records: int = 0
    skipped_marginals: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.n_signals == 0


class DatasetAggregator:
    def __init__(self, datasets: Iterable[int], observables: Sequence[Observable],
                 histogram_maker: Optional[FitHistogramMaker] = None,
                 data_processor: Optional[FitDataProcessor] = None):
        """
        Args:
            datasets: Every dataset id that signals or data may refer to
            observables: Ordered observables (axis order of every histogram)
            histogram_maker: Shared maker for cloning and styling
            data_processor: Shared processor selecting data records per dataset
        """
        self.observables = list(observables)
        self.histogram_maker = histogram_maker or FitHistogramMaker()
        self.data_processor = data_processor or FitDataProcessor()
        self.aggregations: Dict[int, DatasetAggregation] = {}
        for dataset in sorted(set(datasets)):
            self.aggregations[dataset] = self._new_record(dataset)

    def _new_record(self, dataset: int) -> DatasetAggregation:
        n = len(self.observables)
        return DatasetAggregation(dataset=dataset, totals=[None] * n, data=[None] * n)

    @property
    def datasets(self) -> List[int]:
        return list(self.aggregations)

    def __getitem__(self, dataset: int) -> DatasetAggregation:
        return self.aggregations[dataset]

    def add_signal(self, dataset: int, hist_nd: ROOT.TH1,
                   marginals: Sequence[ROOT.TH1], signal_name: str = "") -> None:
        """
        Accumulate one scaled signal into the dataset totals.

        The first contribution seeds each total by cloning; later contributions
        are added bin by bin, negative yields included. Zero-integral marginals
        are skipped once a total exists.
        """
        record = self.aggregations[dataset]

        if record.total_nd is None:
            record.total_nd = hist_nd.Clone(f"htotal_{dataset}")
            record.total_nd.SetDirectory(0)
        else:
            record.total_nd.Add(hist_nd)

        for j, (observable, marginal) in enumerate(zip(self.observables, marginals)):
            if record.totals[j] is None:
                total = marginal.Clone(f"htotal_{dataset}{observable.name}")
                total.SetDirectory(0)
                self.histogram_maker.style_histogram(total, 'total')
                record.totals[j] = total
            elif marginal.Integral() != 0:
                record.totals[j].Add(marginal)
            else:
                logger.warning("Skipping zero-integral %s marginal of signal '%s' in dataset %s",
                               observable.name, signal_name, dataset)
                record.skipped_marginals.append(f"{signal_name}:{observable.name}")

        record.n_signals += 1

    def fill_data(self, records: np.ndarray) -> None:
        """
        Build the observed-data histograms of every dataset.

        Args:
            records: (n_records, n_observables + 1) array, last column dataset id
        """
        for dataset, record in self.aggregations.items():
            selected = self.data_processor.select_dataset(records, dataset)
            record.n_records = len(selected)
            if record.n_records == 0:
                logger.warning("No data records for dataset %s", dataset)

            for j, observable in enumerate(self.observables):
                hdata = self._make_data_histogram(record, j)
                self.histogram_maker.fill_histogram(hdata, selected[:, j])
                record.data[j] = hdata

    def _make_data_histogram(self, record: DatasetAggregation, j: int) -> ROOT.TH1:
        observable = self.observables[j]
        name = f"hdata_{record.dataset}_{observable.name}"

        if record.totals[j] is not None:
            hdata = SpectralOverlay.make_like(record.totals[j], name)
        else:
            logger.warning("Dataset %s has no signals; binning data for %s from the observable",
                           record.dataset, observable.name)
            hdata = self.histogram_maker.create_observable_histogram(observable, name)

        self.histogram_maker.style_histogram(hdata, 'data')
        return hdata

    def reset(self) -> None:
        """Drop every running total and data histogram."""
        for dataset in list(self.aggregations):
            self.aggregations[dataset] = self._new_record(dataset)

    def close(self) -> None:
        """Release all histograms held by the aggregator."""
        self.aggregations.clear()
