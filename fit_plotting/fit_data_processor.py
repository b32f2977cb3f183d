#!/usr/bin/env python3
"""
FitDataProcessor - Pure numerical bookkeeping for fit result plots.

This class handles all the computational aspects that do not need ROOT:
- Rebuilding the dense parameter vector from a best-fit result
- Computing signal efficiencies and absolute expected counts
- Reshaping and selecting raw data records per dataset
- Reading observed events and persisted fit totals with uproot

Designed to feed FitHistogramMaker and DatasetAggregator.
"""

import logging
import uproot
import numpy as np
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .exceptions import ConfigurationError
from .fit_entities import Signal, Source, Systematic

logger = logging.getLogger(__name__)


def _point_estimate(value) -> float:
    """Accept an Interval-like object or a bare number."""
    return float(getattr(value, 'point_estimate', value))


class FitDataProcessor:
    def __init__(self):
        """Initialize the data processor."""
        self.processing_summary = {
            'parameters': {},
            'efficiencies': {},
            'expected_counts': {},
            'records_per_dataset': {},
        }

    def parameter_names(self, sources: Sequence[Source],
                        systematics: Sequence[Systematic]) -> List[str]:
        """Best-fit keys in parameter vector order."""
        names = []
        for i, source in enumerate(sources):
            if source.index != i:
                raise ConfigurationError(
                    f"Source '{source.name}' has index {source.index} but is listed at position {i}")
            names.append(source.name)
        for systematic in systematics:
            if systematic.npars < 0:
                raise ConfigurationError(
                    f"Systematic '{systematic.name}' declares {systematic.npars} parameters")
            names.extend(systematic.parameter_names())
        return names

    def build_parameter_vector(self, best_fit: Mapping[str, object],
                               sources: Sequence[Source],
                               systematics: Sequence[Systematic]) -> np.ndarray:
        """
        Rebuild the parameter vector from a best-fit result.

        Position i < len(sources) holds the estimate for sources[i].name; the
        remaining positions hold '<systematic>_<j>' for every systematic in
        declared order.

        Args:
            best_fit: Mapping from parameter name to Interval (or float)
            sources: Ordered sources
            systematics: Ordered systematics

        Returns:
            1D float64 array of length len(sources) + sum(npars)

        Raises:
            ConfigurationError: if any expected key is missing
        """
        names = self.parameter_names(sources, systematics)

        missing = [name for name in names if name not in best_fit]
        if missing:
            raise ConfigurationError(
                f"Best-fit result is missing parameter(s): {', '.join(missing)}")

        params = np.array([_point_estimate(best_fit[name]) for name in names],
                          dtype=np.float64)

        logger.info("Best fit")
        for name, value in zip(names, params):
            logger.info("%s %g", name, value)
            self.processing_summary['parameters'][name] = float(value)

        return params

    def validate_signals(self, signals: Sequence[Signal], sources: Sequence[Source],
                         datasets: Iterable[int]) -> None:
        """
        Check every signal against the source list and dataset set.

        Raises:
            ConfigurationError: on unknown dataset, unlisted source or bad MC count
        """
        dataset_set = set(datasets)
        for signal in signals:
            if signal.dataset not in dataset_set:
                raise ConfigurationError(
                    f"Signal '{signal.name}' belongs to unknown dataset {signal.dataset}")
            if not 0 <= signal.source.index < len(sources):
                raise ConfigurationError(
                    f"Signal '{signal.name}' refers to source '{signal.source.name}' "
                    f"with index {signal.source.index}, but only {len(sources)} sources are defined")
            listed = sources[signal.source.index]
            if listed.name != signal.source.name:
                raise ConfigurationError(
                    f"Signal '{signal.name}' refers to source '{signal.source.name}' "
                    f"but index {signal.source.index} holds source '{listed.name}'")
            if signal.n_mc <= 0:
                raise ConfigurationError(
                    f"Signal '{signal.name}' has non-positive MC event count {signal.n_mc}")

    def efficiency(self, signal: Signal, accepted: float) -> float:
        """Fraction of the signal's generated MC events accepted by the evaluation."""
        eff = 1.0 * accepted / signal.n_mc
        self.processing_summary['efficiencies'][signal.name] = eff
        return eff

    def expected_count(self, signal: Signal, accepted: float, params: np.ndarray) -> float:
        """
        Absolute expected number of events for a signal.

        nexpected * efficiency * params[source index]
        """
        nexp = signal.nexpected * self.efficiency(signal, accepted) * params[signal.source.index]
        self.processing_summary['expected_counts'][signal.name] = float(nexp)
        return float(nexp)

    def split_data_records(self, data, n_observables: int) -> np.ndarray:
        """
        Reshape flat row-major data into (n_records, n_observables + 1).

        The last column of each record is the dataset id.
        """
        if n_observables < 1:
            raise ConfigurationError("At least one observable is required")

        values = np.asarray(data, dtype=np.float64).ravel()
        width = n_observables + 1
        if values.size % width != 0:
            raise ConfigurationError(
                f"Data array of length {values.size} does not hold whole records "
                f"of {width} values")

        return values.reshape(-1, width)

    def select_dataset(self, records: np.ndarray, dataset: int) -> np.ndarray:
        """Rows of records whose trailing dataset id equals dataset."""
        mask = records[:, -1] == dataset
        selected = records[mask]
        self.processing_summary['records_per_dataset'][dataset] = int(np.sum(mask))
        return selected

    def load_data_records(self, file_path: str, observable_branches: Sequence[str],
                          dataset_branch: str = 'dataset',
                          tree_name: Optional[str] = None) -> np.ndarray:
        """
        Read observed events from a ROOT TTree into the flat record layout.

        Args:
            file_path: Path to ROOT file
            observable_branches: One branch per observable, in observable order
            dataset_branch: Branch holding the dataset id
            tree_name: Tree to read (first TTree in the file if None)

        Returns:
            Flat float64 array, (len(observable_branches) + 1) values per event
        """
        with uproot.open(file_path) as file:
            if tree_name is None:
                for key_name in file.keys(cycle=False):
                    if file[key_name].classname == "TTree":
                        tree_name = key_name
                        break

            if not tree_name:
                raise ConfigurationError(f"No TTree found in {file_path}")

            tree = file[tree_name]
            branches = list(observable_branches) + [dataset_branch]
            available = set(tree.keys())
            missing = [name for name in branches if name not in available]
            if missing:
                raise ConfigurationError(
                    f"Required branch not found in {file_path}: {', '.join(missing)}")

            arrays = tree.arrays(branches, library='np')

        columns = [np.asarray(arrays[name], dtype=np.float64) for name in branches]
        return np.column_stack(columns).ravel()

    def load_fit_totals(self, file_path: str, prefix: str = 'htotal_') -> Dict[object, Dict]:
        """
        Read persisted full-dimensional fit totals back without PyROOT.

        Returns:
            {dataset: {'values': ndarray, 'edges': [ndarray per axis], 'integral': float}}
        """
        totals = {}
        with uproot.open(file_path) as file:
            for key_name in file.keys(cycle=False):
                if not key_name.startswith(prefix):
                    continue

                hist = file[key_name]
                values = hist.values(flow=False)
                dataset = key_name[len(prefix):]
                if dataset.lstrip('-').isdigit():
                    dataset = int(dataset)

                totals[dataset] = {
                    'values': values,
                    'edges': [axis.edges(flow=False) for axis in hist.axes],
                    'integral': float(np.sum(values)),
                }

        return totals

    def print_processing_summary(self) -> None:
        """Print the parameters, efficiencies and record counts seen so far."""
        print("\n" + "-" * 50)
        print("FIT DATA PROCESSING")
        print("-" * 50)
        for name, value in self.processing_summary['parameters'].items():
            print(f"    • {name}: {value:g}")
        for name, eff in self.processing_summary['efficiencies'].items():
            nexp = self.processing_summary['expected_counts'].get(name)
            line = f"    • {name}: efficiency {eff:.4f}"
            if nexp is not None:
                line += f", expected {nexp:.2f}"
            print(line)
        for dataset, count in self.processing_summary['records_per_dataset'].items():
            print(f"    • dataset {dataset}: {count} data records")
