"""Fold bootstrap run snapshots into per-category null distributions."""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from teshuffle.enrich.counter import RunSnapshot
from teshuffle.te.categories import CategoryKey

logger = logging.getLogger(__name__)


class NullDistribution:
    """
    Per-category counts over all bootstrap runs.

    Every category holds exactly ``nboot`` values; a run without a hit in a
    category contributed an explicit 0.
    """

    def __init__(self, values: Dict[CategoryKey, Tuple[int, ...]], nboot: int):
        self._values = values
        self.nboot = nboot

    def __getitem__(self, key: CategoryKey) -> Tuple[int, ...]:
        return self._values[key]

    def __contains__(self, key: CategoryKey) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[CategoryKey]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def keys(self) -> List[CategoryKey]:
        return sorted(self._values)

    def mean(self, key: CategoryKey) -> float:
        values = self._values.get(key)
        if not values:
            return 0.0
        return float(np.mean(values))

    def stddev(self, key: CategoryKey) -> float:
        """Population standard deviation (ddof=0)."""
        values = self._values.get(key)
        if not values:
            return 0.0
        return float(np.std(values))


class NullAggregator:
    """
    Accumulate bootstrap snapshots.

    Categories first seen in a later run are back-filled with zeros for the
    earlier runs, and categories missing from a run get a 0 for it, so all
    distributions have one entry per folded run.
    """

    def __init__(self, universe: Optional[Iterable[CategoryKey]] = None):
        self._values: Dict[CategoryKey, List[int]] = {}
        self.n_runs = 0
        if universe is not None:
            self.register(universe)

    def register(self, keys: Iterable[CategoryKey]) -> None:
        """Add categories to the universe, with zeros for runs already folded."""
        for key in keys:
            if key not in self._values:
                self._values[key] = [0] * self.n_runs

    def fold(self, snapshot: RunSnapshot) -> None:
        """Append this run's count for every known category."""
        self.register(snapshot.keys())
        for key, values in self._values.items():
            values.append(snapshot.get(key))
        self.n_runs += 1

    def finalize(self) -> NullDistribution:
        logger.debug(
            f"Null distribution: {len(self._values)} categories over {self.n_runs} runs"
        )
        return NullDistribution(
            {key: tuple(values) for key, values in self._values.items()},
            nboot=self.n_runs,
        )
