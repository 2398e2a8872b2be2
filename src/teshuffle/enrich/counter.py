"""Per-run overlap counting across the TE category hierarchy."""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from teshuffle.te.categories import CategoryKey, age_keys, lineage_keys

logger = logging.getLogger(__name__)

# (donor id, class, family, name): the LTR and internal parts of one element
# share a RepeatMasker ID but are distinct copies
DonorKey = Tuple[str, str, str, str]


@dataclass(frozen=True)
class IntersectionRecord:
    """One overlap between a TE fragment (donor) and a feature."""

    donor_id: str
    overlap: int
    rclass: str
    rfam: str
    rname: str
    cat1: Optional[str] = None
    cat2: Optional[str] = None
    feature_id: Optional[str] = None

    @property
    def donor_key(self) -> DonorKey:
        """Copy identity: RepeatMasker ID plus its (class, family, name)."""
        return (self.donor_id, self.rclass, self.rfam, self.rname)


@dataclass
class RunSnapshot:
    """Hit count per category for one run (observed or one bootstrap)."""

    run_id: str
    counts: Dict[CategoryKey, int] = field(default_factory=dict)
    features_hit: Dict[CategoryKey, int] = field(default_factory=dict)

    def get(self, key: CategoryKey) -> int:
        return self.counts.get(key, 0)

    def get_features_hit(self, key: CategoryKey) -> int:
        """Number of distinct features overlapped by the category."""
        return self.features_hit.get(key, 0)

    def keys(self):
        return self.counts.keys()

    def items(self):
        return self.counts.items()

    def __contains__(self, key: CategoryKey) -> bool:
        return key in self.counts

    def __iter__(self) -> Iterator[CategoryKey]:
        return iter(self.counts)

    def __len__(self) -> int:
        return len(self.counts)

    @property
    def total(self) -> int:
        """Hits over all categories (the root node)."""
        return self.get(CategoryKey.root())


def category_keys(rec: IntersectionRecord) -> List[CategoryKey]:
    """Every node a record counts in: lineage, then age."""
    keys = lineage_keys(rec.rclass, rec.rfam, rec.rname)
    keys.extend(age_keys(rec.cat1, rec.cat2))
    return keys


class OverlapCounter:
    """
    Count, for one run, how many donors hit each category.

    A donor adds at most 1 to every node it touches, however many
    intersection records it has: fragmented TEs and TEs spanning several
    features are counted once per node. Features hit are counted per node
    as well, for the detail files.
    """

    def __init__(self, min_overlap: int = 10):
        self.min_overlap = min_overlap

    def count(
        self,
        records: Iterable[IntersectionRecord],
        run_id: str = "no_boot",
        min_overlap: Optional[int] = None,
    ) -> RunSnapshot:
        """
        Build the snapshot of one run.

        Args:
            records: Intersection records of the run
            run_id: Label of the run ("no_boot", "boot.1", ...)
            min_overlap: Minimal overlap length (inclusive); defaults to
                the counter's own threshold

        Returns:
            RunSnapshot instance
        """
        if min_overlap is None:
            min_overlap = self.min_overlap

        donors: Dict[DonorKey, IntersectionRecord] = {}
        hit_features: Dict[CategoryKey, Set[str]] = defaultdict(set)
        n_records = n_short = 0

        for rec in records:
            n_records += 1
            if rec.overlap < min_overlap:
                n_short += 1
                continue
            donors.setdefault(rec.donor_key, rec)
            if rec.feature_id is not None:
                for key in category_keys(rec):
                    hit_features[key].add(rec.feature_id)

        counts: Counter = Counter()
        for rec in donors.values():
            counts.update(category_keys(rec))

        logger.debug(
            f"{run_id}: {n_records} intersection records, {n_short} below "
            f"{min_overlap} nt, {len(donors)} donors hit"
        )
        return RunSnapshot(
            run_id=run_id,
            counts=dict(counts),
            features_hit={key: len(ids) for key, ids in hit_features.items()},
        )
