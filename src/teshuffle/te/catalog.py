"""
TE annotation catalog.

Loads a RepeatMasker .out file (or a BED file derived from one), applies the
TE subset filter and the non-TE retention policy, writes the BED file that
is shuffled and intersected, and counts every category genome-wide (the
number of trials of the binomial test).

The BED name column carries "donor;name;class/family", which is what the
intersection parser reads back.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

import pandas as pd

from teshuffle.exceptions import ConfigurationError
from teshuffle.te.age import AgeMap
from teshuffle.te.categories import CategoryKey, age_keys, lineage_keys, split_class_family
from teshuffle.utils.config import NONTE_MODES

logger = logging.getLogger(__name__)

BED_COLS = ["chrom", "start", "end", "name", "score", "strand"]

# RepeatMasker .out columns (0-based)
RM_MIN_FIELDS = 15
RM_CHROM, RM_START, RM_END, RM_STRAND = 4, 5, 6, 8
RM_NAME, RM_CLASSFAM, RM_ID = 9, 10, 14


@dataclass(frozen=True)
class TEFragment:
    """One annotated TE fragment (0-based, half-open coordinates)."""

    chrom: str
    start: int
    end: int
    strand: str
    rname: str
    rclass: str
    rfam: str
    donor_id: str

    @property
    def donor_key(self) -> Tuple[str, str, str, str]:
        return (self.donor_id, self.rclass, self.rfam, self.rname)

    @property
    def bed_name(self) -> str:
        return encode_te_name(self.donor_id, self.rname, self.rclass, self.rfam)


def encode_te_name(donor_id: str, rname: str, rclass: str, rfam: str) -> str:
    return f"{donor_id};{rname};{rclass}/{rfam}"


def decode_te_name(
    name: str,
    chrom: str,
    start: Union[int, str],
    end: Union[int, str],
) -> Tuple[str, str, str, str]:
    """
    Read donor id, name, class and family back from a BED name column.

    Three layouts are accepted:
        - "donor;name;class/family" (written by this module)
        - "name;class/family" (donor becomes chrom:start-end)
        - the 15 RepeatMasker .out fields joined by ";" (TE-analysis pipeline)

    Returns:
        (donor_id, rname, rclass, rfam)

    Raises:
        ValueError: If the layout is not recognised
    """
    parts = name.split(";")
    if len(parts) >= RM_CLASSFAM + 1:
        rname, classfam = parts[RM_NAME], parts[RM_CLASSFAM]
        if len(parts) > RM_ID and parts[RM_ID]:
            donor_id = parts[RM_ID]
        else:
            donor_id = f"{chrom}:{start}-{end}"
    elif len(parts) == 3:
        donor_id, rname, classfam = parts
    elif len(parts) == 2:
        rname, classfam = parts
        donor_id = f"{chrom}:{start}-{end}"
    else:
        raise ValueError(f"unrecognised TE name column: {name!r}")
    rclass, rfam = split_class_family(classfam)
    return donor_id, rname, rclass, rfam


def iter_repeatmasker_out(filepath: Union[str, Path]) -> Iterator[TEFragment]:
    """
    Iterate over the fragments of a RepeatMasker .out file.

    Header lines and anything that does not start with a numeric score are
    skipped. Coordinates are converted to 0-based BED starts; strand "C"
    becomes "-".
    """
    with open(filepath, "r") as f:
        for line in f:
            cols = line.split()
            if len(cols) < RM_MIN_FIELDS:
                continue
            try:
                start = int(cols[RM_START]) - 1
                end = int(cols[RM_END])
                float(cols[0])
            except ValueError:
                continue
            rclass, rfam = split_class_family(cols[RM_CLASSFAM])
            yield TEFragment(
                chrom=cols[RM_CHROM],
                start=start,
                end=end,
                strand="-" if cols[RM_STRAND] == "C" else "+",
                rname=cols[RM_NAME],
                rclass=rclass,
                rfam=rfam,
                donor_id=cols[RM_ID],
            )


def iter_te_bed(filepath: Union[str, Path]) -> Iterator[TEFragment]:
    """Iterate over the fragments of a TE BED file (see decode_te_name)."""
    df = pd.read_csv(filepath, sep="\t", header=None, comment="#", dtype=str)
    if df.shape[1] < 4:
        raise ConfigurationError(f"{filepath}: TE BED needs at least 4 columns")
    for row in df.itertuples(index=False):
        chrom, start, end, name = row[0], int(row[1]), int(row[2]), row[3]
        strand = row[5] if len(row) > 5 and row[5] in ("+", "-") else "+"
        try:
            donor_id, rname, rclass, rfam = decode_te_name(name, chrom, start, end)
        except ValueError as e:
            raise ConfigurationError(f"{filepath}: {e}") from e
        yield TEFragment(chrom, start, end, strand, rname, rclass, rfam, donor_id)


class TEFilter:
    """Subset of repeats to keep: by name, class or family; exact or substring."""

    def __init__(self, filter_type: str, value: str, contain: bool = False):
        self.filter_type = filter_type.lower()
        self.value = value.lower()
        self.contain = contain

    def matches(self, fragment: TEFragment) -> bool:
        field_value = {
            "name": fragment.rname,
            "class": fragment.rclass,
            "family": fragment.rfam,
        }[self.filter_type].lower()
        if self.contain:
            return self.value in field_value
        return self.value == field_value


def is_filtered_out(fragment: TEFragment, nonte_mode: str) -> bool:
    """True when the non-TE retention policy drops this fragment's class."""
    return fragment.rclass.lower() in NONTE_MODES[nonte_mode]


def count_categories(
    fragments: Iterable[TEFragment],
    age_map: Optional[AgeMap] = None,
) -> Dict[CategoryKey, int]:
    """
    Genome-wide number of donors (TE copies) per category, at every level.

    Fragments of one copy (same RepeatMasker ID and name) count once, the
    same unit as the observed hits.
    """
    copies = {}
    for frag in fragments:
        copies.setdefault(frag.donor_key, frag)

    totals: Counter = Counter()
    for frag in copies.values():
        totals.update(lineage_keys(frag.rclass, frag.rfam, frag.rname))
        if age_map:
            labels = age_map.get(frag.rname)
            if labels is not None:
                totals.update(age_keys(labels.cat1, labels.cat2))
    return dict(totals)


class AnnotationCatalog:
    """Filtered TE fragments and their genome-wide category totals."""

    def __init__(self, fragments: List[TEFragment], totals: Dict[CategoryKey, int]):
        self.fragments = fragments
        self.totals = totals

    def __len__(self) -> int:
        return len(self.fragments)

    @classmethod
    def from_file(
        cls,
        filepath: Union[str, Path],
        sequences: Optional[Iterable[str]] = None,
        nonte_mode: str = "no_low",
        te_filter: Optional[TEFilter] = None,
        age_map: Optional[AgeMap] = None,
    ) -> "AnnotationCatalog":
        """
        Parse a RepeatMasker .out or TE BED file.

        Args:
            filepath: .out or .bed file
            sequences: Sequence names to keep (those of the genome range);
                None keeps everything
            nonte_mode: Non-TE retention policy (all, no_low, no_nonTE, none)
            te_filter: Optional subset filter
            age_map: Optional age classification, used for the age totals

        Returns:
            AnnotationCatalog instance

        Raises:
            ConfigurationError: If the file is missing, in an unsupported
                format, or nothing is left after filtering
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise ConfigurationError(f"File not found: {filepath}")
        if nonte_mode not in NONTE_MODES:
            raise ConfigurationError(f"Unknown non-TE mode: {nonte_mode}")

        if filepath.suffix == ".out":
            parsed = iter_repeatmasker_out(filepath)
        elif filepath.suffix == ".bed":
            parsed = iter_te_bed(filepath)
        else:
            raise ConfigurationError(f"Unsupported TE file format: {filepath.name}")

        keep_seqs = set(sequences) if sequences is not None else None
        fragments = []
        n_total = n_seq = n_nonte = n_filter = 0
        for frag in parsed:
            n_total += 1
            if keep_seqs is not None and frag.chrom not in keep_seqs:
                n_seq += 1
                continue
            if is_filtered_out(frag, nonte_mode):
                n_nonte += 1
                continue
            if te_filter is not None and not te_filter.matches(frag):
                n_filter += 1
                continue
            fragments.append(frag)

        logger.info(
            f"Loaded {n_total} TE fragments from {filepath.name}: "
            f"{n_seq} not in genome range, {n_nonte} removed by non-TE policy ({nonte_mode}), "
            f"{n_filter} removed by TE filter, {len(fragments)} kept"
        )
        if not fragments:
            raise ConfigurationError(f"No TE fragments left to shuffle from {filepath}")

        return cls(fragments, count_categories(fragments, age_map))

    def write_bed(self, filepath: Union[str, Path]) -> Path:
        """Write the fragments as BED6, name column encoded for intersection."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(
            [
                (f.chrom, f.start, f.end, f.bed_name, ".", f.strand)
                for f in self.fragments
            ],
            columns=BED_COLS,
        )
        df.to_csv(filepath, sep="\t", index=False, header=False)
        logger.info(f"Saved {len(df)} TE fragments to {filepath.name}")
        return filepath
