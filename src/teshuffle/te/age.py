"""TE age classification (lineage and age category per repeat name)."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from teshuffle.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Columns: Rname Rclass Rfam Rclass/Rfam %div(avg) lineage age_category
LINEAGE_COL = 5
AGE_CATEGORY_COL = 6
MISSING_VALUES = {"", "na", "NA", "nd"}


@dataclass(frozen=True)
class AgeLabels:
    """Age labels of one repeat name; cat2 is optional."""

    cat1: str
    cat2: Optional[str] = None


class AgeMap:
    """Mapping repeat name -> AgeLabels. Names absent from the map have no age."""

    def __init__(self, labels: Optional[Dict[str, AgeLabels]] = None):
        self._labels: Dict[str, AgeLabels] = dict(labels or {})

    def get(self, rname: str) -> Optional[AgeLabels]:
        return self._labels.get(rname)

    def __contains__(self, rname: str) -> bool:
        return rname in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __bool__(self) -> bool:
        return bool(self._labels)


def load_age_map(filepath: Union[str, Path]) -> AgeMap:
    """
    Load a TE age file.

    Tab-delimited, one repeat name per line:
        Rname  Rclass  Rfam  Rclass/Rfam  %div(avg)  lineage  age_category
    Rname and lineage are required (other columns may be "na"), and
    age_category may be empty. Lines starting with "#" or a header line
    whose first field is "Rname" are skipped.

    Args:
        filepath: Path to the age file

    Returns:
        AgeMap instance

    Raises:
        ConfigurationError: If the file is missing or a line has no lineage
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise ConfigurationError(f"TE age file not found: {filepath}")

    labels: Dict[str, AgeLabels] = {}
    with open(filepath, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\n\r")
            if not line.strip() or line.startswith("#"):
                continue
            cols = line.split("\t")
            if cols[0].strip().lower() == "rname":
                continue
            if len(cols) <= LINEAGE_COL or cols[LINEAGE_COL].strip() in MISSING_VALUES:
                raise ConfigurationError(
                    f"{filepath.name}:{line_no}: lineage column is required"
                )
            cat2 = None
            if len(cols) > AGE_CATEGORY_COL and cols[AGE_CATEGORY_COL].strip() not in MISSING_VALUES:
                cat2 = cols[AGE_CATEGORY_COL].strip()
            labels[cols[0].strip()] = AgeLabels(cat1=cols[LINEAGE_COL].strip(), cat2=cat2)

    logger.info(f"Loaded age classification for {len(labels)} repeat names from {filepath.name}")
    return AgeMap(labels)
