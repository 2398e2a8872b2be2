"""Bedtools wrappers: TE shuffling and TE/feature intersection."""

import logging
from pathlib import Path
from typing import List, Optional, Union

from teshuffle.enrich.counter import IntersectionRecord
from teshuffle.exceptions import CollaboratorError
from teshuffle.te.age import AgeMap
from teshuffle.te.catalog import decode_te_name
from teshuffle.utils.config import SHUFFLE_EXCL_FRACTION, SHUFFLE_MAX_TRIES
from teshuffle.utils.subprocess_utils import run_command, tool_path

logger = logging.getLogger(__name__)

TE_BED_NCOLS = 6


def parse_intersect_line(line: str, age_map: Optional[AgeMap] = None) -> IntersectionRecord:
    """
    Parse one line of ``bedtools intersect -a <TE BED6> -b <features> -wo``.

    The first 6 columns are the TE fragment, the next 3 the feature
    coordinates (its identity), the last one the overlap length.

    Raises:
        CollaboratorError: If the line is malformed
    """
    cols = line.rstrip("\n").split("\t")
    if len(cols) < TE_BED_NCOLS + 4:
        raise CollaboratorError(f"Malformed intersection line: {line.strip()!r}")
    try:
        overlap = int(cols[-1])
        donor_id, rname, rclass, rfam = decode_te_name(cols[3], cols[0], cols[1], cols[2])
    except ValueError as e:
        raise CollaboratorError(f"Malformed intersection line: {line.strip()!r} ({e})") from e

    cat1 = cat2 = None
    if age_map:
        labels = age_map.get(rname)
        if labels is not None:
            cat1, cat2 = labels.cat1, labels.cat2

    return IntersectionRecord(
        donor_id=donor_id,
        overlap=overlap,
        rclass=rclass,
        rfam=rfam,
        rname=rname,
        cat1=cat1,
        cat2=cat2,
        feature_id=f"{cols[6]}:{cols[7]}-{cols[8]}",
    )


class BedtoolsIntersector:
    """Intersect TE fragments with the features, every overlapping pair reported."""

    def __init__(self, age_map: Optional[AgeMap] = None, bedtools_dir: Optional[str] = None):
        self.age_map = age_map
        self.bedtools_dir = bedtools_dir

    def command(self, a_file: Union[str, Path], b_file: Union[str, Path], output_file) -> str:
        intersect_bed = tool_path("intersectBed", self.bedtools_dir)
        return f"{intersect_bed} -a {a_file} -b {b_file} -wo > {output_file}"

    def intersect(
        self,
        a_file: Union[str, Path],
        b_file: Union[str, Path],
        work_dir: Union[str, Path],
    ) -> List[IntersectionRecord]:
        """
        Run the intersection and parse it.

        Args:
            a_file: TE BED6 file (as written by AnnotationCatalog)
            b_file: Feature BED file
            work_dir: Run-scoped directory for the joined file

        Returns:
            List of IntersectionRecord, one per overlapping pair
        """
        joined = Path(work_dir) / "joined.txt"
        run_command(self.command(a_file, b_file, joined))
        with open(joined, "r") as f:
            return [parse_intersect_line(line, self.age_map) for line in f if line.strip()]


class BedtoolsRandomizer:
    """Shuffle TE fragments on their own chromosome, avoiding excluded regions."""

    def __init__(
        self,
        range_file: Union[str, Path],
        exclude_file: Union[str, Path],
        include_file: Optional[Union[str, Path]] = None,
        no_overlapping: bool = False,
        bedtools_dir: Optional[str] = None,
        seed: Optional[int] = None,
    ):
        self.range_file = range_file
        self.exclude_file = exclude_file
        self.include_file = include_file
        self.no_overlapping = no_overlapping
        self.bedtools_dir = bedtools_dir
        self.seed = seed

    def command(self, input_file, output_file, run_index: int) -> str:
        cmd = tool_path("shuffleBed", self.bedtools_dir)
        if self.include_file:
            cmd += f" -incl {self.include_file}"
        cmd += f" -i {input_file} -excl {self.exclude_file} -f {SHUFFLE_EXCL_FRACTION}"
        if self.no_overlapping:
            cmd += " -noOverlapping"
        cmd += f" -g {self.range_file} -chrom -maxTries {SHUFFLE_MAX_TRIES}"
        if self.seed is not None:
            cmd += f" -seed {self.seed + run_index}"
        cmd += f" > {output_file}"
        return cmd

    def shuffle(
        self,
        input_file: Union[str, Path],
        work_dir: Union[str, Path],
        run_index: int,
    ) -> Path:
        """
        Shuffle the TE BED file for one bootstrap run.

        Args:
            input_file: TE BED6 file
            work_dir: Run-scoped directory for the shuffled file
            run_index: Bootstrap run number (offsets the seed)

        Returns:
            Path to the shuffled BED file
        """
        output_file = Path(work_dir) / "shuffled.bed"
        run_command(self.command(input_file, output_file, run_index))
        return output_file
