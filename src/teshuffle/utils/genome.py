"""Genome range, assembly gap and feature file helpers."""

import gzip
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

import pandas as pd

from teshuffle.exceptions import ConfigurationError
from teshuffle.utils.config import GAP_MIN_LENGTH

logger = logging.getLogger(__name__)


def iter_fasta(filepath: Union[str, Path]) -> Iterator[Tuple[str, str]]:
    """
    Iterate over (name, sequence) pairs of a FASTA file (.gz supported).

    The name is the first word of the header line.
    """
    filepath = str(filepath)
    open_func = gzip.open if filepath.endswith(".gz") else open
    mode = "rt" if filepath.endswith(".gz") else "r"

    current_name = None
    current_seq: List[str] = []
    with open_func(filepath, mode) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if line.startswith(">"):
                if current_name is not None:
                    yield current_name, "".join(current_seq)
                current_name = line[1:].split()[0]
                current_seq = []
            else:
                current_seq.append(line)
    if current_name is not None:
        yield current_name, "".join(current_seq)


def load_range(filepath: Union[str, Path]) -> Dict[str, int]:
    """
    Load a genome range file (name <tab> length, e.g. UCSC *.chrom.sizes).

    Returns:
        Dict sequence name -> length, in file order
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise ConfigurationError(f"Range file not found: {filepath}")
    df = pd.read_csv(filepath, sep="\t", header=None, comment="#", usecols=[0, 1],
                     names=["chrom", "length"], dtype={"chrom": str})
    if df["length"].isna().any():
        raise ConfigurationError(f"{filepath}: every line needs a name and a length")
    sizes = dict(zip(df["chrom"], df["length"].astype(int)))
    logger.info(f"Loaded {len(sizes)} sequences from range file {filepath.name}")
    return sizes


def build_range(
    fasta: Union[str, Path],
    output_file: Union[str, Path, None] = None,
) -> Path:
    """
    Write the range file of a genome FASTA (default: <fasta>.range).

    Returns:
        Path to the range file
    """
    output_file = Path(output_file) if output_file else Path(f"{fasta}.range")
    n = 0
    with open(output_file, "w") as out:
        for name, seq in iter_fasta(fasta):
            out.write(f"{name}\t{len(seq)}\n")
            n += 1
    logger.info(f"Created range file for {n} sequences: {output_file}")
    return output_file


def find_gaps(seq: str, min_length: int = GAP_MIN_LENGTH) -> Iterator[Tuple[int, int]]:
    """Yield 0-based (start, end) of N stretches longer than min_length."""
    for match in re.finditer(r"[Nn]+", seq):
        if match.end() - match.start() > min_length:
            yield match.start(), match.end()


def build_gaps(
    fasta: Union[str, Path],
    output_file: Union[str, Path, None] = None,
    min_length: int = GAP_MIN_LENGTH,
) -> Path:
    """
    Write assembly gaps of a genome FASTA as BED (default: <fasta>.gaps.bed).

    Returns:
        Path to the gap BED file
    """
    output_file = Path(output_file) if output_file else Path(f"{fasta}.gaps.bed")
    n = 0
    with open(output_file, "w") as out:
        for name, seq in iter_fasta(fasta):
            for start, end in find_gaps(seq, min_length):
                out.write(f"{name}\t{start}\t{end}\n")
                n += 1
    logger.info(f"Wrote {n} assembly gaps (N stretches > {min_length} nt) to {output_file}")
    return output_file


def ucsc_gap_to_bed(
    gap_file: Union[str, Path],
    output_file: Union[str, Path, None] = None,
) -> Path:
    """
    Convert a UCSC gap table (bin, chrom, chromStart, chromEnd, ...) to BED.

    Returns:
        Path to the BED file (default: <gap_file>.bed)
    """
    output_file = Path(output_file) if output_file else Path(f"{gap_file}.bed")
    df = pd.read_csv(gap_file, sep="\t", header=None, comment="#", dtype={1: str})
    if df.shape[1] < 4:
        raise ConfigurationError(f"{gap_file}: not a UCSC gap table (needs >= 4 columns)")
    df.iloc[:, 1:4].to_csv(output_file, sep="\t", index=False, header=False)
    logger.info(f"Converted {len(df)} UCSC gaps to {output_file}")
    return output_file


def load_gaps(gap_file: Union[str, Path], dogaps: bool = False) -> Path:
    """
    Get the assembly gaps as a BED file.

    Args:
        gap_file: BED file, UCSC gap table, or genome FASTA (with dogaps)
        dogaps: Compute the gaps from the FASTA file

    Returns:
        Path to a BED file
    """
    if dogaps:
        return build_gaps(gap_file)
    if str(gap_file).endswith(".bed"):
        return Path(gap_file)
    return ucsc_gap_to_bed(gap_file)


def concat_beds(files: List[Union[str, Path]]) -> Path:
    """
    Concatenate BED files into <first-file>.cat.bed (first 3 columns).

    A single file is returned unchanged.
    """
    if not files:
        raise ConfigurationError("No BED file to concatenate")
    if len(files) == 1:
        return Path(files[0])

    output_file = Path(f"{files[0]}.cat.bed")
    frames = []
    for f in files:
        if not Path(f).exists():
            raise ConfigurationError(f"File not found: {f}")
        df = pd.read_csv(f, sep="\t", header=None, comment="#", usecols=[0, 1, 2],
                         dtype={0: str})
        frames.append(df)
    merged = pd.concat(frames, ignore_index=True)
    merged.to_csv(output_file, sep="\t", index=False, header=False)
    logger.info(f"Concatenated {len(files)} files ({len(merged)} regions) into {output_file.name}")
    return output_file


def count_features(filepath: Union[str, Path]) -> int:
    """Number of non-empty, non-comment lines of a feature BED file."""
    n = 0
    with open(filepath, "r") as f:
        for line in f:
            if line.strip() and not line.startswith(("#", "track", "browser")):
                n += 1
    return n
