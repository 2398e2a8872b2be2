"""Tests for genome range, gap and feature helpers."""

import gzip
import tempfile
from pathlib import Path

import pytest

from teshuffle.exceptions import ConfigurationError
from teshuffle.utils.genome import (
    build_gaps,
    build_range,
    concat_beds,
    count_features,
    find_gaps,
    iter_fasta,
    load_gaps,
    load_range,
    ucsc_gap_to_bed,
)

FASTA = ">chr1 assembled\nACGTACGTAC\nNNNNNNNNNN\nACGT\n>chr2\n" + "A" * 20 + "\n"


class TestFasta:
    """FASTA reading and range files."""

    def test_iter_fasta(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "genome.fa"
            path.write_text(FASTA)
            records = dict(iter_fasta(path))
            assert list(records) == ["chr1", "chr2"]
            assert len(records["chr1"]) == 24

    def test_gzipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "genome.fa.gz"
            with gzip.open(path, "wt") as f:
                f.write(FASTA)
            assert [name for name, _ in iter_fasta(path)] == ["chr1", "chr2"]

    def test_build_and_load_range(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "genome.fa"
            path.write_text(FASTA)
            range_file = build_range(path)
            assert range_file == Path(f"{path}.range")
            assert load_range(range_file) == {"chr1": 24, "chr2": 20}

    def test_missing_range(self):
        with pytest.raises(ConfigurationError):
            load_range("/nonexistent/genome.range")


class TestGaps:
    """Assembly gaps."""

    def test_find_gaps(self):
        seq = "AC" + "N" * 60 + "GT" + "n" * 51 + "A" + "N" * 50
        assert list(find_gaps(seq)) == [(2, 62), (64, 115)]

    def test_build_gaps(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "genome.fa"
            path.write_text(FASTA)
            gaps = build_gaps(path, min_length=5)
            assert gaps.read_text() == "chr1\t10\t20\n"
            assert load_gaps(path, dogaps=True) == Path(f"{path}.gaps.bed")

    def test_ucsc_gap_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "gap.txt"
            path.write_text(
                "585\tchr1\t0\t10000\t1\tN\t10000\ttelomere\tno\n"
                "586\tchr1\t207666\t257666\t5\tN\t50000\tcontig\tno\n"
            )
            bed = load_gaps(path)
            assert bed == ucsc_gap_to_bed(path)
            assert bed.read_text().splitlines() == ["chr1\t0\t10000", "chr1\t207666\t257666"]

    def test_bed_passthrough(self):
        assert load_gaps("gaps.bed") == Path("gaps.bed")


class TestBedFiles:
    """Concatenation and feature counts."""

    def test_concat(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            a = Path(tmpdir) / "gaps.bed"
            b = Path(tmpdir) / "centromeres.bed"
            a.write_text("chr1\t0\t10\n")
            b.write_text("chr1\t100\t200\tcen\n")
            merged = concat_beds([a, b])
            assert merged == Path(f"{a}.cat.bed")
            assert merged.read_text().splitlines() == ["chr1\t0\t10", "chr1\t100\t200"]

    def test_single_file(self):
        assert concat_beds(["gaps.bed"]) == Path("gaps.bed")

    def test_count_features(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "peaks.bed"
            path.write_text("track name=peaks\n# comment\nchr1\t1\t10\n\nchr2\t5\t50\n")
            assert count_features(path) == 2
