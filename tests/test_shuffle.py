"""Tests for the enrichment pipeline, with in-memory bedtools stand-ins."""

import tempfile
from pathlib import Path

import pytest

from teshuffle.enrich.counter import IntersectionRecord
from teshuffle.enrich.shuffle import ShuffleAnalysis, progress_mark, run_shuffle_analysis
from teshuffle.exceptions import CollaboratorError, ConfigurationError
from teshuffle.te.categories import CategoryKey
from teshuffle.utils.config import ShuffleConfig

RM_OUT = """\
  1111   18.9  4.6  1.0  chr1      101  400 (1000) C  B3            SINE/B2               (0)    216      1     1
  1000   18.0  4.6  1.0  chr1      501  800 (700)  +  B3            SINE/B2                 1    300    (0)   2
  2300    5.0  1.1  0.3  chr1      901 1300 (300)  +  L1Md_T        LINE/L1                 1    400  (5000)   3
"""

B3 = CategoryKey.for_name("SINE", "B2", "B3")
L1MD = CategoryKey.for_name("LINE", "L1", "L1Md_T")


def _records(*specs):
    names = {"B3": ("SINE", "B2", "B3"), "L1Md_T": ("LINE", "L1", "L1Md_T")}
    return [IntersectionRecord(donor, overlap, *names[name]) for donor, name, overlap in specs]


class FakeRandomizer:
    """Write nothing; the file name carries the run index."""

    def __init__(self):
        self.runs = []

    def shuffle(self, input_file, work_dir, run_index):
        self.runs.append(run_index)
        return Path(work_dir) / f"shuffled.{run_index}.bed"


class FakeIntersector:
    """Observed: donor 1 twice and donor 3; odd bootstrap runs: donor 2."""

    def intersect(self, a_file, b_file, work_dir):
        name = Path(a_file).name
        if not name.startswith("shuffled."):
            return _records(("1", "B3", 15), ("1", "B3", 20), ("3", "L1Md_T", 50), ("2", "B3", 5))
        run_index = int(name.split(".")[1])
        if run_index % 2:
            return _records(("2", "B3", 30))
        return []


class FailingIntersector(FakeIntersector):
    """Like FakeIntersector, but bedtools fails on bootstrap run 2."""

    def intersect(self, a_file, b_file, work_dir):
        if Path(a_file).name == "shuffled.2.bed":
            raise CollaboratorError("Command failed with exit status 1: intersectBed")
        return super().intersect(a_file, b_file, work_dir)


def _setup(tmpdir, **kwargs):
    tmpdir = Path(tmpdir)
    (tmpdir / "peaks.bed").write_text("chr1\t100\t200\tp1\nchr1\t350\t700\tp2\nchr1\t1000\t1100\tp3\nchr1\t1500\t1600\tp4\n")
    (tmpdir / "genome.fa.out").write_text(RM_OUT)
    (tmpdir / "genome.range").write_text("chr1\t5000\n")
    (tmpdir / "gaps.bed").write_text("chr1\t4000\t4500\n")
    options = dict(
        features=str(tmpdir / "peaks.bed"),
        shuffle=str(tmpdir / "genome.fa.out"),
        range_file=str(tmpdir / "genome.range"),
        exclude=str(tmpdir / "gaps.bed"),
        nboot=4,
    )
    options.update(kwargs)
    return ShuffleConfig(**options)


def _run(config):
    return run_shuffle_analysis(
        config, randomizer=FakeRandomizer(), intersector=FakeIntersector())


class TestShuffleAnalysis:
    """End to end with stand-in collaborators."""

    def test_observed_counts(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run(_setup(tmpdir))
            assert result.n_features == 4
            assert result.observed.get(B3) == 1
            assert result.observed.get(L1MD) == 1
            assert result.observed.total == 2

    def test_null_distribution(self):
        """Every category holds nboot values, unhit runs as zeros."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run(_setup(tmpdir))
            assert result.null[B3] == (1, 0, 1, 0)
            assert result.null[L1MD] == (0, 0, 0, 0)
            assert {len(result.null[k]) for k in result.null} == {4}

    def test_results(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run(_setup(tmpdir))
            l1 = result.results[L1MD]
            assert l1.rank == 5
            assert l1.perm_pvalue == pytest.approx(0.5)
            assert l1.n_trials == 1
            b3 = result.results[B3]
            assert b3.rank == 5
            assert b3.n_trials == 2
            assert b3.binom_p == pytest.approx(0.25)
            assert b3.binom_pvalue is not None

    def test_output_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run(_setup(tmpdir))
            features = Path(tmpdir) / "peaks.bed"
            assert result.stats_file == Path(f"{features}.nonTE-no_low.4.boot.stats.txt")
            assert result.stats_file.exists()
            assert Path(f"{features}.no_boot.Rname").exists()
            boot_lines = Path(f"{features}.boot.Rclass").read_text().splitlines()
            assert {line.split("\t")[0] for line in boot_lines} == {"boot.1", "boot.3"}
            assert Path(tmpdir, "genome.fa.out.nonTE-no_low.bed").exists()
            # run directories are removed
            assert not list(Path(tmpdir).glob("peaks.bed.temp.*"))

    def test_previous_outputs_kept(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = _setup(tmpdir)
            first = _run(config)
            _run(config)
            assert Path(f"{first.stats_file}.previous").exists()
            boot = Path(tmpdir, "peaks.bed.boot.Rclass")
            assert Path(f"{boot}.previous").read_text() == boot.read_text()

    def test_filter_in_stats_name(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run(_setup(tmpdir, te_filter="class,SINE"))
            assert result.stats_file.name == "peaks.bed.nonTE-no_low.SINE.4.boot.stats.txt"
            # the stand-in intersector ignores the filter: no genome total for L1Md_T
            assert result.results[L1MD].n_trials == 0
            assert result.results[L1MD].binom_significance == "na"

    def test_no_bootstrap(self):
        """nboot = 0 writes the observed details only."""
        with tempfile.TemporaryDirectory() as tmpdir:
            randomizer = FakeRandomizer()
            result = ShuffleAnalysis(
                _setup(tmpdir, nboot=0), randomizer=randomizer, intersector=FakeIntersector()
            ).run()
            assert result.stats_file is None
            assert result.null is None
            assert randomizer.runs == []
            assert Path(tmpdir, "peaks.bed.no_boot.Rclass").exists()
            assert not list(Path(tmpdir).glob("*.stats.txt"))

    def test_runs_in_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            randomizer = FakeRandomizer()
            ShuffleAnalysis(_setup(tmpdir), randomizer=randomizer,
                            intersector=FakeIntersector()).run()
            assert randomizer.runs == [1, 2, 3, 4]

    def test_parallel_matches_serial(self):
        """Worker processes give the same null distribution, in run order."""
        with tempfile.TemporaryDirectory() as tmpdir:
            serial = _run(_setup(tmpdir, nboot=6))
            parallel = _run(_setup(tmpdir, nboot=6, workers=2))
            assert parallel.null[B3] == serial.null[B3] == (1, 0, 1, 0, 1, 0)
            assert {k: parallel.null[k] for k in parallel.null} == {k: serial.null[k] for k in serial.null}
            boot_lines = Path(tmpdir, "peaks.bed.boot.Rclass").read_text().splitlines()
            run_ids = [line.split("\t")[0] for line in boot_lines]
            assert run_ids == sorted(run_ids, key=lambda r: int(r.split(".")[1]))

    def test_failing_worker_aborts(self):
        """A collaborator failure in a worker aborts the whole run."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config = _setup(tmpdir, workers=2)
            with pytest.raises(CollaboratorError):
                run_shuffle_analysis(
                    config, randomizer=FakeRandomizer(), intersector=FailingIntersector())
            assert not list(Path(tmpdir).glob("*.stats.txt"))
            assert not list(Path(tmpdir).glob("peaks.bed.temp.*"))

    def test_invalid_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigurationError):
                _run(_setup(tmpdir, nonte="some"))


def test_progress_mark():
    assert [i for i in range(1, 3001) if progress_mark(i)] == [10, 100, 1000, 2000, 3000]
