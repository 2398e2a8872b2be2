"""
TE enrichment in a feature set, by bootstrap shuffling of the TEs.

Observed run: TEs intersected with the features as they are. Each bootstrap
run: TEs shuffled on their chromosome (avoiding gaps), then intersected.
Counts per TE category are compared with a two-tailed permutation test and
a binomial test.
"""

import logging
import shutil
import tempfile
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from teshuffle import __version__
from teshuffle.enrich.aggregate import NullAggregator, NullDistribution
from teshuffle.enrich.counter import OverlapCounter, RunSnapshot
from teshuffle.enrich.report import ReportWriter, backup_previous, detail_paths, write_run_details
from teshuffle.enrich.significance import SignificanceEngine, SignificanceResult
from teshuffle.te.age import AgeMap, load_age_map
from teshuffle.te.catalog import AnnotationCatalog, TEFilter
from teshuffle.te.categories import CategoryKey
from teshuffle.utils.bedtools import BedtoolsIntersector, BedtoolsRandomizer
from teshuffle.utils.config import ShuffleConfig, setup_thread_limits
from teshuffle.utils.genome import build_range, concat_beds, count_features, load_gaps, load_range
from teshuffle.utils.logging_utils import log_options
from teshuffle.utils.subprocess_utils import require_tools
from teshuffle.utils.validation import validate_config

logger = logging.getLogger(__name__)

PROGRAM = "teshuffle"


def progress_mark(i: int) -> bool:
    """Runs after which progress is logged: 10, 100, 1000, then every 1000."""
    return i in (10, 100, 1000) or (i > 1000 and i % 1000 == 0)


@dataclass
class BootstrapTask:
    """Everything one bootstrap run needs; picklable for worker processes."""

    run_index: int
    te_bed: Path
    features: Path
    temp_root: Path
    randomizer: object
    intersector: object
    counter: OverlapCounter


def run_bootstrap(task: BootstrapTask) -> RunSnapshot:
    """Shuffle, intersect and count one bootstrap run in its own temp directory."""
    work_dir = Path(tempfile.mkdtemp(prefix=f"boot.{task.run_index}.", dir=task.temp_root))
    try:
        shuffled = task.randomizer.shuffle(task.te_bed, work_dir, task.run_index)
        records = task.intersector.intersect(shuffled, task.features, work_dir)
        return task.counter.count(records, run_id=f"boot.{task.run_index}")
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)


@dataclass
class ShuffleResult:
    """Outputs of a run, kept for callers and tests."""

    observed: RunSnapshot
    null: Optional[NullDistribution]
    results: Dict[CategoryKey, SignificanceResult]
    n_features: int
    stats_file: Optional[Path]


class ShuffleAnalysis:
    """One enrichment run, from the input files to the stats table."""

    def __init__(
        self,
        config: ShuffleConfig,
        randomizer=None,
        intersector=None,
        binomial=None,
    ):
        self.config = config
        self._randomizer = randomizer
        self._intersector = intersector
        self.engine = SignificanceEngine(binomial)
        self.counter = OverlapCounter(config.min_overlap)
        self.features = Path(config.features)

        self.age_map: Optional[AgeMap] = None
        self.catalog: Optional[AnnotationCatalog] = None
        self.te_bed: Optional[Path] = None
        self.range_file: Optional[Path] = None
        self.exclude_file: Optional[Path] = None
        self.include_file: Optional[Path] = None

    # ------------------------------------------------------------------
    # Output names
    # ------------------------------------------------------------------

    @property
    def observed_prefix(self) -> Path:
        return Path(f"{self.features}.no_boot")

    @property
    def boot_prefix(self) -> Path:
        return Path(f"{self.features}.boot")

    @property
    def stats_file(self) -> Path:
        name = f"{self.features}.nonTE-{self.config.nonte}"
        if self.config.filter_name:
            name += f".{self.config.filter_name}"
        return Path(f"{name}.{self.config.nboot}.boot.stats.txt")

    def output_files(self) -> List[Path]:
        files = [self.stats_file]
        files.extend(detail_paths(self.observed_prefix).values())
        files.extend(detail_paths(self.boot_prefix).values())
        return files

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def prepare(self) -> None:
        """Validate options, load the genome range, gaps, ages and TEs."""
        cfg = self.config
        validate_config(cfg)
        if self._randomizer is None or self._intersector is None:
            require_tools(["intersectBed", "shuffleBed"], cfg.bedtools_dir)

        logger.info("Loading genome range")
        self.range_file = build_range(cfg.range_file) if cfg.build else Path(cfg.range_file)
        sequences = load_range(self.range_file)

        logger.info(f"Getting ranges to exclude from the shuffling: {', '.join(cfg.exclude)}")
        exclude = list(cfg.exclude)
        exclude[0] = load_gaps(exclude[0], cfg.dogaps)
        self.exclude_file = concat_beds(exclude)
        if cfg.include:
            self.include_file = concat_beds(cfg.include)

        if cfg.age_file:
            logger.info(f"Loading TE ages from {cfg.age_file}")
            self.age_map = load_age_map(cfg.age_file)

        te_filter = None
        if cfg.te_filter:
            te_filter = TEFilter(cfg.filter_type, cfg.filter_name, cfg.contain)
            logger.info(f"Filtering TEs on {cfg.filter_type} = {cfg.filter_name} (contain: {cfg.contain})")
        self.catalog = AnnotationCatalog.from_file(
            cfg.shuffle,
            sequences=sequences,
            nonte_mode=cfg.nonte,
            te_filter=te_filter,
            age_map=self.age_map,
        )
        bed_name = f"{cfg.shuffle}.nonTE-{cfg.nonte}"
        if cfg.filter_name:
            bed_name += f".{cfg.filter_name}"
        self.te_bed = self.catalog.write_bed(f"{bed_name}.bed")

    @property
    def randomizer(self):
        if self._randomizer is None:
            self._randomizer = BedtoolsRandomizer(
                range_file=self.range_file,
                exclude_file=self.exclude_file,
                include_file=self.include_file,
                no_overlapping=self.config.no_overlapping,
                bedtools_dir=self.config.bedtools_dir,
                seed=self.config.seed,
            )
        return self._randomizer

    @property
    def intersector(self):
        if self._intersector is None:
            self._intersector = BedtoolsIntersector(self.age_map, self.config.bedtools_dir)
        return self._intersector

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def observed_run(self, temp_root: Path) -> RunSnapshot:
        work_dir = Path(tempfile.mkdtemp(prefix="no_boot.", dir=temp_root))
        records = self.intersector.intersect(self.te_bed, self.features, work_dir)
        return self.counter.count(records, run_id="no_boot")

    def bootstrap_runs(self, temp_root: Path) -> Iterator[RunSnapshot]:
        """Yield bootstrap snapshots in run order (serial or in a process pool)."""
        tasks = (
            BootstrapTask(
                run_index=i,
                te_bed=self.te_bed,
                features=self.features,
                temp_root=temp_root,
                randomizer=self.randomizer,
                intersector=self.intersector,
                counter=self.counter,
            )
            for i in range(1, self.config.nboot + 1)
        )
        if self.config.workers <= 1:
            for task in tasks:
                yield run_bootstrap(task)
            return

        logger.info(f"Using {self.config.workers} workers for the bootstrap runs")
        with ProcessPoolExecutor(
            max_workers=self.config.workers,
            initializer=setup_thread_limits,
        ) as executor:
            yield from executor.map(run_bootstrap, tasks)

    def run(self) -> ShuffleResult:
        """
        Run the whole analysis.

        Returns:
            ShuffleResult (stats_file is None when nboot is 0)
        """
        cfg = self.config
        logger.info(f"{PROGRAM} v{__version__}")
        log_options(logger, cfg.to_dict())
        self.prepare()

        backup_previous(self.output_files())
        n_features = count_features(self.features)
        logger.info(f"Number of features in {self.features.name}: {n_features}")

        temp_root = Path(tempfile.mkdtemp(prefix=f"{self.features.name}.temp.", dir=self.features.parent))
        try:
            logger.info("Intersecting TEs with features (observed)")
            observed = self.observed_run(temp_root)
            write_run_details(observed, self.observed_prefix, n_features)
            logger.info(f"Observed: {observed.total} TE hits")

            if cfg.nboot == 0:
                logger.info("No bootstrap requested (nboot = 0), no stats")
                return ShuffleResult(observed, None, {}, n_features, None)

            logger.info(f"Running {cfg.nboot} bootstraps")
            aggregator = NullAggregator(universe=observed.keys())
            for i, snapshot in enumerate(self.bootstrap_runs(temp_root), start=1):
                aggregator.fold(snapshot)
                write_run_details(snapshot, self.boot_prefix, n_features)
                if progress_mark(i):
                    logger.info(f"..{i} bootstraps done")
            null = aggregator.finalize()
        finally:
            if cfg.keep_temp:
                logger.info(f"Temporary files kept in {temp_root}")
            else:
                shutil.rmtree(temp_root, ignore_errors=True)

        logger.info("Computing stats")
        results = self.engine.evaluate(observed, null, self.catalog.totals, cfg.nboot)
        writer = ReportWriter(PROGRAM, __version__)
        stats_file = writer.write(
            self.stats_file,
            results,
            observed,
            n_features=n_features,
            nboot=cfg.nboot,
            expected_total=null.mean(CategoryKey.root()),
        )
        logger.info(f"{PROGRAM} done, stats printed in: {stats_file}")
        return ShuffleResult(observed, null, results, n_features, stats_file)


def run_shuffle_analysis(config: ShuffleConfig, **collaborators) -> ShuffleResult:
    """Convenience wrapper: ShuffleAnalysis(config, ...).run()."""
    return ShuffleAnalysis(config, **collaborators).run()
