"""Configuration constants and run options for teshuffle."""

import os
from dataclasses import asdict, dataclass, field, fields
from typing import List, Optional

import yaml

# Default parameters
DEFAULT_MIN_OVERLAP = 10
DEFAULT_NBOOT = 100
DEFAULT_NONTE_MODE = "no_low"
DEFAULT_WORKERS = 1

# bedtools shuffle parameters
SHUFFLE_MAX_TRIES = 10000
SHUFFLE_EXCL_FRACTION = 2  # % of a shuffled feature allowed over excluded regions

# Stretches of N longer than this are written as assembly gaps
GAP_MIN_LENGTH = 50

# Significance thresholds, most stringent first
SIGNIFICANCE_LEVELS = [
    (0.001, "***"),
    (0.01, "**"),
    (0.05, "*"),
]
NOT_SIGNIFICANT = "ns"
NOT_APPLICABLE = "na"

# Non-TE retention policies
LOW_COMPLEXITY_CLASSES = ["low_complexity", "simple_repeat"]
NONTE_CLASSES = ["nonte"]
FILTERABLE_CLASSES = [
    "nonte",
    "low_complexity",
    "simple_repeat",
    "snrna",
    "srprna",
    "rrna",
    "trna",
    "scrna",
    "satellite",
]
NONTE_MODES = {
    "all": [],
    "no_low": LOW_COMPLEXITY_CLASSES,
    "no_nonTE": NONTE_CLASSES,
    "none": FILTERABLE_CLASSES,
}

TE_FILTER_TYPES = ["name", "class", "family"]

SHUFFLE_EXTENSIONS = (".out", ".bed")


def setup_thread_limits(n_threads: int = 1) -> None:
    """
    Set environment variables to prevent thread oversubscription.

    Bootstrap workers each run their own numpy; keep them single-threaded.

    Args:
        n_threads: Number of threads to allow (default: 1)
    """
    thread_vars = [
        "OMP_NUM_THREADS",
        "OPENBLAS_NUM_THREADS",
        "MKL_NUM_THREADS",
        "VECLIB_MAXIMUM_THREADS",
        "NUMEXPR_NUM_THREADS",
    ]
    for var in thread_vars:
        os.environ[var] = str(n_threads)


def split_paths(value) -> List[str]:
    """Split a comma separated list of files (or pass a list through)."""
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v) for v in value]


@dataclass
class ShuffleConfig:
    """All options of one enrichment run."""

    features: str = ""
    shuffle: str = ""
    range_file: str = ""
    exclude: List[str] = field(default_factory=list)
    include: List[str] = field(default_factory=list)
    build: bool = False
    dogaps: bool = False
    min_overlap: int = DEFAULT_MIN_OVERLAP
    nboot: int = DEFAULT_NBOOT
    no_overlapping: bool = False
    nonte: str = DEFAULT_NONTE_MODE
    te_filter: Optional[str] = None
    contain: bool = False
    age_file: Optional[str] = None
    bedtools_dir: Optional[str] = None
    workers: int = DEFAULT_WORKERS
    seed: Optional[int] = None
    keep_temp: bool = False

    def __post_init__(self):
        self.exclude = split_paths(self.exclude)
        self.include = split_paths(self.include)

    @property
    def filter_type(self) -> Optional[str]:
        if not self.te_filter or "," not in self.te_filter:
            return None
        return self.te_filter.split(",", 1)[0].strip().lower()

    @property
    def filter_name(self) -> Optional[str]:
        if not self.te_filter or "," not in self.te_filter:
            return None
        return self.te_filter.split(",", 1)[1].strip()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "ShuffleConfig":
        """Build a config from a dict; unknown keys are an error."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        return cls(**d)

    @classmethod
    def from_yaml(cls, path: str) -> "ShuffleConfig":
        with open(path, "r") as f:
            d = yaml.safe_load(f) or {}
        return cls.from_dict(d)

    def to_yaml(self, path: str) -> None:
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def merged(self, overrides: dict) -> "ShuffleConfig":
        """Return a copy with every non-None override applied."""
        d = self.to_dict()
        d.update({k: v for k, v in overrides.items() if v is not None})
        return ShuffleConfig.from_dict(d)

    def validate(self) -> List[str]:
        """Check the options, return a list of problems (empty when valid)."""
        problems = []

        if not self.features:
            problems.append("features (-f) is mandatory")
        elif not self.features.endswith(".bed"):
            problems.append(f"features {self.features} is not a .bed file")
        if not self.shuffle:
            problems.append("shuffle (-s) is mandatory")
        elif not self.shuffle.endswith(SHUFFLE_EXTENSIONS):
            problems.append(
                f"shuffle {self.shuffle} is not in a supported format "
                f"({', '.join(SHUFFLE_EXTENSIONS)})"
            )
        if not self.range_file:
            problems.append("range (-r) is mandatory")
        if not self.exclude:
            problems.append("exclude (-e) is mandatory")

        if not isinstance(self.nboot, int) or self.nboot < 0:
            problems.append(f"nboot must be a non-negative integer, got {self.nboot}")
        if not isinstance(self.min_overlap, int) or self.min_overlap < 0:
            problems.append(
                f"min_overlap must be a non-negative integer, got {self.min_overlap}"
            )
        if not isinstance(self.workers, int) or self.workers < 1:
            problems.append(f"workers must be >= 1, got {self.workers}")

        if self.nonte not in NONTE_MODES:
            problems.append(
                f"unknown non-TE mode {self.nonte} "
                f"(use one of: {', '.join(NONTE_MODES)})"
            )
        if self.te_filter is not None:
            if "," not in self.te_filter:
                problems.append("te filter requires 2 values separated by a comma (type,name)")
            elif self.filter_type not in TE_FILTER_TYPES:
                problems.append(
                    f"te filter type must be one of {TE_FILTER_TYPES}, got {self.filter_type}"
                )

        return problems
