"""Write the per-run detail tables and the final stats table."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from teshuffle.enrich.counter import RunSnapshot
from teshuffle.enrich.significance import SignificanceResult
from teshuffle.te.categories import CategoryKey
from teshuffle.utils.config import NOT_APPLICABLE

logger = logging.getLogger(__name__)

STATS_COLUMNS = [
    "#Rclass",
    "Rfam",
    "Rname",
    "obs_hits",
    "%_obs_(%of_features)",
    "obs_tot_hits",
    "nb_of_trials(nb_of_TE_in_genome)",
    "exp_avg_hits",
    "exp_sd",
    "%_exp_(%of_features)",
    "exp_tot_hits(avg)",
    "obs_rank_in_exp",
    "2-tailed_permutation-test_pvalue(obs.vs.exp)",
    "significance",
    "binomal_test_proba",
    "binomial_test_95%_confidence_interval",
    "binomial_test_pval",
    "significance",
]

DETAIL_COLUMNS = [
    "run_id",
    "Rclass",
    "Rfam",
    "Rname",
    "hits",
    "nb_features",
    "unhit_features",
    "tot_hits",
]

# Detail file suffix -> node levels written to it
DETAIL_LEVELS = {
    "Rclass": ("root", "class"),
    "Rfam": ("root", "class", "family"),
    "Rname": ("root", "class", "family", "name"),
    "age1": ("age1",),
    "age2": ("age2",),
}


def backup_previous(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """
    Rename existing outputs to <name>.previous (an older .previous is replaced).

    Returns:
        The paths that were moved
    """
    moved = []
    for path in paths:
        path = Path(path)
        if path.exists():
            target = path.with_name(path.name + ".previous")
            path.replace(target)
            moved.append(target)
            logger.info(f"Previous output moved to {target.name}")
    return moved


def detail_paths(prefix: Union[str, Path]) -> Dict[str, Path]:
    prefix = str(prefix)
    return {suffix: Path(f"{prefix}.{suffix}") for suffix in DETAIL_LEVELS}


def write_run_details(
    snapshot: RunSnapshot,
    prefix: Union[str, Path],
    n_features: int,
) -> None:
    """
    Append the counts of one run to <prefix>.Rclass/.Rfam/.Rname/.age1/.age2.

    Columns: run id, class, family, name, hits (donors), features in input,
    features not overlapped by the category, total hits of the run.
    """
    tot_hits = snapshot.total
    for suffix, path in detail_paths(prefix).items():
        levels = DETAIL_LEVELS[suffix]
        rows = [
            (snapshot.run_id, *key.as_tuple(), hits, n_features,
             n_features - snapshot.get_features_hit(key), tot_hits)
            for key, hits in sorted(snapshot.items())
            if key.level in levels
        ]
        if not rows:
            continue
        df = pd.DataFrame(rows, columns=DETAIL_COLUMNS)
        with open(path, "a") as fh:
            df.to_csv(fh, sep="\t", index=False, header=False)


def _percent(value: float, n_features: int):
    if value == 0 or n_features == 0:
        return 0
    return value / n_features * 100


def _format_conf(conf) -> Optional[str]:
    if conf is None:
        return None
    return f"{conf[0]}-{conf[1]}"


class ReportWriter:
    """Format SignificanceResult entries into the tab-delimited stats table."""

    def __init__(self, program: str, version: str):
        self.program = program
        self.version = version

    def header(self, n_features: int, nboot: int) -> List[str]:
        midval = nboot / 2
        return [
            f"#Script {self.program}, v{self.version}",
            "#Aggregated results + stats",
            f"#Features in input file (counts):\n\t{n_features}",
            f"#With {nboot} bootstraps for exp (expected); sd = standard deviation; "
            "nb = number; avg = average",
            "#Two tests are made (permutation and binomial) to assess how significant "
            "the difference between observed and random, so two pvalues are given",
            "#For the two tailed permutation test:",
            f"#if rank is < {midval} and pvalue is not \"ns\", there are significantly "
            "fewer observed values than expected",
            f"#if rank is > {midval} and pvalue is not \"ns\", there are significantly "
            "higher observed values than expected",
            "#The binomial test is scipy.stats.binomtest, two sided, "
            "with a Clopper-Pearson 95% confidence interval",
            f"#{NOT_APPLICABLE} = not applicable (no genome-wide total for the binomial test, "
            "or 0 observed and 0 expected for the permutation test)",
        ]

    def to_frame(
        self,
        results: Mapping[CategoryKey, SignificanceResult],
        observed: RunSnapshot,
        n_features: int,
        expected_total: float,
    ) -> pd.DataFrame:
        rows = []
        for key in sorted(results):
            res = results[key]
            rows.append([
                key.rclass,
                key.rfam,
                key.rname,
                res.observed,
                _percent(res.observed, n_features),
                observed.total,
                res.n_trials if res.n_trials else None,
                res.expected_mean,
                res.expected_sd,
                _percent(res.expected_mean, n_features),
                expected_total,
                res.rank,
                res.perm_pvalue,
                res.perm_significance,
                res.binom_prob,
                _format_conf(res.binom_conf),
                res.binom_pvalue,
                res.binom_significance,
            ])
        # object dtype keeps ints as ints and floats at full precision
        return pd.DataFrame(rows, columns=STATS_COLUMNS, dtype=object)

    def write(
        self,
        path: Union[str, Path],
        results: Mapping[CategoryKey, SignificanceResult],
        observed: RunSnapshot,
        n_features: int,
        nboot: int,
        expected_total: float,
    ) -> Path:
        """
        Write the stats table with its header block.

        Args:
            path: Output file
            results: Per-category significance results
            observed: Snapshot of the observed run (for the total hits column)
            n_features: Number of features in the input file
            nboot: Number of bootstrap runs
            expected_total: Bootstrap mean of the total hits

        Returns:
            Path to the written file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        df = self.to_frame(results, observed, n_features, expected_total)
        with open(path, "w") as fh:
            fh.write("\n".join(self.header(n_features, nboot)) + "\n\n")
            df.to_csv(fh, sep="\t", index=False, na_rep=NOT_APPLICABLE)
        logger.info(f"Stats for {len(df)} categories written to {path}")
        return path
