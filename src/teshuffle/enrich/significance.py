"""
Significance of observed overlaps against the bootstrap null distribution.

Two tests per category:
- two-tailed permutation test from the rank of the observed count among
  the bootstrap counts;
- two-sided binomial test, with the genome-wide number of TE copies of the
  category as trials and the bootstrap mean / trials as probability.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, NamedTuple, Optional, Sequence, Tuple

from scipy import stats

from teshuffle.enrich.aggregate import NullDistribution
from teshuffle.enrich.counter import RunSnapshot
from teshuffle.exceptions import CollaboratorError, ConfigurationError
from teshuffle.te.categories import CategoryKey
from teshuffle.utils.config import NOT_APPLICABLE, NOT_SIGNIFICANT, SIGNIFICANCE_LEVELS

logger = logging.getLogger(__name__)


class BinomialResult(NamedTuple):
    probability: float
    conf_low: float
    conf_high: float
    pvalue: float


class ScipyBinomialTest:
    """Two-sided exact binomial test with a Clopper-Pearson 95% interval."""

    confidence_level = 0.95

    def test(self, x: int, n: int, p: float) -> BinomialResult:
        try:
            result = stats.binomtest(x, n, p, alternative="two-sided")
            ci = result.proportion_ci(confidence_level=self.confidence_level)
        except ValueError as e:
            raise CollaboratorError(f"binomial test failed for x={x}, n={n}, p={p}: {e}") from e
        return BinomialResult(
            probability=x / n,
            conf_low=float(ci.low),
            conf_high=float(ci.high),
            pvalue=float(result.pvalue),
        )


@dataclass(frozen=True)
class SignificanceResult:
    """Observed vs expected for one category, with both tests."""

    key: CategoryKey
    observed: int
    expected_mean: float
    expected_sd: float
    rank: int
    perm_pvalue: Optional[float]
    perm_significance: str
    n_trials: int
    binom_p: float
    binom_prob: Optional[float] = None
    binom_conf: Optional[Tuple[float, float]] = None
    binom_pvalue: Optional[float] = None
    binom_significance: str = NOT_APPLICABLE


def permutation_rank(null_values: Sequence[int], observed: int) -> int:
    """
    Rank of the observed count among the bootstrap counts.

    1 + number of bootstrap values <= observed; the pseudo-count keeps the
    p-value above 0, so ranks go from 1 to nboot + 1.
    """
    return 1 + bisect.bisect_right(sorted(null_values), observed)


def permutation_pvalue(rank: int, nboot: int) -> float:
    """Two-tailed p-value, symmetric around rank (nboot + 2) / 2."""
    if rank <= nboot / 2:
        return rank / nboot * 2
    return (nboot + 2 - rank) / nboot * 2


def significance_tier(pvalue: Optional[float]) -> str:
    """Map a p-value to ***, **, *, ns (or na when there is no p-value)."""
    if pvalue is None:
        return NOT_APPLICABLE
    for threshold, tier in SIGNIFICANCE_LEVELS:
        if pvalue <= threshold:
            return tier
    return NOT_SIGNIFICANT


class SignificanceEngine:
    """Combine observed counts, null distributions and genome totals."""

    def __init__(self, binomial=None):
        self.binomial = binomial if binomial is not None else ScipyBinomialTest()

    def evaluate(
        self,
        observed: RunSnapshot,
        null: NullDistribution,
        totals: Mapping[CategoryKey, int],
        nboot: int,
    ) -> Dict[CategoryKey, SignificanceResult]:
        """
        Test every category of the null distribution.

        Args:
            observed: Snapshot of the observed run
            null: Bootstrap distributions
            totals: Genome-wide number of donors per category
            nboot: Number of bootstrap runs

        Returns:
            Dict CategoryKey -> SignificanceResult, in key order

        Raises:
            ConfigurationError: If nboot is not positive
        """
        if nboot <= 0:
            raise ConfigurationError(f"No bootstrap run to test against (nboot = {nboot})")
        results = {}
        for key in null.keys():
            results[key] = self._evaluate_key(key, observed, null, totals, nboot)
        return results

    def _evaluate_key(self, key, observed, null, totals, nboot) -> SignificanceResult:
        obs = observed.get(key)
        mean = null.mean(key)
        rank = permutation_rank(null[key], obs)

        perm_pvalue: Optional[float] = permutation_pvalue(rank, nboot)
        if mean == 0 and obs == 0:
            perm_pvalue = None

        n = totals.get(key, 0)
        p = mean / n if n else 0.0
        binom = None
        if n == 0:
            logger.warning(
                f"No genome-wide total for {key.rclass}/{key.rfam}/{key.rname}, "
                "no binomial test"
            )
        else:
            binom = self.binomial.test(obs, n, p)

        return SignificanceResult(
            key=key,
            observed=obs,
            expected_mean=mean,
            expected_sd=null.stddev(key),
            rank=rank,
            perm_pvalue=perm_pvalue,
            perm_significance=significance_tier(perm_pvalue),
            n_trials=n,
            binom_p=p,
            binom_prob=binom.probability if binom else None,
            binom_conf=(binom.conf_low, binom.conf_high) if binom else None,
            binom_pvalue=binom.pvalue if binom else None,
            binom_significance=significance_tier(binom.pvalue if binom else None),
        )
