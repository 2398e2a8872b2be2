"""Overlap counting, null distributions and significance tests."""

from teshuffle.enrich.aggregate import NullAggregator, NullDistribution
from teshuffle.enrich.counter import IntersectionRecord, OverlapCounter, RunSnapshot
from teshuffle.enrich.report import ReportWriter
from teshuffle.enrich.significance import (
    ScipyBinomialTest,
    SignificanceEngine,
    SignificanceResult,
    permutation_pvalue,
    permutation_rank,
    significance_tier,
)

__all__ = [
    "NullAggregator",
    "NullDistribution",
    "IntersectionRecord",
    "OverlapCounter",
    "RunSnapshot",
    "ReportWriter",
    "ScipyBinomialTest",
    "SignificanceEngine",
    "SignificanceResult",
    "permutation_pvalue",
    "permutation_rank",
    "significance_tier",
]
