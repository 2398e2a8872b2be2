"""
teshuffle: transposable element enrichment in genomic features.

This package provides tools for:
- Parsing RepeatMasker annotations into a class/family/name hierarchy
- Randomizing TE coordinates with bedtools shuffle
- Counting TE overlaps with a feature set (observed and bootstrap runs)
- Two-tailed permutation test and binomial test per TE category
- Optional enrichment by TE age (lineage / age category)
"""

__version__ = "3.1.0"
__author__ = "teshuffle Team"
