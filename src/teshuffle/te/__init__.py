"""Transposable element (TE) annotation module."""

from teshuffle.te.age import AgeLabels, AgeMap, load_age_map
from teshuffle.te.catalog import AnnotationCatalog, TEFilter, TEFragment
from teshuffle.te.categories import CategoryKey, split_class_family

__all__ = [
    "AgeLabels",
    "AgeMap",
    "load_age_map",
    "AnnotationCatalog",
    "TEFilter",
    "TEFragment",
    "CategoryKey",
    "split_class_family",
]
