"""TE category hierarchy: class -> family -> name, plus two age schemes."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

TOTAL = "tot"
AGE = "age"
AGE_SCHEMES = ("cat.1", "cat.2")


@dataclass(frozen=True, order=True)
class CategoryKey:
    """
    One node of the category hierarchy.

    Regular nodes are (class, family, name) with "tot" standing for "all"
    at the lower levels; the root is (tot, tot, tot). Age nodes use the
    pseudo-class "age", the scheme ("cat.1" lineage or "cat.2" age
    category) as family, and the label as name; (age, cat.N, tot) counts
    every donor that has a label in that scheme.
    """

    rclass: str
    rfam: str
    rname: str

    @classmethod
    def root(cls) -> "CategoryKey":
        return cls(TOTAL, TOTAL, TOTAL)

    @classmethod
    def for_class(cls, rclass: str) -> "CategoryKey":
        return cls(rclass, TOTAL, TOTAL)

    @classmethod
    def for_family(cls, rclass: str, rfam: str) -> "CategoryKey":
        return cls(rclass, rfam, TOTAL)

    @classmethod
    def for_name(cls, rclass: str, rfam: str, rname: str) -> "CategoryKey":
        return cls(rclass, rfam, rname)

    @classmethod
    def age_total(cls, scheme: str) -> "CategoryKey":
        return cls(AGE, scheme, TOTAL)

    @classmethod
    def age(cls, scheme: str, label: str) -> "CategoryKey":
        return cls(AGE, scheme, label)

    @property
    def is_root(self) -> bool:
        return self == CategoryKey.root()

    @property
    def is_age(self) -> bool:
        return self.rclass == AGE

    @property
    def level(self) -> str:
        """Detail level of the node: root, class, family, name, age1 or age2."""
        if self.is_age:
            return "age1" if self.rfam == AGE_SCHEMES[0] else "age2"
        if self.rclass == TOTAL:
            return "root"
        if self.rfam == TOTAL:
            return "class"
        if self.rname == TOTAL:
            return "family"
        return "name"

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.rclass, self.rfam, self.rname)

    def __str__(self) -> str:
        return "\t".join(self.as_tuple())


def lineage_keys(rclass: str, rfam: str, rname: str) -> List[CategoryKey]:
    """Every node a donor of this class/family/name rolls up to, root first."""
    return [
        CategoryKey.root(),
        CategoryKey.for_class(rclass),
        CategoryKey.for_family(rclass, rfam),
        CategoryKey.for_name(rclass, rfam, rname),
    ]


def age_keys(cat1: Optional[str], cat2: Optional[str]) -> List[CategoryKey]:
    """Age nodes of a donor; empty when the donor has no age classification."""
    keys = []
    for scheme, label in zip(AGE_SCHEMES, (cat1, cat2)):
        if label:
            keys.append(CategoryKey.age_total(scheme))
            keys.append(CategoryKey.age(scheme, label))
    return keys


def split_class_family(classfam: str) -> Tuple[str, str]:
    """
    Split a RepeatMasker class/family label.

    "SINE/B2" gives ("SINE", "B2"); a label without family, like
    "Simple_repeat" or "Unknown", is used for both levels. Only the first
    "/" separates: "DNA/TcMar/Tigger" keeps "TcMar/Tigger" as family.
    """
    classfam = classfam.strip()
    if "/" in classfam:
        rclass, rfam = classfam.split("/", 1)
        return rclass, rfam or rclass
    return classfam, classfam

