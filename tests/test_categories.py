"""Tests for the TE category hierarchy."""

import pytest

from teshuffle.te.categories import (
    CategoryKey,
    age_keys,
    lineage_keys,
    split_class_family,
)


class TestCategoryKey:
    """Test CategoryKey construction and levels."""

    def test_root(self):
        """Root node is (tot, tot, tot)."""
        root = CategoryKey.root()
        assert root.as_tuple() == ("tot", "tot", "tot")
        assert root.is_root
        assert root.level == "root"

    def test_levels(self):
        """Each constructor gives the matching level."""
        assert CategoryKey.for_class("SINE").level == "class"
        assert CategoryKey.for_family("SINE", "B2").level == "family"
        assert CategoryKey.for_name("SINE", "B2", "B3").level == "name"
        assert CategoryKey.age("cat.1", "Eutheria").level == "age1"
        assert CategoryKey.age("cat.2", "Ancient").level == "age2"
        assert CategoryKey.age_total("cat.1").level == "age1"

    def test_hashable_and_ordered(self):
        """Keys are usable as dict keys and sort deterministically."""
        a = CategoryKey.for_name("SINE", "B2", "B3")
        b = CategoryKey("SINE", "B2", "B3")
        assert {a: 1}[b] == 1
        keys = [CategoryKey.for_class("SINE"), CategoryKey.for_class("LINE")]
        assert sorted(keys)[0].rclass == "LINE"

    def test_frozen(self):
        """Keys cannot be mutated."""
        key = CategoryKey.root()
        with pytest.raises(Exception):
            key.rclass = "LINE"


class TestHierarchy:
    """Test roll-up and age key lists."""

    def test_lineage_keys(self):
        """A donor touches root, class, family and name."""
        keys = lineage_keys("LTR", "ERVL-MaLR", "MTA")
        assert keys == [
            CategoryKey.root(),
            CategoryKey.for_class("LTR"),
            CategoryKey.for_family("LTR", "ERVL-MaLR"),
            CategoryKey.for_name("LTR", "ERVL-MaLR", "MTA"),
        ]

    def test_age_keys_both_schemes(self):
        """Lineage and age category each add a total and a label node."""
        keys = age_keys("Primates", "LineageSpe")
        assert CategoryKey.age_total("cat.1") in keys
        assert CategoryKey.age("cat.1", "Primates") in keys
        assert CategoryKey.age_total("cat.2") in keys
        assert CategoryKey.age("cat.2", "LineageSpe") in keys

    def test_age_keys_without_category(self):
        """No cat.2 node when the age category is missing."""
        keys = age_keys("Eutheria", None)
        assert all(k.rfam == "cat.1" for k in keys)
        assert age_keys(None, None) == []


class TestSplitClassFamily:
    """Test RepeatMasker class/family splitting."""

    def test_with_family(self):
        assert split_class_family("SINE/B2") == ("SINE", "B2")

    def test_without_family(self):
        """Class is reused as family."""
        assert split_class_family("Simple_repeat") == ("Simple_repeat", "Simple_repeat")

    def test_nested_family(self):
        """Only the first slash separates class from family."""
        assert split_class_family("DNA/TcMar/Tigger") == ("DNA", "TcMar/Tigger")
