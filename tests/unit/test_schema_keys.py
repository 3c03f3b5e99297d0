"""
Tests for schemasync.schema.keys.
"""

import pytest

from schemasync.schema.keys import KeyAssignment, KeyKind, classify, split_tag


class TestClassify:
    """Test key tag classification."""

    @pytest.mark.parametrize("raw", [None, False, "", []])
    def test_no_key(self, raw):
        assignment = classify(raw)
        assert not assignment
        assert assignment.value is None
        assert len(assignment) == 0

    def test_single_tag(self):
        assignment = classify("primary")
        assert assignment.value == "primary"
        assert assignment.is_primary

    def test_sequence_keeps_order_and_drops_invalid(self):
        assignment = classify(["unique", "index.ByDate", "bogus", "key", "spatial.x"])
        assert assignment.tags == ("unique", "index.ByDate", "key")
        assert assignment.value == ["unique", "index.ByDate", "key"]

    def test_single_valid_tag_in_list(self):
        assert classify(["bogus", "fulltext"]).value == "fulltext"

    def test_invalid_single_tag(self):
        assert not classify("bogus.Group")

    def test_prefix_is_case_sensitive(self):
        assert not classify("Primary")

    def test_classification_is_deterministic(self):
        raw = ["index.A", "unique"]
        assert classify(raw) == classify(raw)

    def test_assignment_passes_through(self):
        assignment = KeyAssignment(("unique",))
        assert classify(assignment) is assignment


class TestKeyAssignment:
    """Test key assignment accessors."""

    def test_kinds(self):
        assignment = classify(["index.Pair", "unique"])
        assert assignment.kinds == ("index", "unique")
        assert not assignment.is_primary

    def test_groups_normalize_key_to_index(self):
        assignment = classify(["key", "index.ByDate", "primary", "unique.Pair"])
        assert assignment.groups("Col") == [
            ("index", "Col"),
            ("index", "ByDate"),
            ("primary", "primary"),
            ("unique", "Pair"),
        ]

    def test_groups_deduplicate(self):
        assert classify(["key", "index"]).groups("Col") == [("index", "Col")]

    def test_iteration(self):
        assert list(classify(["primary", "unique"])) == ["primary", "unique"]


def test_split_tag():
    assert split_tag("index") == ("index", None)
    assert split_tag("index.ByDate") == ("index", "ByDate")
    assert split_tag("index.a.b") == ("index", "a.b")


def test_key_kind_values():
    assert KeyKind.PRIMARY == "primary"
    assert KeyKind.FULLTEXT == "fulltext"
