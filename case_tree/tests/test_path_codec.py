"""
Unit tests for the materialized path helpers.

Tests cover:
- normalize_name: stripping and rejecting illegal names
- compute_child_path / compute_child_level: root and nested children
- rewrite_prefix: moving a descendant path to a new ancestor
- ancestor_paths: splitting a path into its ancestors
"""

import pytest
from hypothesis import given, settings, strategies as st

from case_tree.exceptions import InvalidNameError, PrefixMismatchError
from case_tree.services.path_codec import (
    MAX_NAME_LENGTH,
    ancestor_paths,
    compute_child_level,
    compute_child_path,
    is_descendant_path,
    normalize_name,
    rewrite_prefix,
)


segment = st.text(
    alphabet=st.characters(blacklist_characters="/", blacklist_categories=("Cs", "Zs", "Cc")),
    min_size=1,
    max_size=12,
)


# ============== normalize_name Tests ==============


class TestNormalizeName:
    def test_plain_name_is_unchanged(self):
        assert normalize_name("Login") == "Login"

    def test_surrounding_whitespace_is_stripped(self):
        assert normalize_name("  Login flow \t") == "Login flow"

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_names_are_rejected(self, name):
        with pytest.raises(InvalidNameError):
            normalize_name(name)

    @pytest.mark.parametrize("name", ["a/b", "/", "Suite/", "/Suite"])
    def test_separator_is_rejected(self, name):
        with pytest.raises(InvalidNameError):
            normalize_name(name)

    def test_too_long_name_is_rejected(self):
        with pytest.raises(InvalidNameError):
            normalize_name("x" * (MAX_NAME_LENGTH + 1))

    def test_non_string_is_rejected(self):
        with pytest.raises(InvalidNameError):
            normalize_name(None)

    def test_error_carries_status_and_code(self):
        with pytest.raises(InvalidNameError) as exc_info:
            normalize_name("a/b")
        assert exc_info.value.status_code == 422
        assert exc_info.value.error_code == "INVALID_NAME"


# ============== compute_child_path / compute_child_level Tests ==============


class TestComputeChild:
    def test_root_path(self):
        assert compute_child_path(None, "Suite") == "/Suite"

    def test_nested_path(self):
        assert compute_child_path("/Suite", "Login") == "/Suite/Login"

    def test_name_is_normalized(self):
        assert compute_child_path("/Suite", " Login ") == "/Suite/Login"

    def test_invalid_name_raises(self):
        with pytest.raises(InvalidNameError):
            compute_child_path("/Suite", "a/b")

    def test_root_level(self):
        assert compute_child_level(None) == 0

    def test_nested_level(self):
        assert compute_child_level(0) == 1
        assert compute_child_level(4) == 5


# ============== rewrite_prefix Tests ==============


class TestRewritePrefix:
    def test_direct_child(self):
        assert rewrite_prefix("/Suite/Login", "/Suite", "/Regression") == "/Regression/Login"

    def test_deep_descendant_keeps_relative_path(self):
        assert rewrite_prefix("/A/B/C/D", "/A/B", "/X") == "/X/C/D"

    def test_prefix_must_end_at_segment_boundary(self):
        # "/Suite2" is a sibling of "/Suite", not a descendant
        with pytest.raises(PrefixMismatchError):
            rewrite_prefix("/Suite2/Login", "/Suite", "/Regression")

    def test_the_ancestor_itself_is_not_rewritten(self):
        with pytest.raises(PrefixMismatchError):
            rewrite_prefix("/Suite", "/Suite", "/Regression")

    def test_unrelated_path(self):
        with pytest.raises(PrefixMismatchError) as exc_info:
            rewrite_prefix("/Other/Login", "/Suite", "/Regression")
        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "PREFIX_MISMATCH"

    @given(
        old=st.lists(segment, min_size=1, max_size=4),
        new=st.lists(segment, min_size=1, max_size=4),
        rest=st.lists(segment, min_size=1, max_size=4),
    )
    @settings(max_examples=100)
    def test_rewrite_keeps_relative_segments(self, old, new, rest):
        old_prefix = "/" + "/".join(old)
        new_prefix = "/" + "/".join(new)
        path = old_prefix + "/" + "/".join(rest)

        result = rewrite_prefix(path, old_prefix, new_prefix)

        assert result == new_prefix + "/" + "/".join(rest)
        assert is_descendant_path(result, new_prefix)


# ============== ancestor_paths Tests ==============


class TestAncestorPaths:
    def test_root_folder_has_no_ancestors(self):
        assert ancestor_paths("/Suite") == []

    def test_nested_folder(self):
        assert ancestor_paths("/A/B/C") == ["/A", "/A/B"]

    def test_is_descendant_path(self):
        assert is_descendant_path("/A/B", "/A")
        assert not is_descendant_path("/A", "/A")
        assert not is_descendant_path("/AB", "/A")
