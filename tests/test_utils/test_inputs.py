"""
Tests for request input helpers: boolean parsing and include lists.
"""

import pytest

from core.utils import filter_boolean_inputs, parse_boolean, parse_includes


class TestParseBoolean:

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", " on ", "yes", "Yes", 1, True])
    def test_truthy(self, value):
        assert parse_boolean(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "Off", "no", "", "  ", 0, False, None])
    def test_falsy(self, value):
        assert parse_boolean(value) is False

    @pytest.mark.parametrize("value", ["maybe", "2", 2, 1.0, [], {"a": 1}])
    def test_unparseable(self, value):
        assert parse_boolean(value) is None


class TestFilterBooleanInputs:

    def test_bulk_is_coerced(self):
        assert filter_boolean_inputs({"bulk": "true", "title": "x"}) == {"bulk": True, "title": "x"}

    def test_unparseable_bulk_becomes_none(self):
        assert filter_boolean_inputs({"bulk": "sometimes"}) == {"bulk": None}

    def test_without_bulk(self):
        assert filter_boolean_inputs({"title": "x"}) == {"title": "x"}

    def test_input_is_not_modified(self):
        inputs = {"bulk": "1"}

        filter_boolean_inputs(inputs)

        assert inputs == {"bulk": "1"}


class TestParseIncludes:

    def test_merges_both_parameters(self):
        assert parse_includes("posts,roles", "tags") == ["posts", "roles", "tags"]

    def test_drops_empty_and_duplicates(self):
        assert parse_includes("posts,,roles,", "posts, roles ,author") == ["posts", "roles", "author"]

    def test_nothing_requested(self):
        assert parse_includes() == []
        assert parse_includes("", None) == []

    def test_dotted_names_are_kept(self):
        assert parse_includes("posts.author") == ["posts.author"]
