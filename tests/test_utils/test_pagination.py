"""
Tests for pagination utilities.

Tests cover:
- Pagination metadata calculation
- The Page model
- Skip/offset calculation
- Argument validation
- Edge cases
"""

import pytest

from core.exceptions import InvalidArgumentException
from core.pagination import (
    Page,
    PaginationMeta,
    calculate_pagination_meta,
    calculate_skip,
    calculate_total_pages,
    validate_page_arguments,
)


class TestPaginationMetaCalculation:
    """Tests for pagination metadata calculation."""

    def test_first_page(self):
        """Test pagination metadata for first page."""
        meta = calculate_pagination_meta(page=1, per_page=10, total=50, count=10)

        assert meta.current_page == 1
        assert meta.per_page == 10
        assert meta.total == 50
        assert meta.count == 10
        assert meta.total_pages == 5
        assert meta.has_next is True
        assert meta.has_previous is False

    def test_middle_page(self):
        meta = calculate_pagination_meta(page=3, per_page=10, total=50, count=10)

        assert meta.total_pages == 5
        assert meta.has_next is True
        assert meta.has_previous is True

    def test_last_page(self):
        meta = calculate_pagination_meta(page=5, per_page=10, total=50, count=10)

        assert meta.has_next is False
        assert meta.has_previous is True

    def test_partial_last_page(self):
        """25 items with per_page 10 = 3 pages (10, 10, 5)."""
        meta = calculate_pagination_meta(page=3, per_page=10, total=25, count=5)

        assert meta.total_pages == 3
        assert meta.count == 5
        assert meta.has_next is False

    def test_no_items(self):
        meta = calculate_pagination_meta(page=1, per_page=10, total=0, count=0)

        assert meta.total_pages == 0
        assert meta.has_next is False
        assert meta.has_previous is False

    def test_exact_pages(self):
        assert calculate_pagination_meta(page=1, per_page=10, total=100, count=10).total_pages == 10

    def test_fewer_items_than_page_size(self):
        meta = calculate_pagination_meta(page=1, per_page=10, total=5, count=5)

        assert meta.total_pages == 1
        assert meta.has_next is False


class TestPage:
    """Tests for the Page model."""

    def test_page_properties(self):
        page = Page(items=[1, 2], page=2, per_page=2, total=5)

        assert page.total_pages == 3
        assert page.has_next is True
        assert page.has_previous is True

    def test_page_meta_counts_items(self):
        page = Page(items=["a", "b", "c"], page=1, per_page=10, total=3)

        assert page.meta == PaginationMeta(
            current_page=1,
            per_page=10,
            total=3,
            count=3,
            total_pages=1,
            has_next=False,
            has_previous=False,
        )

    def test_page_holds_arbitrary_objects(self):
        marker = object()

        assert Page(items=[marker], per_page=1, total=1).items == [marker]

    def test_page_rejects_zero_per_page(self):
        with pytest.raises(ValueError):
            Page(items=[], per_page=0, total=0)

    def test_meta_serialization(self):
        dumped = Page(items=[], page=1, per_page=20, total=100).meta.model_dump()

        assert dumped["per_page"] == 20
        assert dumped["total"] == 100
        assert dumped["total_pages"] == 5


class TestSkipCalculation:
    """Tests for skip/offset calculation."""

    def test_first_page(self):
        assert calculate_skip(page=1, per_page=10) == 0

    def test_second_page(self):
        assert calculate_skip(page=2, per_page=10) == 10

    def test_different_page_sizes(self):
        assert calculate_skip(page=3, per_page=25) == 50
        assert calculate_skip(page=6, per_page=100) == 500

    def test_page_size_one(self):
        assert calculate_skip(page=11, per_page=1) == 10


class TestValidation:
    """Tests for page argument validation."""

    def test_valid_arguments(self):
        validate_page_arguments(1, 1)
        validate_page_arguments(1000, 100)

    @pytest.mark.parametrize("page,per_page", [(0, 10), (1, 0), (-1, 10), (1, -5)])
    def test_non_positive_values(self, page, per_page):
        with pytest.raises(InvalidArgumentException) as exc_info:
            validate_page_arguments(page, per_page)

        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("page,per_page", [(True, 10), (1, "10"), (1.5, 10)])
    def test_non_integer_values(self, page, per_page):
        with pytest.raises(InvalidArgumentException):
            validate_page_arguments(page, per_page)


class TestPaginationEdgeCases:
    """Tests for pagination edge cases."""

    def test_single_item(self):
        meta = calculate_pagination_meta(page=1, per_page=10, total=1, count=1)

        assert meta.total_pages == 1
        assert meta.has_next is False
        assert meta.has_previous is False

    def test_page_out_of_range(self):
        """Page 10 but only 5 pages exist."""
        meta = calculate_pagination_meta(page=10, per_page=10, total=50, count=0)

        assert meta.total_pages == 5
        assert meta.has_next is False
        assert meta.has_previous is True

    def test_many_items(self):
        meta = calculate_pagination_meta(page=50, per_page=100, total=10000, count=100)

        assert meta.total_pages == 100
        assert meta.has_next is True

    def test_total_pages_with_zero_per_page(self):
        assert calculate_total_pages(10, 0) == 0
