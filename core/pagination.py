"""
Pagination helpers shared by the stores and the response layer.
"""

from typing import TypeVar, Generic, List
from pydantic import BaseModel, ConfigDict, Field

from core.exceptions import InvalidArgumentException

T = TypeVar('T')


class PaginationMeta(BaseModel):
    """Pagination metadata."""
    current_page: int = Field(..., ge=1, description="Current page number (1-indexed)")
    per_page: int = Field(..., ge=1, description="Page size")
    total: int = Field(..., ge=0, description="Total items available")
    count: int = Field(..., ge=0, description="Items on the current page")
    total_pages: int = Field(..., ge=0, description="Total pages")
    has_next: bool = Field(..., description="Has next page")
    has_previous: bool = Field(..., description="Has previous page")


class Page(BaseModel, Generic[T]):
    """A bounded slice of a result set plus its pagination metadata."""
    items: List[T] = Field(default_factory=list, description="Entities on this page")
    page: int = Field(1, ge=1, description="Page number (1-indexed)")
    per_page: int = Field(..., ge=1, description="Items per page")
    total: int = Field(..., ge=0, description="Total matching items")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def total_pages(self) -> int:
        return calculate_total_pages(self.total, self.per_page)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def meta(self) -> PaginationMeta:
        return calculate_pagination_meta(self.page, self.per_page, self.total, len(self.items))


def validate_page_arguments(page: int, per_page: int) -> None:
    """
    Reject non-positive page numbers and sizes.

    Raises:
        InvalidArgumentException: If either value is not a positive integer
    """
    for name, value in (("page", page), ("per_page", per_page)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidArgumentException(
                f"{name} must be a positive integer",
                details={name: value}
            )


def calculate_total_pages(total: int, per_page: int) -> int:
    return (total + per_page - 1) // per_page if per_page > 0 else 0


def calculate_pagination_meta(
    page: int,
    per_page: int,
    total: int,
    count: int
) -> PaginationMeta:
    """
    Compute pagination metadata.

    Args:
        page: Current page number (1-indexed)
        per_page: Items per page
        total: Total number of items
        count: Number of items on the current page

    Returns:
        PaginationMeta with the derived values
    """
    total_pages = calculate_total_pages(total, per_page)

    return PaginationMeta(
        current_page=page,
        per_page=per_page,
        total=total,
        count=count,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )


def calculate_skip(page: int, per_page: int) -> int:
    """
    Offset of the first row of a 1-indexed page.

    Args:
        page: Page number (1-indexed)
        per_page: Items per page

    Returns:
        Number of rows to skip
    """
    return (page - 1) * per_page
