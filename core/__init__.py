"""Shared building blocks for the application.

This package contains:

- Application exceptions
- Pagination helpers
- Response envelopes and entity transformation
- Input parsing helpers
"""

from .exceptions import (
    AppException,
    NotFoundException,
    InvalidArgumentException,
    ValidationException,
    ConstraintViolationException,
)
from .pagination import (
    Page,
    PaginationMeta,
    calculate_pagination_meta,
    calculate_skip,
    calculate_total_pages,
    validate_page_arguments,
)
from .responses import (
    success,
    error,
    with_meta,
    no_content,
)
from .transform import (
    Transformer,
    Item,
    Collection,
    transform_item,
    transform_collection,
    transform_page,
)
from .utils import (
    current_timestamp,
    parse_boolean,
    filter_boolean_inputs,
    parse_includes,
)

__all__ = [
    # exceptions
    "AppException",
    "NotFoundException",
    "InvalidArgumentException",
    "ValidationException",
    "ConstraintViolationException",
    # pagination
    "Page",
    "PaginationMeta",
    "calculate_pagination_meta",
    "calculate_skip",
    "calculate_total_pages",
    "validate_page_arguments",
    # responses
    "success",
    "error",
    "with_meta",
    "no_content",
    # transformation
    "Transformer",
    "Item",
    "Collection",
    "transform_item",
    "transform_collection",
    "transform_page",
    # utils
    "current_timestamp",
    "parse_boolean",
    "filter_boolean_inputs",
    "parse_includes",
]
