"""
Storage backends the repositories run on.
"""

from .base import (
    Cardinality,
    QueryHandle,
    RelationDescriptor,
    RelationHandle,
    Store,
)
from .memory_store import (
    EntityKind,
    MemoryDatabase,
    MemoryStore,
    Record,
    belongs_to,
    belongs_to_many,
    has_many,
)
from .sqlalchemy_store import SQLAlchemyStore

__all__ = [
    "Cardinality",
    "QueryHandle",
    "RelationDescriptor",
    "RelationHandle",
    "Store",
    "EntityKind",
    "MemoryDatabase",
    "MemoryStore",
    "Record",
    "belongs_to",
    "belongs_to_many",
    "has_many",
    "SQLAlchemyStore",
]
