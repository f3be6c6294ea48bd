"""
Store capability the repositories are written against.

A store knows how to query, persist and relate records of one entity kind.
Concrete stores adapt a storage technology (SQLAlchemy, plain memory) to
these primitives; everything above them is storage agnostic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar
import logging
import operator

from core.exceptions import InvalidArgumentException
from core.pagination import Page

logger = logging.getLogger(__name__)

T = TypeVar('T')

OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

LIKE = "like"

DIRECTIONS = ("asc", "desc")


class Cardinality(str, Enum):
    """Shape of an association between two entity kinds."""
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class RelationDescriptor:
    """
    Typed description of a named relation.

    Attributes:
        name: Relation name as used by callers
        target: Name of the related entity kind
        cardinality: Association shape
        foreign_key: Child column for one-to-many, parent column for many-to-one
        pivot: Association table for many-to-many
        parent_pivot_key: Pivot column holding the parent key
        related_pivot_key: Pivot column holding the related key
        pivot_fields: Extra pivot columns callers may write
    """
    name: str
    target: str
    cardinality: Cardinality
    foreign_key: Optional[str] = None
    pivot: Optional[str] = None
    parent_pivot_key: Optional[str] = None
    related_pivot_key: Optional[str] = None
    pivot_fields: Tuple[str, ...] = ()

    @property
    def is_many_to_many(self) -> bool:
        return self.cardinality == Cardinality.MANY_TO_MANY

    @property
    def is_collection(self) -> bool:
        return self.cardinality != Cardinality.MANY_TO_ONE


def normalize_conditions(column: Any, args: Sequence[Any]) -> List[Tuple[str, str, Any]]:
    """
    Turn the accepted ``where`` call shapes into (column, operator, value) triples.

    Accepted shapes:
        where("name", "a")
        where("age", ">", 3)
        where({"name": "a", "active": True})
        where([("name", "a"), ("age", ">", 3)])
    """
    if isinstance(column, Mapping):
        if args:
            raise InvalidArgumentException("A mapping of conditions takes no extra arguments")
        return [(str(name), "=", value) for name, value in column.items()]

    if isinstance(column, (list, tuple)):
        if args:
            raise InvalidArgumentException("A list of conditions takes no extra arguments")
        conditions = []
        for condition in column:
            if not isinstance(condition, (list, tuple)) or not condition:
                raise InvalidArgumentException(f"Malformed condition: {condition!r}")
            conditions.extend(normalize_conditions(condition[0], condition[1:]))
        return conditions

    if len(args) == 1:
        return [(column, "=", args[0])]
    if len(args) == 2:
        op = str(args[0]).lower()
        if op not in OPERATORS and op != LIKE:
            raise InvalidArgumentException(f"Unsupported operator '{args[0]}'")
        return [(column, op, args[1])]
    raise InvalidArgumentException(
        "where() expects (column, value), (column, operator, value) or a mapping"
    )


def normalize_direction(direction: Optional[str]) -> str:
    direction = (direction or "asc").lower()
    if direction not in DIRECTIONS:
        raise InvalidArgumentException(f"Order direction must be one of {DIRECTIONS}")
    return direction


def as_name_list(names: Any) -> List[str]:
    """Accept a single relation name or an iterable of them."""
    if names is None:
        return []
    if isinstance(names, str):
        return [names]
    return list(names)


class QueryHandle(ABC, Generic[T]):
    """
    Lazy, composable query over one entity kind.

    Every builder method returns a new handle; nothing touches the store
    until ``get``, ``first``, ``exists``, ``count`` or ``paginate`` runs.
    """

    @abstractmethod
    def where(self, column: Any, *args: Any) -> "QueryHandle[T]":
        ...

    @abstractmethod
    def where_in(self, column: str, values: Iterable[Any]) -> "QueryHandle[T]":
        ...

    @abstractmethod
    def where_has_any(self, relations: Iterable[str]) -> "QueryHandle[T]":
        """Keep entities with at least one related record in any of ``relations``."""

    @abstractmethod
    def order_by(self, column: str, direction: Optional[str] = "asc") -> "QueryHandle[T]":
        ...

    @abstractmethod
    def latest(self, column: str = "created_at") -> "QueryHandle[T]":
        """Newest first by ``column``, primary key descending as tie breaker."""

    @abstractmethod
    def with_related(self, relations: Iterable[str]) -> "QueryHandle[T]":
        """Eager load the named relations on every fetched entity."""

    @abstractmethod
    def for_page(self, page: int, per_page: int) -> "QueryHandle[T]":
        ...

    @abstractmethod
    def get(self) -> List[T]:
        ...

    @abstractmethod
    def first(self) -> Optional[T]:
        ...

    @abstractmethod
    def exists(self) -> bool:
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def paginate(self, per_page: int, page: int = 1) -> Page:
        ...


class Store(ABC, Generic[T]):
    """Persistence primitives for one entity kind."""

    @property
    @abstractmethod
    def kind(self) -> str:
        ...

    @property
    @abstractmethod
    def primary_key(self) -> str:
        ...

    @property
    @abstractmethod
    def fillable(self) -> Tuple[str, ...]:
        """Attributes ``update`` may write (mass-assignment allow-list)."""

    @property
    @abstractmethod
    def fields(self) -> Tuple[str, ...]:
        """Every attribute the kind stores."""

    @abstractmethod
    def query(self) -> QueryHandle[T]:
        ...

    @abstractmethod
    def find(self, key: Any, related: Optional[Iterable[str]] = None) -> Optional[T]:
        ...

    @abstractmethod
    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None, exists: bool = False) -> T:
        ...

    @abstractmethod
    def is_entity(self, obj: Any) -> bool:
        ...

    @abstractmethod
    def is_persisted(self, entity: T) -> bool:
        ...

    @abstractmethod
    def insert(self, attributes: Mapping[str, Any]) -> T:
        ...

    @abstractmethod
    def save(self, entity: T) -> T:
        ...

    @abstractmethod
    def remove(self, entity: T) -> bool:
        ...

    @abstractmethod
    def load(self, entity: T, relations: Iterable[str]) -> None:
        ...

    @abstractmethod
    def describe_relation(self, name: str) -> RelationDescriptor:
        ...

    @abstractmethod
    def relation(self, parent: T, name: str) -> "RelationHandle":
        ...

    @abstractmethod
    def get_attribute(self, entity: T, name: str) -> Any:
        ...

    @abstractmethod
    def set_attribute(self, entity: T, name: str, value: Any) -> None:
        ...

    def key_of(self, entity: T) -> Any:
        return self.get_attribute(entity, self.primary_key)

    def commit(self) -> None:
        """Make pending writes durable. Stores without transactions do nothing."""

    def rollback(self) -> None:
        """Discard pending writes. Stores without transactions do nothing."""

    def fill(self, entity: T, attributes: Mapping[str, Any], guarded: bool = True) -> bool:
        """
        Copy attributes onto an entity.

        The primary key is never written. When guarded, attributes outside
        the kind's allow-list are dropped; otherwise unknown attributes are
        rejected.

        Args:
            entity: Entity to modify in place
            attributes: Attribute values to apply
            guarded: Apply the mass-assignment allow-list

        Returns:
            True if any attribute value changed

        Raises:
            InvalidArgumentException: Unknown attribute on an unguarded fill
        """
        allowed = set(self.fillable) if guarded else None
        changed = False
        for name, value in attributes.items():
            if name == self.primary_key:
                continue
            if allowed is not None and name not in allowed:
                logger.debug(f"Dropping non-fillable attribute '{name}' on {self.kind}")
                continue
            if name not in self.fields:
                raise InvalidArgumentException(f"Unknown attribute '{name}' on {self.kind}")
            if self.get_attribute(entity, name) != value:
                self.set_attribute(entity, name, value)
                changed = True
        return changed


class RelationHandle(ABC, Generic[T]):
    """
    A named relation bound to one persisted parent.

    ``attach``, ``detach`` and ``sync`` are written once here over the pivot
    primitives each store provides.
    """

    def __init__(self, parent: Any, descriptor: RelationDescriptor, related: Store[T]):
        self.parent = parent
        self.descriptor = descriptor
        self.related = related

    @abstractmethod
    def query(self) -> QueryHandle[T]:
        """Related entities currently linked to the parent."""

    @abstractmethod
    def create(self, attributes: Mapping[str, Any]) -> T:
        """Create a related entity already linked to the parent."""

    @abstractmethod
    def pivot_rows(self) -> Dict[Any, Dict[str, Any]]:
        """Current memberships: related key -> stored pivot row."""

    @abstractmethod
    def insert_pivot_rows(self, records: Dict[Any, Dict[str, Any]]) -> None:
        ...

    @abstractmethod
    def delete_pivot_rows(self, keys: Optional[List[Any]]) -> int:
        """Delete the given memberships, every membership when ``keys`` is None."""

    @abstractmethod
    def update_pivot_row(self, key: Any, attributes: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def touch(self, keys: List[Any]) -> None:
        """Bump the modification timestamp of the parent and of the related rows."""

    def coerce_key(self, key: Any) -> Any:
        return key

    def require_pivot(self) -> None:
        if not self.descriptor.is_many_to_many:
            raise InvalidArgumentException(
                f"Relation '{self.descriptor.name}' is not a many-to-many relation"
            )

    def normalize_ids(self, ids: Any) -> Dict[Any, Dict[str, Any]]:
        """
        Normalize every accepted ``ids`` shape to ``{key: pivot attributes}``.

        Accepts a key, an entity, an iterable of keys or entities, or a
        mapping of key to pivot attributes.
        """
        if ids is None:
            return {}
        if isinstance(ids, Mapping):
            return {self._key(key): dict(attributes or {}) for key, attributes in ids.items()}
        if isinstance(ids, (str, bytes)) or self.related.is_entity(ids) or not isinstance(ids, Iterable):
            ids = [ids]
        return {self._key(item): {} for item in ids}

    def _key(self, item: Any) -> Any:
        if self.related.is_entity(item):
            item = self.related.key_of(item)
        if item is None:
            raise InvalidArgumentException(
                f"Cannot relate an unsaved {self.related.kind} through '{self.descriptor.name}'"
            )
        return self.coerce_key(item)

    def attach(self, ids: Any, attributes: Optional[Mapping[str, Any]] = None, touch: bool = True) -> None:
        self.require_pivot()
        records = self.normalize_ids(ids)
        if not records:
            return
        shared = dict(attributes or {})
        self.insert_pivot_rows({key: {**shared, **extra} for key, extra in records.items()})
        if touch:
            self.touch(list(records))

    def detach(self, ids: Any = None, touch: bool = True) -> int:
        self.require_pivot()
        keys = None if ids is None else list(self.normalize_ids(ids))
        if keys == []:
            return 0
        touched = list(self.pivot_rows()) if keys is None else keys
        count = self.delete_pivot_rows(keys)
        if touch and count:
            self.touch(touched)
        return count

    def sync(self, ids: Any, detaching: bool = True) -> Dict[str, List[Any]]:
        """
        Make the membership exactly ``ids``.

        Returns:
            ``{"attached": [...], "detached": [...], "updated": [...]}``
        """
        self.require_pivot()
        records = self.normalize_ids(ids)
        current = self.pivot_rows()

        detached = [key for key in current if key not in records] if detaching else []
        attached = {key: extra for key, extra in records.items() if key not in current}
        updated = []
        for key, extra in records.items():
            if key in current and extra:
                stored = current[key]
                if any(stored.get(name) != value for name, value in extra.items()):
                    self.update_pivot_row(key, extra)
                    updated.append(key)

        if detached:
            self.delete_pivot_rows(detached)
        if attached:
            self.insert_pivot_rows(attached)

        changes = detached + list(attached) + updated
        if changes:
            self.touch(changes)

        return {"attached": list(attached), "detached": detached, "updated": updated}
