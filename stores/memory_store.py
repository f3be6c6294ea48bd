"""
Reference in-memory store.

Tables are plain dictionaries of rows, pivot tables are lists of rows.
Entities handed out are snapshots (``Record``); changes reach a table only
through ``save``. There are no transactions, so ``commit`` and ``rollback``
are no-ops.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
import logging
import re

from core.exceptions import (
    ConstraintViolationException,
    InvalidArgumentException,
    ValidationException,
)
from core.pagination import Page, calculate_skip, validate_page_arguments
from core.utils import current_timestamp
from stores.base import (
    LIKE,
    OPERATORS,
    Cardinality,
    QueryHandle,
    RelationDescriptor,
    RelationHandle,
    Store,
    as_name_list,
    normalize_conditions,
    normalize_direction,
)

logger = logging.getLogger(__name__)

PRIMARY_KEY = "id"
TIMESTAMPS = ("created_at", "updated_at")

Row = Dict[str, Any]
Predicate = Callable[[Row], bool]


def as_key(key: Any) -> Any:
    """Keys are integers; their string form is accepted too."""
    if isinstance(key, str):
        try:
            return int(key.strip())
        except ValueError:
            return key
    return key


def has_many(name: str, target: str, foreign_key: str) -> RelationDescriptor:
    return RelationDescriptor(name, target, Cardinality.ONE_TO_MANY, foreign_key=foreign_key)


def belongs_to(name: str, target: str, foreign_key: str) -> RelationDescriptor:
    return RelationDescriptor(name, target, Cardinality.MANY_TO_ONE, foreign_key=foreign_key)


def belongs_to_many(
    name: str,
    target: str,
    pivot: str,
    parent_pivot_key: str,
    related_pivot_key: str,
    pivot_fields: Tuple[str, ...] = (),
) -> RelationDescriptor:
    return RelationDescriptor(
        name,
        target,
        Cardinality.MANY_TO_MANY,
        pivot=pivot,
        parent_pivot_key=parent_pivot_key,
        related_pivot_key=related_pivot_key,
        pivot_fields=tuple(pivot_fields),
    )


@dataclass(frozen=True)
class EntityKind:
    """
    Declaration of an entity kind held by a MemoryDatabase.

    ``fields`` lists the data attributes; the ``id`` key and, when
    ``timestamps`` is set, ``created_at``/``updated_at`` are added.
    """
    name: str
    fields: Tuple[str, ...]
    fillable: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    unique: Tuple[str, ...] = ()
    timestamps: bool = True
    relations: Tuple[RelationDescriptor, ...] = field(default_factory=tuple)

    @property
    def all_fields(self) -> Tuple[str, ...]:
        stamps = TIMESTAMPS if self.timestamps else ()
        return (PRIMARY_KEY,) + tuple(self.fields) + stamps

    def relation(self, name: str) -> Optional[RelationDescriptor]:
        for descriptor in self.relations:
            if descriptor.name == name:
                return descriptor
        return None


class Record:
    """Snapshot of one stored row plus any loaded relations."""

    def __init__(
        self,
        kind: str,
        attributes: Optional[Mapping[str, Any]] = None,
        exists: bool = False,
    ):
        self.kind = kind
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.relations: Dict[str, Any] = {}
        self.exists = exists

    @property
    def id(self) -> Any:
        return self.attributes.get(PRIMARY_KEY)

    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("attributes", {})
        if name in attributes:
            return attributes[name]
        relations = self.__dict__.get("relations", {})
        if name in relations:
            return relations[name]
        raise AttributeError(f"{self.__dict__.get('kind', 'Record')} has no attribute '{name}'")

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.attributes)

    def __repr__(self) -> str:
        return f"<Record {self.kind} id={self.id!r} exists={self.exists}>"


class MemoryDatabase:
    """Holds the tables, pivot tables and id counters of every registered kind."""

    def __init__(self, kinds: Iterable[EntityKind] = ()):
        self.kinds: Dict[str, EntityKind] = {}
        self.tables: Dict[str, Dict[Any, Row]] = {}
        self.pivots: Dict[str, List[Row]] = {}
        self.counters: Dict[str, int] = {}
        for kind in kinds:
            self.register(kind)

    def register(self, kind: EntityKind) -> EntityKind:
        self.kinds[kind.name] = kind
        self.tables.setdefault(kind.name, {})
        self.counters.setdefault(kind.name, 0)
        for descriptor in kind.relations:
            if descriptor.is_many_to_many:
                self.pivots.setdefault(descriptor.pivot, [])
        return kind

    def kind(self, name: str) -> EntityKind:
        try:
            return self.kinds[name]
        except KeyError:
            raise InvalidArgumentException(f"Unknown entity kind '{name}'") from None

    def store(self, name: str) -> "MemoryStore":
        return MemoryStore(self, name)

    def next_id(self, name: str) -> int:
        self.counters[name] += 1
        return self.counters[name]


def _like(pattern: str) -> "re.Pattern[str]":
    regex = "".join(
        ".*" if char == "%" else "." if char == "_" else re.escape(char)
        for char in pattern
    )
    return re.compile(f"^{regex}$", re.IGNORECASE | re.DOTALL)


def _compare(stored: Any, op: str, value: Any) -> bool:
    if op == LIKE:
        return stored is not None and bool(_like(str(value)).match(str(stored)))
    if op in ("=", "!=", "<>"):
        return OPERATORS[op](stored, value)
    if stored is None or value is None:
        return False
    return OPERATORS[op](stored, value)


def _sort_key(column: str) -> Callable[[Row], Tuple[bool, Any]]:
    # NULLs sort first ascending
    return lambda row: (row.get(column) is not None, row.get(column))


class MemoryQuery(QueryHandle[Record]):
    """Query over one in-memory table."""

    def __init__(
        self,
        store: "MemoryStore",
        predicates: Tuple[Predicate, ...] = (),
        orders: Tuple[Tuple[str, str], ...] = (),
        eager: Tuple[str, ...] = (),
        window: Optional[Tuple[int, int]] = None,
    ):
        self.store = store
        self.predicates = predicates
        self.orders = orders
        self.eager = eager
        self.window = window

    def _clone(self, **changes: Any) -> "MemoryQuery":
        state = {
            "predicates": self.predicates,
            "orders": self.orders,
            "eager": self.eager,
            "window": self.window,
        }
        state.update(changes)
        return MemoryQuery(self.store, **state)

    def where(self, column: Any, *args: Any) -> "MemoryQuery":
        predicates = []
        for name, op, value in normalize_conditions(column, args):
            self.store.check_field(name)
            predicates.append(
                lambda row, name=name, op=op, value=value: _compare(row.get(name), op, value)
            )
        return self._clone(predicates=self.predicates + tuple(predicates))

    def where_in(self, column: str, values: Iterable[Any]) -> "MemoryQuery":
        self.store.check_field(column)
        members = list(values)
        return self._clone(predicates=self.predicates + (lambda row: row.get(column) in members,))

    def where_has_any(self, relations: Iterable[str]) -> "MemoryQuery":
        names = as_name_list(relations)
        for name in names:
            self.store.describe_relation(name)

        def predicate(row: Row) -> bool:
            record = self.store.to_record(row)
            return any(self.store.relation(record, name).query().exists() for name in names)

        return self._clone(predicates=self.predicates + (predicate,))

    def order_by(self, column: str, direction: Optional[str] = "asc") -> "MemoryQuery":
        self.store.check_field(column)
        return self._clone(orders=self.orders + ((column, normalize_direction(direction)),))

    def latest(self, column: str = "created_at") -> "MemoryQuery":
        orders = self.orders
        if column in self.store.fields:
            orders += ((column, "desc"),)
        return self._clone(orders=orders + ((PRIMARY_KEY, "desc"),))

    def with_related(self, relations: Iterable[str]) -> "MemoryQuery":
        names = as_name_list(relations)
        for name in names:
            self.store.describe_relation(name)
        return self._clone(eager=self.eager + tuple(names))

    def for_page(self, page: int, per_page: int) -> "MemoryQuery":
        validate_page_arguments(page, per_page)
        return self._clone(window=(calculate_skip(page, per_page), per_page))

    def _rows(self) -> List[Row]:
        rows = [
            row for row in self.store.table.values()
            if all(predicate(row) for predicate in self.predicates)
        ]
        for column, direction in reversed(self.orders):
            rows.sort(key=_sort_key(column), reverse=direction == "desc")
        if self.window is not None:
            offset, limit = self.window
            rows = rows[offset:offset + limit]
        return rows

    def get(self) -> List[Record]:
        records = [self.store.to_record(row) for row in self._rows()]
        if self.eager:
            for record in records:
                self.store.load(record, self.eager)
        return records

    def first(self) -> Optional[Record]:
        rows = self._rows()
        if not rows:
            return None
        record = self.store.to_record(rows[0])
        if self.eager:
            self.store.load(record, self.eager)
        return record

    def exists(self) -> bool:
        return bool(self._rows())

    def count(self) -> int:
        return len(self._rows())

    def paginate(self, per_page: int, page: int = 1) -> Page:
        validate_page_arguments(page, per_page)
        total = self._clone(window=None).count()
        items = self.for_page(page, per_page).get()
        return Page(items=items, page=page, per_page=per_page, total=total)


class MemoryRelation(RelationHandle[Record]):
    """A relation of a stored record, resolved against the shared database."""

    def __init__(self, store: "MemoryStore", parent: Record, descriptor: RelationDescriptor):
        super().__init__(parent, descriptor, store.database.store(descriptor.target))
        self.store = store

    @property
    def pivot_table(self) -> List[Row]:
        return self.store.database.pivots[self.descriptor.pivot]

    def coerce_key(self, key: Any) -> Any:
        if not self.descriptor.is_many_to_many:
            return key
        coerced = as_key(key)
        if not isinstance(coerced, int) or isinstance(coerced, bool):
            raise InvalidArgumentException(
                f"Invalid {self.related.kind} key {key!r} for '{self.descriptor.name}'"
            )
        return coerced

    def _is_member(self, row: Row) -> bool:
        return row[self.descriptor.parent_pivot_key] == self.parent.id

    def query(self) -> MemoryQuery:
        descriptor = self.descriptor
        parent = self.parent
        if descriptor.cardinality == Cardinality.ONE_TO_MANY:
            predicate = lambda row: row.get(descriptor.foreign_key) == parent.id
        elif descriptor.cardinality == Cardinality.MANY_TO_ONE:
            owner = parent.attributes.get(descriptor.foreign_key)
            predicate = lambda row: owner is not None and row[PRIMARY_KEY] == owner
        else:
            predicate = lambda row: row[PRIMARY_KEY] in self.pivot_rows()
        return MemoryQuery(self.related, predicates=(predicate,))

    def create(self, attributes: Mapping[str, Any]) -> Record:
        cardinality = self.descriptor.cardinality
        if cardinality == Cardinality.ONE_TO_MANY:
            return self.related.insert({**attributes, self.descriptor.foreign_key: self.parent.id})
        if cardinality == Cardinality.MANY_TO_MANY:
            record = self.related.insert(attributes)
            self.attach(record)
            return record
        raise InvalidArgumentException(
            f"Cannot create through many-to-one relation '{self.descriptor.name}'"
        )

    def pivot_rows(self) -> Dict[Any, Row]:
        related_key = self.descriptor.related_pivot_key
        return {row[related_key]: row for row in self.pivot_table if self._is_member(row)}

    def _check_pivot_fields(self, attributes: Mapping[str, Any]) -> None:
        unknown = set(attributes) - set(self.descriptor.pivot_fields)
        if unknown:
            raise InvalidArgumentException(
                f"Unknown pivot attributes for '{self.descriptor.name}': {sorted(unknown)}"
            )

    def insert_pivot_rows(self, records: Dict[Any, Dict[str, Any]]) -> None:
        current = self.pivot_rows()
        for key, attributes in records.items():
            self._check_pivot_fields(attributes)
            if key in current:
                raise ConstraintViolationException(
                    f"{self.related.kind} {key} is already attached through '{self.descriptor.name}'"
                )
            if key not in self.related.table:
                raise ConstraintViolationException(
                    f"Cannot attach missing {self.related.kind} {key}"
                )
        now = current_timestamp()
        for key, attributes in records.items():
            self.pivot_table.append({
                self.descriptor.parent_pivot_key: self.parent.id,
                self.descriptor.related_pivot_key: key,
                **attributes,
                "created_at": now,
                "updated_at": now,
            })

    def delete_pivot_rows(self, keys: Optional[List[Any]]) -> int:
        related_key = self.descriptor.related_pivot_key
        doomed = [
            row for row in self.pivot_table
            if self._is_member(row) and (keys is None or row[related_key] in keys)
        ]
        for row in doomed:
            self.pivot_table.remove(row)
        return len(doomed)

    def update_pivot_row(self, key: Any, attributes: Dict[str, Any]) -> None:
        self._check_pivot_fields(attributes)
        row = self.pivot_rows()[key]
        row.update(attributes)
        row["updated_at"] = current_timestamp()

    def touch(self, keys: List[Any]) -> None:
        now = current_timestamp()
        self.store.touch_rows([self.parent.id], now)
        self.related.touch_rows(keys, now)
        if "updated_at" in self.parent.attributes:
            self.parent.attributes["updated_at"] = now


class MemoryStore(Store[Record]):
    """Store for one kind of a MemoryDatabase."""

    def __init__(self, database: MemoryDatabase, kind: str):
        self.database = database
        self.entity_kind = database.kind(kind)

    @property
    def kind(self) -> str:
        return self.entity_kind.name

    @property
    def primary_key(self) -> str:
        return PRIMARY_KEY

    @property
    def fillable(self) -> Tuple[str, ...]:
        return tuple(self.entity_kind.fillable)

    @property
    def fields(self) -> Tuple[str, ...]:
        return self.entity_kind.all_fields

    @property
    def table(self) -> Dict[Any, Row]:
        return self.database.tables[self.kind]

    def check_field(self, name: str) -> None:
        if name not in self.fields:
            raise InvalidArgumentException(f"Unknown column '{name}' on {self.kind}")

    def to_record(self, row: Row) -> Record:
        return Record(self.kind, row, exists=True)

    def query(self) -> MemoryQuery:
        return MemoryQuery(self)

    def find(self, key: Any, related: Optional[Iterable[str]] = None) -> Optional[Record]:
        row = self.table.get(as_key(key))
        if row is None:
            return None
        record = self.to_record(row)
        names = as_name_list(related)
        if names:
            self.load(record, names)
        return record

    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None, exists: bool = False) -> Record:
        attributes = dict(attributes or {})
        for name in attributes:
            self.check_field(name)
        if exists and attributes.get(PRIMARY_KEY) is None:
            raise InvalidArgumentException(f"An existing {self.kind} needs its '{PRIMARY_KEY}'")
        return Record(self.kind, attributes, exists=exists)

    def is_entity(self, obj: Any) -> bool:
        return isinstance(obj, Record) and obj.kind == self.kind

    def is_persisted(self, entity: Record) -> bool:
        return entity.exists and entity.id in self.table

    def get_attribute(self, entity: Record, name: str) -> Any:
        return entity.attributes.get(name)

    def set_attribute(self, entity: Record, name: str, value: Any) -> None:
        entity.attributes[name] = value

    def _validate(self, row: Row, ignore_key: Any = None) -> None:
        for name in self.entity_kind.required:
            if row.get(name) is None:
                raise ValidationException(f"{self.kind}.{name} is required", field=name)
        for name in self.entity_kind.unique:
            value = row.get(name)
            if value is None:
                continue
            for key, other in self.table.items():
                if key != ignore_key and other.get(name) == value:
                    raise ValidationException(
                        f"{self.kind}.{name} '{value}' already exists", field=name
                    )

    def insert(self, attributes: Mapping[str, Any]) -> Record:
        record = self.new_instance(attributes)
        return self.save(record)

    def save(self, entity: Record) -> Record:
        for name in entity.attributes:
            self.check_field(name)
        now = current_timestamp()

        if self.is_persisted(entity):
            stored = self.table[entity.id]
            changes = {
                name: value for name, value in entity.attributes.items()
                if stored.get(name) != value
            }
            if not changes:
                return entity
            candidate = {**stored, **changes}
            self._validate(candidate, ignore_key=entity.id)
            if self.entity_kind.timestamps and "updated_at" not in changes:
                candidate["updated_at"] = now
            self.table[entity.id] = candidate
            entity.attributes = dict(candidate)
            return entity

        row = dict(entity.attributes)
        if row.get(PRIMARY_KEY) is None:
            row[PRIMARY_KEY] = self.database.next_id(self.kind)
        elif row[PRIMARY_KEY] in self.table:
            raise ValidationException(
                f"{self.kind} {row[PRIMARY_KEY]} already exists", field=PRIMARY_KEY
            )
        self._validate(row)
        if self.entity_kind.timestamps:
            row.setdefault("created_at", now)
            row.setdefault("updated_at", now)
        for name in self.entity_kind.fields:
            row.setdefault(name, None)

        self.table[row[PRIMARY_KEY]] = row
        entity.attributes = dict(row)
        entity.exists = True
        logger.debug(f"Inserted {self.kind} {row[PRIMARY_KEY]}")
        return entity

    def _children_blocking_delete(self, entity: Record) -> List[str]:
        blocking = []
        for descriptor in self.entity_kind.relations:
            if descriptor.cardinality == Cardinality.ONE_TO_MANY:
                if self.relation(entity, descriptor.name).query().exists():
                    blocking.append(descriptor.name)
        return blocking

    def remove(self, entity: Record) -> bool:
        if not self.is_persisted(entity):
            raise InvalidArgumentException(f"Cannot delete an unsaved {self.kind}")

        blocking = self._children_blocking_delete(entity)
        if blocking:
            logger.error(f"Delete of {self.kind} {entity.id} blocked by {blocking}")
            raise ConstraintViolationException(
                f"{self.kind} {entity.id} still has related records",
                details={"relations": blocking}
            )

        # drop pivot rows on both sides of every many-to-many touching this kind
        for kind in self.database.kinds.values():
            for descriptor in kind.relations:
                if not descriptor.is_many_to_many:
                    continue
                if kind.name == self.kind:
                    column = descriptor.parent_pivot_key
                elif descriptor.target == self.kind:
                    column = descriptor.related_pivot_key
                else:
                    continue
                rows = self.database.pivots[descriptor.pivot]
                rows[:] = [row for row in rows if row[column] != entity.id]

        del self.table[entity.id]
        entity.exists = False
        return True

    def load(self, entity: Record, relations: Iterable[str]) -> None:
        for name in as_name_list(relations):
            handle = self.relation(entity, name)
            query = handle.query()
            entity.relations[name] = query.get() if handle.descriptor.is_collection else query.first()

    def describe_relation(self, name: str) -> RelationDescriptor:
        descriptor = self.entity_kind.relation(name)
        if descriptor is None:
            raise InvalidArgumentException(f"Unknown relation '{name}' on {self.kind}")
        return descriptor

    def relation(self, parent: Record, name: str) -> MemoryRelation:
        return MemoryRelation(self, parent, self.describe_relation(name))

    def touch_rows(self, keys: Iterable[Any], now: Any) -> None:
        if not self.entity_kind.timestamps:
            return
        for key in keys:
            row = self.table.get(key)
            if row is not None:
                row["updated_at"] = now
