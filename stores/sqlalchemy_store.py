"""
SQLAlchemy store.

Adapts a declarative model and a Session to the store primitives. Writes
are flushed inside the caller's transaction; ``commit`` is explicit, the
same unit-of-work split the request-scoped session uses.
"""

from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar
import logging

from sqlalchemy import Table, delete, func, insert, inspect, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import MANYTOMANY, MANYTOONE, ONETOMANY, Session, selectinload, with_parent
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.relationships import RelationshipProperty
from sqlalchemy.sql import Select

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

T = TypeVar('T')

CARDINALITIES = {
    ONETOMANY: Cardinality.ONE_TO_MANY,
    MANYTOONE: Cardinality.MANY_TO_ONE,
    MANYTOMANY: Cardinality.MANY_TO_MANY,
}


def kind_of(model_class: type) -> str:
    """Display name of a model: ``__kind__`` if declared, else the class name."""
    return getattr(model_class, "__kind__", model_class.__name__)


def relationship_property(model_class: type, name: str) -> RelationshipProperty:
    relationships = inspect(model_class).relationships
    if name not in relationships:
        raise InvalidArgumentException(f"Unknown relation '{name}' on {kind_of(model_class)}")
    return relationships[name]


def attribute_key(model_class: type, column: Any) -> str:
    """Mapped attribute name of a table column."""
    return inspect(model_class).get_property_by_column(column).key


class SQLAlchemyQuery(QueryHandle[T]):
    """Generative wrapper around a ``select()`` of one model."""

    def __init__(
        self,
        db: Session,
        model_class: Type[T],
        statement: Optional[Select] = None,
        eager: Tuple[str, ...] = (),
    ):
        self.db = db
        self.model_class = model_class
        self.statement = statement if statement is not None else select(model_class)
        self.eager = eager

    def _clone(self, statement: Optional[Select] = None, eager: Optional[Tuple[str, ...]] = None) -> "SQLAlchemyQuery[T]":
        return SQLAlchemyQuery(
            self.db,
            self.model_class,
            self.statement if statement is None else statement,
            self.eager if eager is None else eager,
        )

    def column(self, name: str) -> Any:
        if name not in inspect(self.model_class).column_attrs:
            raise InvalidArgumentException(
                f"Unknown column '{name}' on {kind_of(self.model_class)}"
            )
        return getattr(self.model_class, name)

    @property
    def primary_key_column(self) -> Any:
        mapper = inspect(self.model_class)
        return getattr(self.model_class, attribute_key(self.model_class, mapper.primary_key[0]))

    def filter(self, *criteria: Any) -> "SQLAlchemyQuery[T]":
        """Apply raw SQLAlchemy criteria for filters the builder does not cover."""
        return self._clone(self.statement.where(*criteria))

    def where(self, column: Any, *args: Any) -> "SQLAlchemyQuery[T]":
        criteria = []
        for name, op, value in normalize_conditions(column, args):
            attribute = self.column(name)
            if op == LIKE:
                criteria.append(attribute.like(value))
            else:
                criteria.append(OPERATORS[op](attribute, value))
        return self.filter(*criteria)

    def where_in(self, column: str, values: Iterable[Any]) -> "SQLAlchemyQuery[T]":
        return self.filter(self.column(column).in_(list(values)))

    def where_has_any(self, relations: Iterable[str]) -> "SQLAlchemyQuery[T]":
        clauses = []
        for name in as_name_list(relations):
            prop = relationship_property(self.model_class, name)
            attribute = getattr(self.model_class, name)
            clauses.append(attribute.any() if prop.uselist else attribute.has())
        return self.filter(or_(*clauses))

    def order_by(self, column: str, direction: Optional[str] = "asc") -> "SQLAlchemyQuery[T]":
        attribute = self.column(column)
        ordering = attribute.desc() if normalize_direction(direction) == "desc" else attribute.asc()
        return self._clone(self.statement.order_by(ordering))

    def latest(self, column: str = "created_at") -> "SQLAlchemyQuery[T]":
        statement = self.statement
        if column in inspect(self.model_class).column_attrs:
            statement = statement.order_by(getattr(self.model_class, column).desc())
        return self._clone(statement.order_by(self.primary_key_column.desc()))

    def with_related(self, relations: Iterable[str]) -> "SQLAlchemyQuery[T]":
        names = as_name_list(relations)
        for name in names:
            relationship_property(self.model_class, name)
        return self._clone(eager=self.eager + tuple(names))

    def for_page(self, page: int, per_page: int) -> "SQLAlchemyQuery[T]":
        validate_page_arguments(page, per_page)
        return self._clone(
            self.statement.offset(calculate_skip(page, per_page)).limit(per_page)
        )

    def _final(self) -> Select:
        if not self.eager:
            return self.statement
        return self.statement.options(
            *[selectinload(getattr(self.model_class, name)) for name in self.eager]
        )

    def get(self) -> List[T]:
        return list(self.db.scalars(self._final()).all())

    def first(self) -> Optional[T]:
        return self.db.scalars(self._final().limit(1)).first()

    def exists(self) -> bool:
        return bool(self.db.scalar(select(self.statement.exists())))

    def count(self) -> int:
        counted = select(func.count()).select_from(self.statement.order_by(None).subquery())
        return self.db.scalar(counted) or 0

    def paginate(self, per_page: int, page: int = 1) -> Page:
        validate_page_arguments(page, per_page)
        total = self.count()
        items = self.for_page(page, per_page).get()
        return Page(items=items, page=page, per_page=per_page, total=total)


class SQLAlchemyRelation(RelationHandle[T]):
    """A mapped ``relationship()`` of one persisted parent."""

    def __init__(self, store: "SQLAlchemyStore", parent: Any, prop: RelationshipProperty, descriptor: RelationDescriptor):
        super().__init__(parent, descriptor, SQLAlchemyStore(store.db, prop.mapper.class_))
        self.store = store
        self.prop = prop

    @property
    def db(self) -> Session:
        return self.store.db

    @property
    def table(self) -> Table:
        return self.prop.secondary

    @property
    def parent_pivot_column(self) -> Any:
        return self.table.c[self.descriptor.parent_pivot_key]

    @property
    def related_pivot_column(self) -> Any:
        return self.table.c[self.descriptor.related_pivot_key]

    @property
    def parent_key(self) -> Any:
        (parent_column, _), = self.prop.synchronize_pairs
        return getattr(self.parent, attribute_key(self.store.model_class, parent_column))

    def coerce_key(self, key: Any) -> Any:
        if not self.descriptor.is_many_to_many:
            return key
        try:
            python_type = self.related_pivot_column.type.python_type
        except NotImplementedError:
            return key
        if isinstance(key, python_type):
            return key
        try:
            return python_type(key)
        except (TypeError, ValueError):
            raise InvalidArgumentException(
                f"Invalid {self.related.kind} key {key!r} for '{self.descriptor.name}'"
            ) from None

    def query(self) -> SQLAlchemyQuery:
        criterion = with_parent(self.parent, getattr(self.store.model_class, self.descriptor.name))
        return self.related.query().filter(criterion)

    def create(self, attributes: Mapping[str, Any]) -> Any:
        cardinality = self.descriptor.cardinality
        if cardinality == Cardinality.ONE_TO_MANY:
            values = dict(attributes)
            for parent_column, child_column in self.prop.synchronize_pairs:
                child_key = attribute_key(self.related.model_class, child_column)
                values[child_key] = getattr(self.parent, attribute_key(self.store.model_class, parent_column))
            entity = self.related.insert(values)
            self._expire_parent()
            return entity
        if cardinality == Cardinality.MANY_TO_MANY:
            entity = self.related.insert(attributes)
            self.attach(entity)
            return entity
        raise InvalidArgumentException(
            f"Cannot create through many-to-one relation '{self.descriptor.name}'"
        )

    def _expire_parent(self) -> None:
        self.db.expire(self.parent, [self.descriptor.name])

    def _execute(self, statement: Any, parameters: Any = None) -> Any:
        try:
            self.db.flush()
            if parameters is None:
                result = self.db.execute(statement)
            else:
                result = self.db.execute(statement, parameters)
        except IntegrityError as e:
            logger.error(f"Pivot write on '{self.descriptor.name}' rejected: {e}")
            self.db.rollback()
            raise ConstraintViolationException(
                f"Relation '{self.descriptor.name}' write rejected by the database",
                details={"relation": self.descriptor.name}
            ) from e
        self._expire_parent()
        return result

    def _check_pivot_fields(self, attributes: Mapping[str, Any]) -> None:
        unknown = set(attributes) - set(self.descriptor.pivot_fields)
        if unknown:
            raise InvalidArgumentException(
                f"Unknown pivot attributes for '{self.descriptor.name}': {sorted(unknown)}"
            )

    def pivot_rows(self) -> Dict[Any, Dict[str, Any]]:
        statement = select(self.table).where(self.parent_pivot_column == self.parent_key)
        rows = self.db.execute(statement).mappings().all()
        return {row[self.related_pivot_column.name]: dict(row) for row in rows}

    def insert_pivot_rows(self, records: Dict[Any, Dict[str, Any]]) -> None:
        now = current_timestamp()
        rows = []
        for key, attributes in records.items():
            self._check_pivot_fields(attributes)
            row = {
                self.parent_pivot_column.name: self.parent_key,
                self.related_pivot_column.name: key,
                **attributes,
            }
            for stamp in ("created_at", "updated_at"):
                if stamp in self.table.c:
                    row.setdefault(stamp, now)
            rows.append(row)
        # every row must carry the same keys for a single executemany
        columns = set().union(*(row.keys() for row in rows))
        rows = [{column: row.get(column) for column in columns} for row in rows]
        self._execute(insert(self.table), rows)

    def delete_pivot_rows(self, keys: Optional[List[Any]]) -> int:
        statement = delete(self.table).where(self.parent_pivot_column == self.parent_key)
        if keys is not None:
            statement = statement.where(self.related_pivot_column.in_(keys))
        return self._execute(statement).rowcount

    def update_pivot_row(self, key: Any, attributes: Dict[str, Any]) -> None:
        self._check_pivot_fields(attributes)
        values = dict(attributes)
        if "updated_at" in self.table.c:
            values["updated_at"] = current_timestamp()
        statement = (
            update(self.table)
            .where(self.parent_pivot_column == self.parent_key)
            .where(self.related_pivot_column == key)
            .values(**values)
        )
        self._execute(statement)

    def touch(self, keys: List[Any]) -> None:
        now = current_timestamp()
        if "updated_at" in self.store.fields:
            self.parent.updated_at = now
            self.store.save(self.parent)
        if keys and "updated_at" in self.related.fields:
            related_pk = getattr(self.related.model_class, self.related.primary_key)
            statement = (
                update(self.related.model_class)
                .where(related_pk.in_(keys))
                .values(updated_at=now)
                .execution_options(synchronize_session="fetch")
            )
            self.db.execute(statement)


class SQLAlchemyStore(Store[T], Generic[T]):
    """
    Store over one declarative model.

    The model may declare ``__fillable__`` (mass-assignment allow-list) and
    ``__kind__`` (display name used in error messages).
    """

    def __init__(self, db: Session, model_class: Type[T]):
        """
        Args:
            db: SQLAlchemy session
            model_class: ORM model class handled by this store
        """
        self.db = db
        self.model_class = model_class

    @property
    def kind(self) -> str:
        return kind_of(self.model_class)

    @property
    def primary_key(self) -> str:
        mapper = inspect(self.model_class)
        return attribute_key(self.model_class, mapper.primary_key[0])

    @property
    def fillable(self) -> Tuple[str, ...]:
        return tuple(getattr(self.model_class, "__fillable__", ()))

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(inspect(self.model_class).column_attrs.keys())

    def query(self) -> SQLAlchemyQuery[T]:
        return SQLAlchemyQuery(self.db, self.model_class)

    def _eager_options(self, related: Optional[Iterable[str]]) -> list:
        options = []
        for name in as_name_list(related):
            relationship_property(self.model_class, name)
            options.append(selectinload(getattr(self.model_class, name)))
        return options

    def find(self, key: Any, related: Optional[Iterable[str]] = None) -> Optional[T]:
        return self.db.get(self.model_class, key, options=self._eager_options(related))

    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None, exists: bool = False) -> T:
        attributes = dict(attributes or {})
        unknown = set(attributes) - set(self.fields)
        if unknown:
            raise InvalidArgumentException(f"Unknown attributes on {self.kind}: {sorted(unknown)}")
        entity = self.model_class(**attributes)
        if exists:
            if attributes.get(self.primary_key) is None:
                raise InvalidArgumentException(f"An existing {self.kind} needs its '{self.primary_key}'")
            make_transient_to_detached(entity)
            # the session's own instance when the row is already loaded
            entity = self.db.merge(entity, load=False)
        return entity

    def is_entity(self, obj: Any) -> bool:
        return isinstance(obj, self.model_class)

    def is_persisted(self, entity: T) -> bool:
        return inspect(entity).has_identity

    def get_attribute(self, entity: T, name: str) -> Any:
        return getattr(entity, name)

    def set_attribute(self, entity: T, name: str, value: Any) -> None:
        setattr(entity, name, value)

    def _flush(self, action: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            logger.error(f"Error {action} {self.kind}: {e}")
            self.db.rollback()
            raise ValidationException(
                f"The database rejected the {self.kind} record",
                details={"error": str(e.orig)}
            ) from e

    def insert(self, attributes: Mapping[str, Any]) -> T:
        entity = self.new_instance(attributes)
        self.db.add(entity)
        self._flush("creating")
        self.db.refresh(entity)
        return entity

    def save(self, entity: T) -> T:
        self.db.add(entity)
        self._flush("saving")
        return entity

    def remove(self, entity: T) -> bool:
        if not self.is_persisted(entity):
            raise InvalidArgumentException(f"Cannot delete an unsaved {self.kind}")
        try:
            self.db.delete(entity)
            self.db.flush()
        except IntegrityError as e:
            logger.error(f"Error deleting {self.kind}: {e}")
            self.db.rollback()
            raise ConstraintViolationException(
                f"{self.kind} is still referenced by other records",
                details={"error": str(e.orig)}
            ) from e
        return True

    def load(self, entity: T, relations: Iterable[str]) -> None:
        names = as_name_list(relations)
        for name in names:
            relationship_property(self.model_class, name)
        self.db.expire(entity, names)
        for name in names:
            getattr(entity, name)

    def describe_relation(self, name: str) -> RelationDescriptor:
        prop = relationship_property(self.model_class, name)
        cardinality = CARDINALITIES[prop.direction]
        target = kind_of(prop.mapper.class_)

        if cardinality == Cardinality.MANY_TO_MANY:
            (_, parent_pivot), = prop.synchronize_pairs
            (_, related_pivot), = prop.secondary_synchronize_pairs
            reserved = {parent_pivot.name, related_pivot.name}
            return RelationDescriptor(
                name,
                target,
                cardinality,
                pivot=prop.secondary.name,
                parent_pivot_key=parent_pivot.name,
                related_pivot_key=related_pivot.name,
                pivot_fields=tuple(c.name for c in prop.secondary.c if c.name not in reserved),
            )

        if cardinality == Cardinality.ONE_TO_MANY:
            (_, child_column), = prop.synchronize_pairs
            return RelationDescriptor(name, target, cardinality, foreign_key=child_column.name)

        (_, local_column), = prop.synchronize_pairs
        return RelationDescriptor(name, target, cardinality, foreign_key=local_column.name)

    def relation(self, parent: T, name: str) -> SQLAlchemyRelation:
        return SQLAlchemyRelation(
            self, parent, relationship_property(self.model_class, name), self.describe_relation(name)
        )

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
