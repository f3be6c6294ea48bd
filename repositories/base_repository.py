"""
Default repository implementation.

Every operation is composed from the primitives of the store the repository
is built on, so the same code serves the SQLAlchemy and the in-memory store.
The repository keeps no entity state between calls.
"""

from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar, Union
import logging

from core.exceptions import InvalidArgumentException, NotFoundException
from core.pagination import Page
from repositories.contracts import Repository
from stores.base import QueryHandle, RelationHandle, Store, as_name_list

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BaseRepository(Repository[T], Generic[T]):
    """
    Generic repository over a store.

    Entity repositories inherit from this class and add their own finders.
    """

    def __init__(self, store: Store[T]):
        """
        Args:
            store: Store holding the entities of this repository's kind
        """
        self.store = store

    # ==================== Reads ====================

    def query(self) -> QueryHandle[T]:
        return self.store.query()

    def all(self, related: Optional[Iterable[str]] = None) -> List[T]:
        query = self.query()
        if related:
            query = query.with_related(related)
        return query.get()

    def paginate(self, per_page: int = 10, page: int = 1) -> Page:
        return self.query().latest().paginate(per_page, page)

    def get(
        self,
        id: Any = None,
        related: Optional[Iterable[str]] = None,
        throw_if_missing: bool = True,
    ) -> Union[T, List[T], None]:
        if id is None:
            return self.all(related)

        entity = self.store.find(id, related)

        if entity is None and throw_if_missing:
            self.throw_not_found(identifier=id)

        return entity

    def _filtered(
        self,
        query: QueryHandle[T],
        extra_filters: Optional[Mapping[str, Any]],
        related: Optional[Iterable[str]],
    ) -> QueryHandle[T]:
        if extra_filters:
            query = query.where(extra_filters)
        if related:
            query = query.with_related(related)
        return query

    def get_where(
        self,
        column: str,
        value: Any,
        extra_filters: Optional[Mapping[str, Any]] = None,
        throw_if_missing: bool = True,
        order_by: Optional[str] = None,
        order_direction: Optional[str] = None,
        related: Optional[Iterable[str]] = None,
        kind: Optional[str] = None,
    ) -> List[T]:
        query = self._filtered(self.query().where(column, value), extra_filters, related)

        if order_by:
            query = query.order_by(order_by, order_direction)
        else:
            query = query.latest()

        entities = query.get()

        if throw_if_missing and not entities:
            self.throw_not_found(kind)

        return entities

    def get_where_in(
        self,
        column: str,
        values: Iterable[Any],
        extra_filters: Optional[Mapping[str, Any]] = None,
        throw_if_missing: bool = True,
        order_by: Optional[str] = None,
        order_direction: Optional[str] = None,
        related: Optional[Iterable[str]] = None,
        kind: Optional[str] = None,
    ) -> List[T]:
        query = self._filtered(self.query().where_in(column, values), extra_filters, related)

        if order_by:
            query = query.order_by(order_by, order_direction)

        entities = query.get()

        if throw_if_missing and not entities:
            self.throw_not_found(kind)

        return entities

    def first_where(
        self,
        column: str,
        value: Any,
        extra_filters: Optional[Mapping[str, Any]] = None,
        throw_if_missing: bool = True,
        kind: Optional[str] = None,
    ) -> Optional[T]:
        query = self._filtered(self.query().where(column, value), extra_filters, None)

        entity = query.first()

        if throw_if_missing and entity is None:
            self.throw_not_found(kind)

        return entity

    def chunk(self, count: int, callback: Callable[[List[T], int], Any]) -> bool:
        query = self.query().order_by(self.store.primary_key)
        page = 1
        results = query.for_page(page, count).get()

        while results:
            # the callback owns each page; only the current page is held in memory
            if callback(results, page) is False:
                return False

            page += 1
            results = query.for_page(page, count).get()

        return True

    def has_relations(self, id: Any, relations: Iterable[str], column: str = "id") -> bool:
        names = as_name_list(relations)
        if not names:
            raise InvalidArgumentException(
                "has_relations only accepts a non-empty list of relations."
            )

        return self.query().where(column, id).where_has_any(names).exists()

    def load(self, entity: T, relations: Union[str, Iterable[str]]) -> None:
        self.store.load(entity, as_name_list(relations))

    # ==================== Writes ====================

    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None, exists: bool = False) -> T:
        return self.store.new_instance(attributes, exists)

    def create(self, attributes: Mapping[str, Any]) -> T:
        entity = self.store.insert(attributes)
        logger.info(f"Created {self.store.kind} {self.store.key_of(entity)}")
        return entity

    def first_or_new(self, attributes: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> T:
        entity = self.query().where(dict(attributes)).first()
        if entity is not None:
            return entity
        return self.new_instance({**attributes, **(defaults or {})})

    def first_or_create(self, attributes: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> T:
        entity = self.query().where(dict(attributes)).first()
        if entity is not None:
            return entity
        return self.create({**attributes, **(defaults or {})})

    def update_entity(self, entity: T, attributes: Mapping[str, Any], guarded: bool = True) -> bool:
        """
        Apply attributes to an entity handle and persist them when something changed.

        Args:
            entity: Entity to update
            attributes: New attribute values
            guarded: Restrict to the kind's fillable attributes

        Returns:
            True if any attribute changed
        """
        changed = self.store.fill(entity, attributes, guarded=guarded)
        if changed:
            self.store.save(entity)
        return changed

    def update_by_id(self, id: Any, attributes: Mapping[str, Any], guarded: bool = True) -> bool:
        """Resolve the entity with a throwing ``get`` and update it."""
        return self.update_entity(self.get(id), attributes, guarded=guarded)

    def update(self, entity_or_id: Any, attributes: Mapping[str, Any]) -> bool:
        if self.store.is_entity(entity_or_id):
            return self.update_entity(entity_or_id, attributes)
        return self.update_by_id(entity_or_id, attributes)

    def force_update(self, entity_or_id: Any, attributes: Mapping[str, Any]) -> bool:
        if self.store.is_entity(entity_or_id):
            return self.update_entity(entity_or_id, attributes, guarded=False)
        return self.update_by_id(entity_or_id, attributes, guarded=False)

    def update_or_create(self, attributes: Mapping[str, Any], values: Optional[Mapping[str, Any]] = None) -> T:
        entity = self.query().where(dict(attributes)).first()
        if entity is None:
            return self.create({**attributes, **(values or {})})
        self.update_entity(entity, values or {}, guarded=False)
        return entity

    def delete_entity(self, entity: T) -> Optional[bool]:
        key = self.store.key_of(entity)
        deleted = self.store.remove(entity)
        logger.info(f"Deleted {self.store.kind} {key}")
        return deleted

    def delete_by_id(self, id: Any) -> Optional[bool]:
        return self.delete_entity(self.get(id))

    def delete(self, entity_or_id: Any) -> Optional[bool]:
        if self.store.is_entity(entity_or_id):
            return self.delete_entity(entity_or_id)
        return self.delete_by_id(entity_or_id)

    # ==================== Relations ====================

    def relation(self, parent: Any, relation: str) -> RelationHandle:
        """
        Bind a relation of a persisted parent.

        Raises:
            InvalidArgumentException: If the parent was never saved or the relation is unknown
        """
        if not self.store.is_entity(parent) or not self.store.is_persisted(parent):
            raise InvalidArgumentException(
                f"Relations can only be managed on a persisted {self.store.kind}"
            )
        return self.store.relation(parent, relation)

    def sync(self, parent: Any, relation: str, ids: Any) -> Dict[str, List[Any]]:
        return self.relation(parent, relation).sync(ids)

    def attach(
        self,
        parent: Any,
        relation: str,
        ids: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        touch: bool = True,
    ) -> None:
        self.relation(parent, relation).attach(ids, attributes, touch)

    def detach(self, parent: Any, relation: str, ids: Any = None, touch: bool = True) -> int:
        return self.relation(parent, relation).detach(ids, touch)

    def create_relationally(self, parent: Any, relation: str, attributes: Mapping[str, Any]) -> Any:
        return self.relation(parent, relation).create(attributes)

    def update_or_create_relationally(
        self,
        parent: Any,
        relation: str,
        attributes: Mapping[str, Any],
        values: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        handle = self.relation(parent, relation)
        entity = handle.query().where(dict(attributes)).first()
        if entity is None:
            return handle.create({**attributes, **(values or {})})
        if handle.related.fill(entity, values or {}, guarded=False):
            handle.related.save(entity)
        return entity

    # ==================== Unit of work ====================

    def commit(self) -> None:
        self.store.commit()

    def rollback(self) -> None:
        self.store.rollback()

    def throw_not_found(self, kind: Optional[str] = None, identifier: Any = None) -> None:
        """
        Raises:
            NotFoundException: Always, naming ``kind`` or this repository's kind
        """
        raise NotFoundException(resource=kind or self.store.kind, identifier=identifier)
