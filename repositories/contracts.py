"""
Repository contract.

Uniform read, write and relation operations over the entities of one kind,
independent of the storage technology behind them.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar, Union

from core.pagination import Page
from stores.base import QueryHandle

T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """Data access contract for one entity kind."""

    @abstractmethod
    def all(self, related: Optional[Iterable[str]] = None) -> List[T]:
        """
        Every entity of the kind.

        Args:
            related: Relation names to eager load

        Returns:
            The entities, empty list when there are none
        """

    @abstractmethod
    def paginate(self, per_page: int = 10, page: int = 1) -> Page:
        """
        One page of entities, newest first.

        Raises:
            InvalidArgumentException: If per_page or page is not a positive integer
        """

    @abstractmethod
    def get(
        self,
        id: Any = None,
        related: Optional[Iterable[str]] = None,
        throw_if_missing: bool = True,
    ) -> Union[T, List[T], None]:
        """
        An entity by primary key, or every entity when ``id`` is None.

        Raises:
            NotFoundException: If nothing matches and throw_if_missing is set
        """

    @abstractmethod
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
        """
        Entities where ``column`` equals ``value`` and every extra filter holds.

        Newest first unless ``order_by`` is given.

        Raises:
            NotFoundException: If nothing matches and throw_if_missing is set
        """

    @abstractmethod
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
        """
        Entities whose ``column`` is one of ``values``.

        Raises:
            NotFoundException: If nothing matches and throw_if_missing is set
        """

    @abstractmethod
    def new_instance(self, attributes: Optional[Mapping[str, Any]] = None, exists: bool = False) -> T:
        """Build an entity without persisting it."""

    @abstractmethod
    def create(self, attributes: Mapping[str, Any]) -> T:
        """
        Persist a new entity.

        Raises:
            ValidationException: If the store rejects the record
        """

    @abstractmethod
    def first_or_new(self, attributes: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> T:
        """First entity matching ``attributes``, or an unsaved one filled with them."""

    @abstractmethod
    def first_or_create(self, attributes: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> T:
        """First entity matching ``attributes``, or a newly persisted one."""

    @abstractmethod
    def update(self, entity_or_id: Any, attributes: Mapping[str, Any]) -> bool:
        """
        Apply the fillable subset of ``attributes``.

        Returns:
            True if any attribute changed

        Raises:
            NotFoundException: If an id is given and no entity has it
        """

    @abstractmethod
    def force_update(self, entity_or_id: Any, attributes: Mapping[str, Any]) -> bool:
        """Apply ``attributes`` bypassing the fillable allow-list."""

    @abstractmethod
    def chunk(self, count: int, callback: Callable[[List[T], int], Any]) -> bool:
        """
        Walk every entity ``count`` at a time.

        ``callback(entities, page)`` runs once per non-empty page, pages
        numbered from 1. Returning ``False`` from the callback stops the walk.

        Returns:
            False if the callback stopped the walk, True otherwise
        """

    @abstractmethod
    def has_relations(self, id: Any, relations: Iterable[str], column: str = "id") -> bool:
        """
        Whether the entity has a related record in any of ``relations``.

        Raises:
            InvalidArgumentException: If relations is empty
        """

    @abstractmethod
    def load(self, entity: T, relations: Union[str, Iterable[str]]) -> None:
        """Eager load relations onto an already fetched entity."""

    @abstractmethod
    def delete(self, entity_or_id: Any) -> Optional[bool]:
        """
        Delete an entity by handle or id.

        Raises:
            NotFoundException: If an id is given and no entity has it
            ConstraintViolationException: If related records block the delete
        """

    @abstractmethod
    def first_where(
        self,
        column: str,
        value: Any,
        extra_filters: Optional[Mapping[str, Any]] = None,
        throw_if_missing: bool = True,
        kind: Optional[str] = None,
    ) -> Optional[T]:
        """
        First entity where ``column`` equals ``value``.

        Raises:
            NotFoundException: If nothing matches and throw_if_missing is set
        """

    @abstractmethod
    def update_or_create(self, attributes: Mapping[str, Any], values: Optional[Mapping[str, Any]] = None) -> T:
        """Update the entity matching ``attributes`` with ``values``, or create it."""

    @abstractmethod
    def sync(self, parent: Any, relation: str, ids: Any) -> Dict[str, List[Any]]:
        """
        Make a many-to-many membership exactly ``ids``.

        Returns:
            ``{"attached": [...], "detached": [...], "updated": [...]}``
        """

    @abstractmethod
    def attach(
        self,
        parent: Any,
        relation: str,
        ids: Any,
        attributes: Optional[Mapping[str, Any]] = None,
        touch: bool = True,
    ) -> None:
        """Add many-to-many memberships, keeping the existing ones."""

    @abstractmethod
    def detach(self, parent: Any, relation: str, ids: Any = None, touch: bool = True) -> int:
        """
        Remove many-to-many memberships, all of them when ``ids`` is None.

        Returns:
            Number of memberships removed
        """

    @abstractmethod
    def create_relationally(self, parent: Any, relation: str, attributes: Mapping[str, Any]) -> Any:
        """Create an entity linked to ``parent`` through ``relation``."""

    @abstractmethod
    def update_or_create_relationally(
        self,
        parent: Any,
        relation: str,
        attributes: Mapping[str, Any],
        values: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """``update_or_create`` among the entities linked to ``parent``."""

    @abstractmethod
    def query(self) -> QueryHandle[T]:
        """Start a composable query over the kind."""
