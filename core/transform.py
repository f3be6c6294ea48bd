"""
Entity transformation with optional includes.

A ``Transformer`` turns one entity into a plain dict. Relations are not
part of that dict unless the caller asks for them by name: each name listed
in ``available_includes`` is served by an ``include_<name>`` method that
returns an ``Item`` or a ``Collection`` resource (or None). Dotted names
such as ``posts.author`` include ``posts`` and, inside every post, its
``author``. Names a transformer does not offer are ignored.

Output follows the ``{"data": ...}`` convention at every level.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from core.pagination import Page

logger = logging.getLogger(__name__)

IncludeTree = Dict[str, "IncludeTree"]


class Transformer(ABC):
    """Base transformer; subclasses implement ``transform``."""

    available_includes: Tuple[str, ...] = ()
    default_includes: Tuple[str, ...] = ()

    @abstractmethod
    def transform(self, entity: Any) -> Dict[str, Any]:
        """The entity's own fields, without relations."""

    def item(self, entity: Any, transformer: "Transformer") -> "Item":
        return Item(entity, transformer)

    def collection(self, entities: Iterable[Any], transformer: "Transformer") -> "Collection":
        return Collection(entities, transformer)


class Item:
    """A single entity paired with its transformer."""

    def __init__(self, data: Any, transformer: Transformer):
        self.data = data
        self.transformer = transformer

    def serialize(self, includes: IncludeTree) -> Optional[Dict[str, Any]]:
        if self.data is None:
            return None
        return _transform_entity(self.data, self.transformer, includes)


class Collection:
    """A sequence of entities sharing one transformer."""

    def __init__(self, data: Iterable[Any], transformer: Transformer):
        self.data = list(data or [])
        self.transformer = transformer

    def serialize(self, includes: IncludeTree) -> List[Dict[str, Any]]:
        return [_transform_entity(entity, self.transformer, includes) for entity in self.data]


def build_include_tree(includes: Optional[Sequence[str]]) -> IncludeTree:
    """
    Nest dotted include names.

    ``["posts.author", "roles"]`` becomes ``{"posts": {"author": {}}, "roles": {}}``.
    """
    tree: IncludeTree = {}
    for name in includes or []:
        node = tree
        for part in name.split("."):
            part = part.strip()
            if not part:
                break
            node = node.setdefault(part, {})
    return tree


def _transform_entity(entity: Any, transformer: Transformer, includes: IncludeTree) -> Dict[str, Any]:
    data = transformer.transform(entity)

    requested = list(transformer.default_includes)
    requested += [name for name in includes if name not in requested]

    for name in requested:
        if name not in transformer.available_includes:
            logger.debug(f"Ignoring unknown include '{name}' for {type(transformer).__name__}")
            continue
        resource = getattr(transformer, f"include_{name}")(entity)
        data[name] = {"data": None if resource is None else resource.serialize(includes.get(name, {}))}

    return data


def transform_item(entity: Any, transformer: Transformer, includes: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    return {"data": Item(entity, transformer).serialize(build_include_tree(includes))}


def transform_collection(
    entities: Iterable[Any],
    transformer: Transformer,
    includes: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    return {"data": Collection(entities, transformer).serialize(build_include_tree(includes))}


def transform_page(page: Page, transformer: Transformer, includes: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Transform one page of entities and attach its pagination metadata.

    Returns:
        ``{"data": [...], "meta": {"pagination": {...}}}``
    """
    transformed = transform_collection(page.items, transformer, includes)
    transformed["meta"] = {"pagination": page.meta.model_dump()}
    return transformed
