from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId

from .errors import TodoCastError
from .models import TodoEntity
from .schemas import validate_todo
from .settings import get_settings

logger = logging.getLogger(__name__)


def parse_object_id(todo_id: str) -> ObjectId:
    """Return `todo_id` as an ObjectId, or raise TodoCastError if malformed."""
    if not isinstance(todo_id, str) or not ObjectId.is_valid(todo_id):
        raise TodoCastError(todo_id)
    return ObjectId(todo_id)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract async contract for todo storage backends.

    Lookups by identifier return None when nothing matches. Every other
    failure (schema violation, malformed id, driver error) is raised.
    """

    async def connect(self) -> None:
        """Open backend resources. No-op by default."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""

    @abstractmethod
    async def create(self, payload: Mapping[str, Any]) -> TodoEntity:
        """Validate `payload`, persist it under a new id and return the stored document."""

    @abstractmethod
    async def find(self, query: Optional[Mapping[str, Any]] = None) -> List[TodoEntity]:
        """Return every document matching `query` (equality filter) in store order."""

    @abstractmethod
    async def find_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        """Return the document with `todo_id`, or None."""

    @abstractmethod
    async def find_by_id_and_update(
        self, todo_id: str, payload: Mapping[str, Any], new: bool = True
    ) -> Optional[TodoEntity]:
        """
        Replace `title`/`done` of the document with `todo_id`.
        Returns the post-update document when `new` is true, else the previous one;
        None if no document matched.
        """

    @abstractmethod
    async def find_by_id_and_delete(self, todo_id: str) -> Optional[TodoEntity]:
        """Remove the document with `todo_id` and return it, or None if absent."""


class InMemoryRepository(Repository):
    """
    Process-local repository suitable for testing and default runtime.

    Insertion order is the natural order returned by find().
    """

    def __init__(self) -> None:
        self._items: Dict[str, TodoEntity] = {}

    async def create(self, payload: Mapping[str, Any]) -> TodoEntity:
        fields = validate_todo(payload)
        entity: TodoEntity = {"_id": str(ObjectId()), "title": fields["title"], "done": fields["done"]}
        self._items[entity["_id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    async def find(self, query: Optional[Mapping[str, Any]] = None) -> List[TodoEntity]:
        criteria = dict(query or {})
        return [
            t.copy()  # type: ignore[misc]
            for t in self._items.values()
            if all(t.get(k) == v for k, v in criteria.items())
        ]

    async def find_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        key = str(parse_object_id(todo_id))
        item = self._items.get(key)
        return None if item is None else item.copy()  # type: ignore[return-value]

    async def find_by_id_and_update(
        self, todo_id: str, payload: Mapping[str, Any], new: bool = True
    ) -> Optional[TodoEntity]:
        key = str(parse_object_id(todo_id))
        fields = validate_todo(payload)
        existing = self._items.get(key)
        if existing is None:
            return None
        updated: TodoEntity = {"_id": key, "title": fields["title"], "done": fields["done"]}
        self._items[key] = updated
        return (updated if new else existing).copy()  # type: ignore[return-value]

    async def find_by_id_and_delete(self, todo_id: str) -> Optional[TodoEntity]:
        key = str(parse_object_id(todo_id))
        return self._items.pop(key, None)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide repository configured by settings.
    - memory: InMemoryRepository
    - mongo: MongoRepository (motor)

    Call get_repository.cache_clear() to drop the instance (tests do).
    """
    settings = get_settings()
    if settings.persistence_backend == "mongo":
        from .db import MongoRepository

        logger.info("Using MongoDB store database=%s", settings.mongodb_database)
        return MongoRepository(settings.mongodb_url, settings.mongodb_database)
    logger.info("Using in-memory store")
    return InMemoryRepository()
