"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for annotation storage.
This allows us to:
1. Swap MongoDB for another document store later
2. Keep tools decoupled from the storage implementation
3. Test tool behaviour against any conforming backend

The interface is intentionally small - four operations over one record
type, keyed by (entity type, entity id, budget id).
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import JsonValue

from actual_context.errors import NotFoundError, StorageError
from actual_context.models.context import (
    ContextQuery,
    EntityContext,
    EntityType,
)


class ContextStorageInterface(ABC):
    """
    Abstract interface for entity annotation storage.

    Any storage implementation must guarantee at most one record per
    (entity_type, entity_id, budget_id), enforced by the store itself.
    """

    @abstractmethod
    async def set_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
        context: dict[str, JsonValue],
    ) -> EntityContext:
        """
        Create or replace the annotation for an entity.

        The whole `context` is replaced (last write wins, no merge).
        `created_at` is set on first insert only; `updated_at` on every call.

        Returns:
            The stored record

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
    ) -> Optional[EntityContext]:
        """
        Retrieve the annotation for an entity.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def clear_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
    ) -> bool:
        """
        Delete the annotation for an entity.

        Returns:
            True if a record existed and was removed
        """
        pass

    @abstractmethod
    async def search_context(self, query: ContextQuery) -> list[EntityContext]:
        """
        Find annotations matching every filter and every predicate.

        Returns:
            Matching records (empty list if none)
        """
        pass


__all__ = [
    "ContextStorageInterface",
    "NotFoundError",
    "StorageError",
]
