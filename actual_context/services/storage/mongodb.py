"""
MongoDB Storage Implementation

DESIGN DECISION: Annotations are schema-free JSON, so a document store is
the natural fit:
1. `context` is stored as-is, nested objects included
2. Nested fields are queryable with dot notation
3. Atomic upsert gives us create-or-replace in one round trip
4. A unique compound index enforces one record per entity key

The document layout (camelCase field names, `entity_contexts` collection)
matches what earlier versions of the server wrote, so existing data keeps
working.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pydantic import JsonValue
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from actual_context.config import MongoDbSettings
from actual_context.errors import StorageError
from actual_context.models.context import (
    ContextQuery,
    EntityContext,
    EntityType,
)
from actual_context.services.storage.interface import ContextStorageInterface


logger = structlog.get_logger(__name__)

# Index definitions - the unique key is what makes upserts safe
KEY_INDEX = [("entityType", ASCENDING), ("entityId", ASCENDING), ("budgetId", ASCENDING)]
KEY_INDEX_NAME = "entity_key_unique"
BUDGET_INDEX_NAME = "budget_id"
ENTITY_TYPE_INDEX_NAME = "entity_type"


def _utcnow_ms() -> datetime:
    """Current UTC time truncated to BSON's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class MongoDbClient:
    """
    Low-level MongoDB client wrapper.

    Owns the motor client and its connection pool.
    """

    def __init__(
        self,
        settings: MongoDbSettings,
        client: Optional[AsyncIOMotorClient] = None,
    ):
        self._settings = settings
        self._client = client or AsyncIOMotorClient(
            settings.uri,
            maxPoolSize=settings.max_pool_size,
            minPoolSize=settings.min_pool_size,
            maxIdleTimeMS=settings.max_idle_time_ms,
            serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
            retryWrites=True,
            retryReads=True,
        )
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """
        Verify the server is reachable.

        Motor connects lazily, so a ping is the only way to fail early.
        """
        if self._connected:
            return
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            raise StorageError(
                f"Failed to connect to MongoDB: {e}",
                operation="connect",
                details={"db_name": self._settings.db_name},
            ) from e
        self._connected = True
        logger.info("mongodb_connected", db_name=self._settings.db_name)

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._client.close()
        self._connected = False
        logger.info("mongodb_disconnected")

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    def get_database(self) -> AsyncIOMotorDatabase:
        if not self._connected:
            raise StorageError(
                "MongoDB not connected. Call connect() first.",
                operation="get_database",
            )
        return self._client[self._settings.db_name]

    def get_collection(self) -> AsyncIOMotorCollection:
        return self.get_database()[self._settings.collection_name]


class MongoDbContextStorage(ContextStorageInterface):
    """
    MongoDB implementation of annotation storage.

    One document per annotated entity:
        {_id, entityType, entityId, budgetId, context, createdAt, updatedAt}
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._collection = collection
        self._clock = clock or _utcnow_ms

    async def ensure_indexes(self) -> None:
        """
        Create the unique key index and the secondary filter indexes.

        Raises:
            StorageError: If any index cannot be created (e.g. existing
                duplicates block the unique index)
        """
        try:
            await self._collection.create_index(
                KEY_INDEX, unique=True, name=KEY_INDEX_NAME
            )
            await self._collection.create_index(
                [("budgetId", ASCENDING)], name=BUDGET_INDEX_NAME
            )
            await self._collection.create_index(
                [("entityType", ASCENDING)], name=ENTITY_TYPE_INDEX_NAME
            )
        except PyMongoError as e:
            raise StorageError(
                f"Failed to create context indexes: {e}",
                operation="ensure_indexes",
            ) from e
        logger.info("context_indexes_ready")

    @staticmethod
    def _key_filter(
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
    ) -> dict[str, str]:
        return {
            "entityType": EntityType(entity_type).value,
            "entityId": entity_id,
            "budgetId": budget_id,
        }

    @staticmethod
    def _document_to_context(document: dict[str, Any]) -> EntityContext:
        return EntityContext(
            id=str(document["_id"]),
            entity_type=document["entityType"],
            entity_id=document["entityId"],
            budget_id=document["budgetId"],
            context=document.get("context") or {},
            created_at=document["createdAt"],
            updated_at=document["updatedAt"],
        )

    @staticmethod
    def _query_to_filter(query: ContextQuery) -> dict[str, Any]:
        mongo_filter: dict[str, Any] = {}
        if query.entity_type is not None:
            mongo_filter["entityType"] = query.entity_type.value
        if query.entity_id is not None:
            mongo_filter["entityId"] = query.entity_id
        if query.budget_id is not None:
            mongo_filter["budgetId"] = query.budget_id
        for predicate in query.predicates:
            mongo_filter[f"context.{predicate.path}"] = predicate.value
        return mongo_filter

    async def _upsert(self, key: dict[str, str], context: dict[str, JsonValue]) -> dict:
        now = self._clock()
        return await self._collection.find_one_and_update(
            key,
            {
                "$set": {"context": context, "updatedAt": now},
                "$setOnInsert": {**key, "createdAt": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def set_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
        context: dict[str, JsonValue],
    ) -> EntityContext:
        """Atomic create-or-replace keyed by the entity triple."""
        key = self._key_filter(entity_type, entity_id, budget_id)
        try:
            try:
                document = await self._upsert(key, context)
            except DuplicateKeyError:
                # Lost a first-insert race: the winner's document now
                # exists, so the same update matches it instead of inserting.
                logger.debug("context_upsert_race", **key)
                document = await self._upsert(key, context)
        except PyMongoError as e:
            raise StorageError(
                f"Failed to set context: {e}",
                operation="set_context",
                details=key,
            ) from e
        return self._document_to_context(document)

    async def get_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
    ) -> Optional[EntityContext]:
        key = self._key_filter(entity_type, entity_id, budget_id)
        try:
            document = await self._collection.find_one(key)
        except PyMongoError as e:
            raise StorageError(
                f"Failed to get context: {e}",
                operation="get_context",
                details=key,
            ) from e
        return self._document_to_context(document) if document else None

    async def clear_context(
        self,
        entity_type: EntityType,
        entity_id: str,
        budget_id: str,
    ) -> bool:
        key = self._key_filter(entity_type, entity_id, budget_id)
        try:
            result = await self._collection.delete_one(key)
        except PyMongoError as e:
            raise StorageError(
                f"Failed to clear context: {e}",
                operation="clear_context",
                details=key,
            ) from e
        return result.deleted_count > 0

    async def search_context(self, query: ContextQuery) -> list[EntityContext]:
        mongo_filter = self._query_to_filter(query)
        try:
            cursor = self._collection.find(mongo_filter).sort("_id", ASCENDING)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StorageError(
                f"Failed to search context: {e}",
                operation="search_context",
                details={"filter": mongo_filter},
            ) from e
        return [self._document_to_context(document) for document in documents]
