"""
Storage Services Package

Provides the abstract annotation storage interface and its MongoDB
implementation.
"""

from actual_context.services.storage.interface import (
    ContextStorageInterface,
    NotFoundError,
    StorageError,
)
from actual_context.services.storage.mongodb import (
    MongoDbClient,
    MongoDbContextStorage,
)

__all__ = [
    # Interfaces
    "ContextStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # MongoDB implementation
    "MongoDbClient",
    "MongoDbContextStorage",
]
