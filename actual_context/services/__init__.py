"""Services package."""

from actual_context.services.ledger import (
    ActualLedgerClient,
    LedgerClient,
)
from actual_context.services.storage import (
    ContextStorageInterface,
    MongoDbClient,
    MongoDbContextStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Ledger services
    "ActualLedgerClient",
    "LedgerClient",
    # Storage services
    "ContextStorageInterface",
    "MongoDbClient",
    "MongoDbContextStorage",
    "NotFoundError",
    "StorageError",
]
