"""
Application Orchestrator

Ties the components together: settings, annotation storage, the ledger
client, the shared session, the balance projector and the tool registry.

DESIGN DECISION: Exactly one SessionManager and one ledger client per
process. Every tool receives the same instances, so all calls share the
one open budget and the one session lock.

DESIGN DECISION: Annotation storage is required. If MongoDB is
unreachable or its indexes cannot be built, startup fails instead of
running without the uniqueness guarantee.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from actual_context.audit import AuditLogger
from actual_context.config import Settings, get_settings, validate_all_settings
from actual_context.errors import ConfigError
from actual_context.projections import BalanceProjector
from actual_context.services.ledger import ActualLedgerClient, LedgerClient
from actual_context.services.storage import (
    ContextStorageInterface,
    MongoDbClient,
    MongoDbContextStorage,
)
from actual_context.session import SessionManager
from actual_context.tools import ToolRegistry, create_tool_registry


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a running server holds on to."""

    session: SessionManager
    storage: ContextStorageInterface
    projector: BalanceProjector
    registry: ToolRegistry
    audit_logger: AuditLogger
    mongo_client: Optional[MongoDbClient] = field(default=None)

    async def shutdown(self) -> None:
        """Release the ledger session, then the database connection."""
        try:
            await self.session.shutdown()
        finally:
            if self.mongo_client is not None:
                await self.mongo_client.disconnect()
        logger.info("components_shutdown")


def build_components(
    ledger: LedgerClient,
    storage: ContextStorageInterface,
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
    mongo_client: Optional[MongoDbClient] = None,
) -> AppComponents:
    """Wire already-constructed services together. Used directly by tests."""
    settings = settings or get_settings()
    audit_logger = audit_logger or AuditLogger()

    session = SessionManager(ledger, settings.actual, audit_logger)
    projector = BalanceProjector(ledger)
    registry = create_tool_registry(session, storage, projector, audit_logger)

    return AppComponents(
        session=session,
        storage=storage,
        projector=projector,
        registry=registry,
        audit_logger=audit_logger,
        mongo_client=mongo_client,
    )


async def create_app_components(settings: Optional[Settings] = None) -> AppComponents:
    """
    Factory function to create all application components.

    Connects to MongoDB and builds the indexes before returning. The ledger
    connection stays lazy: it opens on the first tool call.

    Raises:
        ConfigError: A settings group failed validation
        StorageError: MongoDB unreachable or indexes could not be created
    """
    settings = settings or get_settings()

    status = validate_all_settings(settings)
    errors = {key: value for key, value in status.items() if key.endswith("_error")}
    if errors:
        logger.error("settings_invalid", **errors)
        raise ConfigError(
            "Invalid configuration: " + "; ".join(errors.values()),
            operation="startup",
            details=errors,
        )

    mongo_settings = settings.mongodb
    actual_settings = settings.actual

    mongo_client = MongoDbClient(mongo_settings)
    await mongo_client.connect()
    try:
        storage = MongoDbContextStorage(mongo_client.get_collection())
        await storage.ensure_indexes()
    except Exception:
        await mongo_client.disconnect()
        raise

    ledger = ActualLedgerClient(encryption_password=actual_settings.encryption_password)

    components = build_components(
        ledger,
        storage,
        settings=settings,
        mongo_client=mongo_client,
    )
    logger.info(
        "components_ready",
        server_url=actual_settings.server_url,
        default_budget_id=actual_settings.budget_id,
        mongodb_healthy=await mongo_client.ping(),
        tools=components.registry.names,
    )
    return components
