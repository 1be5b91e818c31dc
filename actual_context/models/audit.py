"""
Audit Models for Actual Context

Every state change in the system is logged for audit purposes:
1. Ledger connection and budget switches (who is looking at what)
2. Annotation writes and deletes (what the AI remembered or forgot)
3. Tool failures (what the AI was told went wrong)

DESIGN DECISION: Audit events are structured, not free text, so they can
be filtered by event type or correlated by tool invocation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger session
    LEDGER_CONNECTED = "ledger_connected"
    LEDGER_CONNECTION_FAILED = "ledger_connection_failed"
    BUDGET_LOADED = "budget_loaded"
    BUDGET_LOAD_FAILED = "budget_load_failed"
    LEDGER_SYNCED = "ledger_synced"
    SESSION_SHUTDOWN = "session_shutdown"

    # Annotations
    CONTEXT_SET = "context_set"
    CONTEXT_CLEARED = "context_cleared"

    # Tool boundary
    TOOL_FAILED = "tool_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'account', 'tool')"
    )
    entity_id: Optional[str] = None
    budget_id: Optional[str] = None

    # Correlation - one id per tool invocation
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "budget_id": self.budget_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.budget_loaded("my-budget-id")
        event = AuditEventBuilder.tool_failed("get_accounts", error, correlation_id)
    """

    @staticmethod
    def ledger_connected(server_url: str, data_dir: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CONNECTED,
            entity_type="ledger",
            description=f"Connected to ledger at {server_url}",
            details={"server_url": server_url, "data_dir": data_dir},
        )

    @staticmethod
    def ledger_connection_failed(server_url: str, error: BaseException) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CONNECTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"Could not connect to ledger at {server_url}",
            details={"server_url": server_url},
            error_type=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def budget_loaded(
        budget_id: str,
        previous_budget_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_LOADED,
            entity_type="budget",
            entity_id=budget_id,
            budget_id=budget_id,
            description=f"Budget {budget_id} loaded",
            details={"previous_budget_id": previous_budget_id},
        )

    @staticmethod
    def budget_load_failed(budget_id: str, error: BaseException) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="budget",
            entity_id=budget_id,
            budget_id=budget_id,
            description=f"Failed to load budget {budget_id}",
            error_type=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def ledger_synced(budget_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SYNCED,
            entity_type="budget",
            entity_id=budget_id,
            budget_id=budget_id,
            description=f"Budget {budget_id} synced with server",
        )

    @staticmethod
    def session_shutdown(budget_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_SHUTDOWN,
            entity_type="ledger",
            budget_id=budget_id,
            description="Ledger session shut down",
        )

    @staticmethod
    def context_set(
        entity_type: str,
        entity_id: str,
        budget_id: str,
        keys: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_SET,
            entity_type=entity_type,
            entity_id=entity_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
            description=f"Context stored for {entity_type} {entity_id}",
            # Keys only - values may be personal
            details={"keys": keys},
        )

    @staticmethod
    def context_cleared(
        entity_type: str,
        entity_id: str,
        budget_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_CLEARED,
            entity_type=entity_type,
            entity_id=entity_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
            description=(
                f"Context cleared for {entity_type} {entity_id}"
                if existed
                else f"No context to clear for {entity_type} {entity_id}"
            ),
            details={"existed": existed},
        )

    @staticmethod
    def tool_failed(
        tool_name: str,
        error: BaseException,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOOL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="tool",
            entity_id=tool_name,
            correlation_id=correlation_id,
            description=f"Tool {tool_name} failed",
            details=details or {},
            error_type=type(error).__name__,
            error_message=str(error),
        )
