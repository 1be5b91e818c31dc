"""
Audit Logger

DESIGN DECISION: Every state change is logged as a structured event.
This provides:
1. Traceability of budget switches and annotation writes
2. Debugging capability when a tool call fails
3. A record of what the AI assistant changed

The audit logger:
- Writes to stderr only (stdout carries the MCP stdio protocol)
- Never raises - a logging failure must not break a tool call
- Supports correlation IDs to tie events to one tool invocation
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from actual_context.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure stdlib logging and structlog.

    Call once at process start. Safe to call again (e.g. in tests).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Each AuditEvent becomes one structured log line at the level matching
    its severity.
    """

    def __init__(self, logger_name: str = "actual_context.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break the main flow
            logging.getLogger(__name__).exception(
                "Failed to write audit event %s", log_dict["event_id"]
            )

    def log_ledger_connected(self, server_url: str, data_dir: str) -> None:
        self.log(AuditEventBuilder.ledger_connected(server_url, data_dir))

    def log_ledger_connection_failed(self, server_url: str, error: BaseException) -> None:
        self.log(AuditEventBuilder.ledger_connection_failed(server_url, error))

    def log_budget_loaded(
        self,
        budget_id: str,
        previous_budget_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.budget_loaded(budget_id, previous_budget_id))

    def log_budget_load_failed(self, budget_id: str, error: BaseException) -> None:
        self.log(AuditEventBuilder.budget_load_failed(budget_id, error))

    def log_ledger_synced(self, budget_id: str) -> None:
        self.log(AuditEventBuilder.ledger_synced(budget_id))

    def log_session_shutdown(self, budget_id: Optional[str]) -> None:
        self.log(AuditEventBuilder.session_shutdown(budget_id))

    def log_context_set(
        self,
        entity_type: str,
        entity_id: str,
        budget_id: str,
        keys: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an annotation write (keys only)."""
        self.log(
            AuditEventBuilder.context_set(
                entity_type=entity_type,
                entity_id=entity_id,
                budget_id=budget_id,
                keys=keys,
                correlation_id=correlation_id,
            )
        )

    def log_context_cleared(
        self,
        entity_type: str,
        entity_id: str,
        budget_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(
            AuditEventBuilder.context_cleared(
                entity_type=entity_type,
                entity_id=entity_id,
                budget_id=budget_id,
                existed=existed,
                correlation_id=correlation_id,
            )
        )

    def log_tool_failed(
        self,
        tool_name: str,
        error: BaseException,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a tool failure that was converted to an error payload."""
        self.log(
            AuditEventBuilder.tool_failed(
                tool_name=tool_name,
                error=error,
                details=details,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The tool layer creates one per invocation.
    """
    return uuid4()
