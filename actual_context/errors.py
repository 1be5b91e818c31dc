"""
Error Taxonomy

Every error raised by the core carries enough structure for the tool layer
to build a caller-facing report without parsing messages:
- operation: what we were doing when it failed
- details: the offending arguments and the underlying cause

The tool layer turns these into JSON payloads. Nothing here is retried.
"""

from typing import Any, Optional


class ActualContextError(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form used in tool error payloads."""
        return {
            "errorType": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
        }


class ConfigError(ActualContextError):
    """Required configuration is missing (e.g. no budget id anywhere)."""
    pass


class ConnectionError(ActualContextError):
    """Could not initialise the ledger connection or load a budget."""

    def __init__(
        self,
        message: str,
        *,
        budget_id: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.budget_id = budget_id
        details: dict[str, Any] = {"budget_id": budget_id}
        if cause is not None:
            details["cause"] = str(cause) or type(cause).__name__
        super().__init__(message, operation=operation, details=details)


class NotFoundError(ActualContextError):
    """A ledger entity (usually an account) does not exist."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        *,
        operation: Optional[str] = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} not found",
            operation=operation,
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class StorageError(ActualContextError):
    """The annotation store failed in a way it could not absorb."""
    pass
