"""
Shared Tool Machinery

A tool is a name, a description, a pydantic parameter model and an async
execute function. The parameter model doubles as the JSON schema
advertised to MCP clients and as the validator for incoming arguments.

CRITICAL: No exception crosses the tool boundary. `run_tool` turns every
failure - bad input, a domain error, an unexpected crash - into a JSON
error payload the AI caller can read and act on.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from actual_context.audit import AuditLogger, create_correlation_id
from actual_context.errors import ActualContextError


logger = structlog.get_logger(__name__)

ToolPayload = Any


class ToolParams(BaseModel):
    """Base for tool parameter models: camelCase on the wire, no extras."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


def date_field(description: str) -> Any:
    return Field(..., description=f"{description} in YYYY-MM-DD format")


def month_field(description: str) -> Any:
    return Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description=f"{description} in YYYY-MM format",
    )


def budget_id_field() -> Any:
    return Field(
        default=None,
        description="Budget ID to use (uses ACTUAL_BUDGET_ID if not provided)",
    )


def context_field() -> Any:
    return Field(
        ...,
        description=(
            "Context data as key-value pairs "
            "(e.g., {currency: 'GBP', accountType: 'ISA', notes: 'Emergency fund'})"
        ),
    )


@dataclass(frozen=True)
class ToolConfig:
    """One callable tool."""

    name: str
    description: str
    parameters: type[ToolParams]
    execute: Callable[[Any], Awaitable[ToolPayload]]

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema(by_alias=True)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def to_text(payload: ToolPayload) -> str:
    """Tool results travel as text: strings as-is, everything else as JSON."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, default=_json_default)


def error_payload(
    tool_name: str,
    error: Exception,
    arguments: Optional[dict[str, Any]],
) -> dict[str, Any]:
    """Build the structured error report returned in place of a result."""
    if isinstance(error, ActualContextError):
        report = error.to_dict()
    elif isinstance(error, ValidationError):
        report = {
            "errorType": "ValidationError",
            "message": f"Invalid arguments for {tool_name}",
            "operation": tool_name,
            "details": {"errors": error.errors(include_url=False)},
        }
    else:
        report = {
            "errorType": type(error).__name__,
            "message": str(error),
            "operation": tool_name,
            "details": {},
        }

    return {
        "error": f"Failed to execute {tool_name}",
        **report,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "args": arguments,
    }


async def run_tool(
    tool: ToolConfig,
    arguments: Optional[dict[str, Any]],
    audit_logger: AuditLogger,
) -> str:
    """
    Validate arguments, execute the tool and return text.

    Every log line emitted while the tool runs carries the tool name and a
    fresh correlation id.
    """
    correlation_id = create_correlation_id()
    with structlog.contextvars.bound_contextvars(
        tool=tool.name,
        correlation_id=str(correlation_id),
    ):
        try:
            params = tool.parameters.model_validate(arguments or {})
            payload = await tool.execute(params)
        except Exception as e:
            audit_logger.log_tool_failed(
                tool.name,
                e,
                details={"args": arguments},
                correlation_id=correlation_id,
            )
            if not isinstance(e, (ActualContextError, ValidationError)):
                logger.exception("tool_crashed")
            return to_text(error_payload(tool.name, e, arguments))

    return to_text(payload)
