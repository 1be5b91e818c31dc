"""
Tool Registry

Collects every tool and dispatches calls by name. The MCP server only
talks to this class.
"""

from typing import Any, Optional

import structlog

from actual_context.audit import AuditLogger
from actual_context.projections import BalanceProjector
from actual_context.services.storage import ContextStorageInterface
from actual_context.session import SessionManager
from actual_context.tools.accounts import build_account_tools
from actual_context.tools.budgets import build_budget_tools
from actual_context.tools.context import build_context_tools
from actual_context.tools.owner import build_owner_tools
from actual_context.tools.shared import ToolConfig, run_tool, to_text
from actual_context.tools.transactions import build_transaction_tools


logger = structlog.get_logger(__name__)


class ToolRegistry:
    """Name -> ToolConfig lookup plus error-safe dispatch."""

    def __init__(self, tools: list[ToolConfig], audit_logger: Optional[AuditLogger] = None):
        self._tools: dict[str, ToolConfig] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def tools(self) -> list[ToolConfig]:
        return list(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[ToolConfig]:
        return self._tools.get(name)

    async def dispatch(self, name: str, arguments: Optional[dict[str, Any]]) -> str:
        """Run a tool by name. Always returns text, never raises."""
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("unknown_tool", tool=name)
            return to_text({
                "error": f"Unknown tool: {name}",
                "errorType": "UnknownTool",
                "message": f"No tool named {name!r}",
                "operation": name,
                "details": {"available": self.names},
                "args": arguments,
            })
        return await run_tool(tool, arguments, self._audit_logger)


def build_tools(
    session: SessionManager,
    storage: ContextStorageInterface,
    projector: BalanceProjector,
    audit_logger: AuditLogger,
) -> list[ToolConfig]:
    """Every tool the server exposes, wired to shared services."""
    return [
        *build_owner_tools(session, storage, audit_logger),
        *build_account_tools(session, storage, projector, audit_logger),
        *build_transaction_tools(session),
        *build_budget_tools(session),
        *build_context_tools(session, storage, audit_logger),
    ]


def create_tool_registry(
    session: SessionManager,
    storage: ContextStorageInterface,
    projector: Optional[BalanceProjector] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> ToolRegistry:
    audit_logger = audit_logger or AuditLogger()
    projector = projector or BalanceProjector(session.ledger)
    return ToolRegistry(
        build_tools(session, storage, projector, audit_logger),
        audit_logger,
    )
