"""MCP tools exposed by the server."""

from actual_context.tools.registry import (
    ToolRegistry,
    build_tools,
    create_tool_registry,
)
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    error_payload,
    run_tool,
    to_text,
)

__all__ = [
    "ToolConfig",
    "ToolParams",
    "ToolRegistry",
    "build_tools",
    "create_tool_registry",
    "error_payload",
    "run_tool",
    "to_text",
]
