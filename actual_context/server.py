"""
MCP Server Entry Point

Exposes the tool registry over the Model Context Protocol on stdio.

stdout belongs to the protocol. Everything we log goes to stderr.
"""

import asyncio
import signal
from typing import Any, Optional

import structlog
from mcp.server import Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import ServerCapabilities, TextContent, Tool, ToolsCapability

from actual_context import __version__
from actual_context.audit import configure_logging
from actual_context.config import Settings, get_settings
from actual_context.orchestrator import create_app_components
from actual_context.tools import ToolRegistry


logger = structlog.get_logger(__name__)


def create_server(registry: ToolRegistry, name: str = "actual-context") -> Server:
    """Build an MCP server whose tools are the registry's tools."""
    server = Server(name)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema,
            )
            for tool in registry.tools
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[dict[str, Any]]) -> list[TextContent]:
        text = await registry.dispatch(name, arguments)
        return [TextContent(type="text", text=text)]

    return server


def initialization_options(name: str) -> InitializationOptions:
    return InitializationOptions(
        server_name=name,
        server_version=__version__,
        capabilities=ServerCapabilities(tools=ToolsCapability()),
    )


def _cancel_on_sigterm() -> None:
    """Turn SIGTERM into task cancellation so shutdown runs."""
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    if task is None:
        return
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except NotImplementedError:
        # No signal handlers on this platform's event loop
        logger.debug("sigterm_handler_unavailable")


async def run(settings: Optional[Settings] = None) -> None:
    """Start components, serve on stdio until the client goes away, clean up."""
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level, app_settings.log_json)

    components = await create_app_components(settings)
    server = create_server(components.registry, app_settings.server_name)
    _cancel_on_sigterm()

    logger.info("server_starting", server_name=app_settings.server_name, version=__version__)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                initialization_options(app_settings.server_name),
            )
    finally:
        await components.shutdown()
        logger.info("server_stopped")


def main() -> None:
    """Console script entry point."""
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
