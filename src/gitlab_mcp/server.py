"""MCP server for gitlab-mcp.

Tool schemas are built by the registry at list time (feature gates, policy,
description overrides, schema mode), so the low-level MCP ``Server`` is used
rather than decorator-registered FastMCP tools.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from gitlab_mcp.config import ServerConfig, get_config
from gitlab_mcp.core.availability import ToolAvailability
from gitlab_mcp.core.context import request_context
from gitlab_mcp.core.responses import exception_to_response, minify_response, success_response
from gitlab_mcp.core.session import GitLabSession
from gitlab_mcp.tools.registry import RegistryManager

logger = logging.getLogger(__name__)


def build_tool_list(registry: RegistryManager, session: GitLabSession) -> List[types.Tool]:
    """Tools the connected instance supports, in MCP form."""
    availability = ToolAvailability(lambda: session.instance_info)
    return [
        types.Tool(
            name=definition.name,
            description=definition.description,
            inputSchema=definition.input_schema,
        )
        for definition in registry.list_tools(availability)
    ]


async def handle_tool_call(
    registry: RegistryManager,
    session: GitLabSession,
    name: str,
    arguments: Optional[Dict[str, Any]],
) -> List[types.TextContent]:
    """Execute one tool call and wrap the outcome in the response envelope."""
    async with request_context(tool_name=name) as ctx:
        try:
            result = await registry.execute_tool(name, arguments, session)
        except Exception as exc:
            logger.info("Tool %s failed [%s]: %s", name, ctx.correlation_id, exc)
            return [minify_response(exception_to_response(exc, tool_name=name))]

        logger.debug("Tool %s completed in %.1fms", name, ctx.elapsed_ms)
        return [minify_response(success_response(result=result))]


def create_server(
    config: Optional[ServerConfig] = None,
    session: Optional[GitLabSession] = None,
) -> Server:
    """Create and configure the MCP server instance."""

    if config is None:
        config = get_config()
    if session is None:
        session = GitLabSession(config.gitlab)

    config.setup_logging()

    registry = RegistryManager(config)
    server: Server = Server(config.server_name, version=config.server_version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return build_tool_list(registry, session)

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        return await handle_tool_call(registry, session, name, arguments)

    logger.info(
        "Server created: %s v%s (%d tools)",
        config.server_name,
        config.server_version,
        len(registry.tool_names),
    )
    return server


async def serve(config: ServerConfig) -> None:
    """Detect the instance, then serve over stdio until the client disconnects."""
    async with GitLabSession(config.gitlab) as session:
        try:
            await session.initialize()
        except Exception as exc:
            logger.warning("GitLab instance detection failed, all tools enabled: %s", exc)

        server = create_server(config, session)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    """Main entry point for the gitlab-mcp server."""

    try:
        config = get_config()
        config.setup_logging()
        logger.info("Starting %s v%s", config.server_name, config.server_version)
        asyncio.run(serve(config))

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except BaseException as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
