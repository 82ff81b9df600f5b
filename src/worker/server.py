"""MCP stdio server exposing the worker registry.

stdout carries the protocol; all logging goes to stderr.
"""

from __future__ import annotations

import os
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from core import __version__
from observability import get_logger

from .base_client import BaseServiceClient
from .crawler_tools import build_registry
from .registry import WorkerRegistry

SERVER_NAME = "mcp-crawler"


def build_server(registry: WorkerRegistry) -> Server:
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=t.name,
                title=t.title or None,
                description=t.description,
                inputSchema=t.input_schema(),
            )
            for t in registry.tools()
        ]

    # The registry validates on its own so that bad input still yields the text envelope.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        outcome = await registry.execute(name, arguments or {})
        # Text only, even on success: some consumers never read structured content.
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=outcome.text)],
            isError=outcome.is_error,
        )

    return server


async def serve_stdio() -> None:
    log = get_logger("crawlagent.worker")
    base_url = os.getenv("CRAWLER_BASE_URL") or "http://127.0.0.1:8000"
    user_agent = os.getenv("CRAWLER_USER_AGENT") or "mcp-crawler"

    client = BaseServiceClient(base_url, user_agent=user_agent)
    registry = build_registry(client)
    server = build_server(registry)
    log.info("boot", base_url=base_url, user_agent=user_agent, tools=[t.name for t in registry.tools()])

    try:
        async with stdio_server() as (read, write):
            log.info("connected_stdio")
            await server.run(read, write, server.create_initialization_options())
    finally:
        await client.close()
