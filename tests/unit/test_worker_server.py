from __future__ import annotations

from pathlib import Path

import pytest
from mcp.shared.memory import create_connected_server_and_client_session

from core.config import WorkerConfig
from core.errors import ToolExecutionError
from mcp_client.bridge import ProcessBridge
from mcp_client.types import LaunchPlan
from tools.tool_result_codec import parse_text_payload
from worker.base_client import BaseServiceClient
from worker.crawler_tools import build_registry
from worker.server import build_server


def _server():
    return build_server(build_registry(BaseServiceClient("http://base.test", user_agent="ua-test")))


@pytest.mark.asyncio
async def test_list_tools_publishes_registry() -> None:
    async with create_connected_server_and_client_session(_server()) as session:
        listing = await session.list_tools()

    by_name = {t.name: t for t in listing.tools}
    assert set(by_name) == {"echo.args", "crawler.health", "crawl.site", "audit.indexability"}
    assert by_name["crawl.site"].title == "Crawler"
    assert by_name["crawl.site"].inputSchema["required"] == ["startUrl"]
    assert by_name["audit.indexability"].inputSchema["properties"]["urls"]["maxItems"] == 200


@pytest.mark.asyncio
async def test_call_tool_answers_with_a_single_text_block() -> None:
    async with create_connected_server_and_client_session(_server()) as session:
        ok = await session.call_tool("echo.args", {"x": 1})
        bad = await session.call_tool("crawl.site", {"startUrl": "ftp://example.com"})

    assert ok.isError is False
    assert [b.type for b in ok.content] == ["text"]
    assert parse_text_payload(ok.content[0].text) == {"args": {"x": 1}}

    assert bad.isError is True
    assert bad.content[0].text.startswith("ERROR: invalid arguments: startUrl")


@pytest.mark.asyncio
async def test_bridge_round_trip_against_worker(tmp_path: Path) -> None:
    (tmp_path / "main.py").write_text("", encoding="utf-8")

    def resolve(cfg: WorkerConfig) -> LaunchPlan:
        return LaunchPlan(
            working_directory=str(tmp_path),
            executable_path="python3",
            base_service_url=cfg.base_url,
            entry_point_relative_path="main.py",
        )

    bridge = ProcessBridge(
        WorkerConfig(),
        session_factory=lambda plan: create_connected_server_and_client_session(_server()),
        plan_resolver=resolve,
    )
    try:
        echoed = await bridge.invoke("echo.args", {"nested": {"k": [1, "two"]}})
        with pytest.raises(ToolExecutionError) as ei:
            await bridge.invoke("no.such.tool", {})
    finally:
        await bridge.aclose()

    assert echoed == {"args": {"nested": {"k": [1, "two"]}}}
    assert str(ei.value) == "unknown tool: no.such.tool"


def test_installed_mcp_has_the_1x_server_and_error_api() -> None:
    from importlib.metadata import version

    from mcp.server.lowlevel import Server
    from mcp.shared import exceptions

    assert int(version("mcp").split(".")[0]) == 1
    assert hasattr(exceptions, "McpError")
    assert callable(getattr(Server, "call_tool", None))
