"""Client side of the worker channel: launch-plan resolution and the process bridge.

This package intentionally avoids the top-level name `mcp` to prevent shadowing
the upstream MCP Python SDK module (`import mcp`).
"""

from __future__ import annotations

from .bridge import ConnState, ProcessBridge, call_worker_tool, get_bridge, stdio_session
from .extract import extract_tool_payload
from .resolver import describe_launch_plan, find_worker_dir, resolve_launch_plan, resolve_python_executable, to_native_path
from .types import LaunchPlan

__all__ = [
    "ConnState",
    "LaunchPlan",
    "ProcessBridge",
    "call_worker_tool",
    "describe_launch_plan",
    "extract_tool_payload",
    "find_worker_dir",
    "get_bridge",
    "resolve_launch_plan",
    "resolve_python_executable",
    "stdio_session",
    "to_native_path",
]
