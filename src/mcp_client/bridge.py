"""Process bridge: one lazily started, memoized stdio MCP session to the worker.

Connection state is an explicit variant::

    UNSTARTED -> PENDING(shared future) -> READY(session)
                                      \\-> FAILED(cached error)

The first caller creates the shared future and a runner task that owns the
subprocess and the `ClientSession` for the whole process lifetime. Every other
caller awaits the same future, so at most one worker is ever spawned. The
UNSTARTED -> PENDING transition is a plain assignment on the event loop, which
is single-threaded, so no lock is involved.

A failed launch is never retried: every later call re-raises the cached error
until the process restarts.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Callable, Protocol

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError

from core.config import WorkerConfig, load_config
from core.errors import BridgeError, ConfigurationError, ToolExecutionError, WorkerConnectionError
from observability import get_logger, truncate

from .extract import extract_tool_payload
from .resolver import resolve_launch_plan
from .types import LaunchPlan


class WorkerSession(Protocol):
    """The slice of `mcp.ClientSession` the bridge relies on."""

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        ...

    async def list_tools(self) -> Any:
        ...


SessionFactory = Callable[[LaunchPlan], AbstractAsyncContextManager[WorkerSession]]
PlanResolver = Callable[[WorkerConfig], LaunchPlan]


class ConnState(str, Enum):
    UNSTARTED = "unstarted"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


def worker_environment(plan: LaunchPlan) -> dict[str, str]:
    env = dict(os.environ)
    env["CRAWLER_BASE_URL"] = plan.base_service_url
    env["CRAWLER_USER_AGENT"] = plan.user_agent
    return env


@asynccontextmanager
async def stdio_session(plan: LaunchPlan) -> AsyncIterator[ClientSession]:
    """Spawn the worker and yield an initialized MCP session over its stdio."""

    params = StdioServerParameters(
        command=plan.executable_path,
        args=[plan.entry_point_relative_path],
        env=worker_environment(plan),
        cwd=plan.working_directory,
    )
    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()
            yield session


def _dump(result: Any) -> Any:
    dump = getattr(result, "model_dump", None)
    if callable(dump):
        try:
            return dump(mode="json", exclude_none=True)
        except Exception:  # noqa: BLE001
            return repr(result)
    return result


def _block_types(result: Any) -> list[str]:
    content = getattr(result, "content", None)
    if content is None and isinstance(result, dict):
        content = result.get("content")
    out: list[str] = []
    for block in content or []:
        kind = block.get("type") if isinstance(block, dict) else getattr(block, "type", None)
        out.append(str(kind))
    return out


class ProcessBridge:
    """Invoke named worker tools and get structured results back."""

    def __init__(
        self,
        cfg: WorkerConfig,
        *,
        session_factory: SessionFactory = stdio_session,
        plan_resolver: PlanResolver = resolve_launch_plan,
    ) -> None:
        self._cfg = cfg
        self._session_factory = session_factory
        self._plan_resolver = plan_resolver
        self._log = get_logger("crawlagent.bridge")

        self._state = ConnState.UNSTARTED
        self._ready: asyncio.Future[WorkerSession] | None = None
        self._runner: asyncio.Task[None] | None = None
        self._stop: asyncio.Event | None = None
        self._connect_attempts = 0

    @property
    def state(self) -> ConnState:
        return self._state

    @property
    def connect_attempts(self) -> int:
        return self._connect_attempts

    async def invoke(self, name: str, args: dict[str, Any]) -> Any:
        if not isinstance(name, str) or not name:
            raise ValueError("tool name must be a non-empty string")
        if not isinstance(args, dict):
            raise ValueError("tool args must be a dict")

        session = await self._connect()

        self._log.info("call_tool_send", tool=name, tool_args=truncate(args))
        try:
            result = await session.call_tool(name, arguments=dict(args))
        except McpError as e:
            raise ToolExecutionError(str(e)) from e
        except BridgeError:
            raise
        except Exception as e:  # noqa: BLE001
            raise WorkerConnectionError(f"worker call {name!r} failed: {e}") from e

        self._log.info(
            "call_tool_recv",
            tool=name,
            block_types=_block_types(result),
            raw=truncate(_dump(result)),
        )
        return extract_tool_payload(result)

    async def aclose(self) -> None:
        """Stop the worker session (CLI shutdown only; the service never calls it)."""

        if self._stop is not None:
            self._stop.set()
        if self._runner is not None:
            await asyncio.gather(self._runner, return_exceptions=True)
        self._ready = None
        self._runner = None
        self._stop = None
        self._state = ConnState.UNSTARTED

    async def _connect(self) -> WorkerSession:
        if self._ready is None:
            loop = asyncio.get_running_loop()
            self._ready = loop.create_future()
            self._stop = asyncio.Event()
            self._state = ConnState.PENDING
            self._runner = loop.create_task(self._run(self._ready, self._stop), name="worker-session")
        # shield: a cancelled caller must not cancel the shared attempt.
        return await asyncio.shield(self._ready)

    async def _run(self, ready: asyncio.Future[WorkerSession], stop: asyncio.Event) -> None:
        self._connect_attempts += 1
        try:
            plan = self._plan_resolver(self._cfg)
            self._log.info("launch_plan", **plan.to_dict())

            if not plan.entry_point.is_file():
                raise WorkerConnectionError(f"worker entry point does not exist: {plan.entry_point}")

            async with self._session_factory(plan) as session:
                await self._log_tools(session)
                self._state = ConnState.READY
                ready.set_result(session)
                await stop.wait()
        except asyncio.CancelledError:
            self._fail(ready, WorkerConnectionError("worker session cancelled"))
            raise
        except (BridgeError, ConfigurationError) as e:
            self._log.error("worker_launch_failed", error=str(e))
            self._fail(ready, e)
        except Exception as e:  # noqa: BLE001
            self._log.exception("worker_session_error", error=str(e))
            self._fail(ready, WorkerConnectionError(f"failed to start worker: {e}"))

    def _fail(self, ready: asyncio.Future[WorkerSession], error: Exception) -> None:
        self._state = ConnState.FAILED
        if not ready.done():
            ready.set_exception(error)

    async def _log_tools(self, session: WorkerSession) -> None:
        try:
            listing = await session.list_tools()
        except Exception as e:  # noqa: BLE001
            self._log.warning("list_tools_failed", error=str(e))
            return
        names = [getattr(t, "name", None) for t in (getattr(listing, "tools", None) or [])]
        self._log.info("worker_tools", tools=names)


_bridge: ProcessBridge | None = None


def get_bridge(cfg: WorkerConfig | None = None) -> ProcessBridge:
    """Process-wide bridge, created on first use."""

    global _bridge
    if _bridge is None:
        _bridge = ProcessBridge(cfg if cfg is not None else load_config().worker)
    return _bridge


async def call_worker_tool(name: str, args: dict[str, Any]) -> Any:
    return await get_bridge().invoke(name, args)
