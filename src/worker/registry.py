from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from pydantic import BaseModel, ValidationError

from observability import get_logger, truncate
from tools.tool_result_codec import wrap_error, wrap_result

from .base_client import BaseServiceError


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """Text handed back over the channel; `is_error` maps to `isError`."""

    text: str
    is_error: bool = False


class ToolRejected(RuntimeError):
    """Structured tool rejection.

    Use this when a tool handler wants to fail with a specific message rather
    than raising an arbitrary exception.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


ToolHandler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    name: str
    handler: ToolHandler
    input_model: type[BaseModel] | None = None
    title: str = ""
    description: str = ""

    def input_schema(self) -> dict[str, Any]:
        if self.input_model is None:
            return {"type": "object", "properties": {}}
        return self.input_model.model_json_schema()


def _validation_message(e: ValidationError) -> str:
    parts: list[str] = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<args>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "invalid arguments: " + "; ".join(parts)


class WorkerRegistry:
    """Named tools that always answer with the text envelope.

    `execute` never raises: every failure below the handler boundary becomes
    an ``ERROR: <message>`` outcome.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}
        self._log = get_logger("crawlagent.worker")

    def register(
        self,
        name: str,
        handler: ToolHandler,
        *,
        input_model: type[BaseModel] | None = None,
        title: str = "",
        description: str = "",
    ) -> None:
        if name in self._tools:
            raise ValueError(f"tool already registered: {name!r}")
        self._tools[name] = RegisteredTool(
            name=name,
            handler=handler,
            input_model=input_model,
            title=title,
            description=description,
        )

    def tools(self) -> list[RegisteredTool]:
        return list(self._tools.values())

    def get(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    async def execute(self, name: str, args: dict[str, Any]) -> ToolOutcome:
        tool = self._tools.get(name)
        if tool is None:
            return ToolOutcome(text=wrap_error(f"unknown tool: {name}"), is_error=True)

        self._log.info("tool_enter", tool=name, tool_args=truncate(args))

        try:
            parsed: Any = tool.input_model.model_validate(args) if tool.input_model is not None else dict(args)
        except ValidationError as e:
            self._log.info("tool_invalid_args", tool=name, errors=e.error_count())
            return ToolOutcome(text=wrap_error(_validation_message(e)), is_error=True)

        try:
            out = await tool.handler(parsed)
        except asyncio.CancelledError:
            raise
        except ToolRejected as e:
            self._log.info("tool_rejected", tool=name, error=e.message)
            return ToolOutcome(text=wrap_error(e.message), is_error=True)
        except BaseServiceError as e:
            self._log.info("tool_api_error", tool=name, error=e.message, status=e.status_code)
            return ToolOutcome(text=wrap_error(e.message), is_error=True)
        except httpx.HTTPError as e:
            self._log.warning("tool_http_error", tool=name, error=str(e))
            return ToolOutcome(text=wrap_error(f"base service unreachable: {e}"), is_error=True)
        except Exception as e:  # noqa: BLE001
            self._log.exception("tool_error", tool=name)
            return ToolOutcome(text=wrap_error(str(e) or type(e).__name__), is_error=True)

        if isinstance(out, ToolOutcome):
            return out

        self._log.info("tool_ok", tool=name, out=truncate(out))
        return ToolOutcome(text=wrap_result(out))
