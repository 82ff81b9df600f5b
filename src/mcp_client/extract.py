from __future__ import annotations

from typing import Any

from core.errors import ProtocolError, ToolExecutionError
from tools.tool_result_codec import parse_text_payload, strip_error_prefix


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _first_text(content: list[Any]) -> str | None:
    for block in content:
        if _field(block, "type") == "text":
            text = _field(block, "text")
            if isinstance(text, str) and text:
                return text
    return None


def extract_tool_payload(result: Any) -> Any:
    """Reduce an MCP CallToolResult to a structured value.

    - `isError`: raise ToolExecutionError with the first text block, minus the
      ``ERROR:`` sentinel.
    - a non-empty `structuredContent` dict wins as-is, then a dict-shaped
      `type == "json"` block.
    - a text block goes through the envelope parser chain; non-JSON text comes
      back as ``{"text": raw}``.
    - no usable block at all raises ProtocolError.
    """

    content = _field(result, "content") or []
    if not isinstance(content, list):
        content = list(content)

    if _field(result, "isError"):
        text = _first_text(content)
        message = strip_error_prefix(text) if text else ""
        raise ToolExecutionError(message or "tool returned isError=true")

    structured = _field(result, "structuredContent")
    if isinstance(structured, dict) and structured:
        return structured

    for block in content:
        kind = _field(block, "type")
        if kind == "json":
            return _field(block, "json")
        if kind == "text":
            return parse_text_payload(str(_field(block, "text") or ""))

    raise ProtocolError("tool returned no usable content")
