from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A capability descriptor published to the reasoning service."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Abstract tool call (stable structure across implementations)."""

    id: str
    name: str
    arguments: dict[str, Any]
    arguments_json: str = "{}"


@dataclass(frozen=True, slots=True)
class Completion:
    """One reasoning-service response, reduced to text and tool-call blocks."""

    text_blocks: list[str]
    tool_calls: list[ToolCall]
    message: dict[str, Any]

    @property
    def text(self) -> str:
        return "".join(self.text_blocks).strip()


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool_call_id: str
    name: str
    ok: bool
    content: str
    payload: Any = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class CallSummary:
    name: str
    args: dict[str, Any]
    ok: bool

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "args": self.args, "ok": self.ok}


@dataclass(slots=True)
class ChatOutcome:
    ok: bool
    reply: str = ""
    error: str | None = None
    tool_calls: list[CallSummary] = field(default_factory=list)
    fallback: bool = False
    status: int = 200

    def to_body(self) -> dict[str, Any]:
        calls = [c.to_dict() for c in self.tool_calls]
        if not self.ok:
            return {"ok": False, "error": self.error or "request failed", "toolCalls": calls}
        body: dict[str, Any] = {"ok": True, "reply": self.reply, "toolCalls": calls}
        if self.fallback:
            body["fallback"] = True
        return body
