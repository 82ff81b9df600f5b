"""OpenAI-compatible reasoning-service client.

One non-streaming chat completion per round. The response is reduced to the
only contract the orchestrator needs: text blocks and tool-call blocks.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from core.config import LlmConfig
from core.errors import ConfigError, ReasoningServiceError
from core.types import Completion, ToolCall
from observability import get_logger

# Local bookkeeping keys that must never reach the wire.
_LOCAL_KEYS = {"is_error"}


class ReasoningService(Protocol):
    def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        tool_choice: str,
    ) -> Completion:
        ...


def to_wire_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = [{"role": "system", "content": system}] if system else []
    for m in messages:
        out.append({k: v for k, v in m.items() if k not in _LOCAL_KEYS})
    return out


def _parse_arguments(raw: str | None, *, log: Any, call_id: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        log.warning("tool_call_args_invalid", tool_call_id=call_id, raw_len=len(raw))
        return {}
    if not isinstance(parsed, dict):
        log.warning("tool_call_args_not_object", tool_call_id=call_id)
        return {}
    return parsed


class LlmClient:
    """Chat-completions adapter (minimal interface)."""

    def __init__(self, cfg: LlmConfig, *, client: Any = None) -> None:
        if client is None and not cfg.api_key:
            raise ConfigError("must be set (or export OPENAI_API_KEY)", path="llm.api_key")
        self._cfg = cfg
        self._client = client or OpenAI(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout=cfg.timeout_s,
            max_retries=cfg.max_retries,
        )
        self._log = get_logger("crawlagent.llm")

    def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        tool_choice: str,
    ) -> Completion:
        kwargs: dict[str, Any] = {
            "model": self._cfg.model,
            "max_tokens": self._cfg.max_tokens,
            "messages": to_wire_messages(system, messages),
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = tool_choice

        try:
            resp = self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise ReasoningServiceError(f"reasoning service call failed: {e}") from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise ReasoningServiceError("reasoning service returned no choices")
        msg = choices[0].message

        text = getattr(msg, "content", None)
        text_blocks = [text] if isinstance(text, str) and text else []

        tool_calls: list[ToolCall] = []
        wire_calls: list[dict[str, Any]] = []
        for tc in getattr(msg, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            name = getattr(fn, "name", None)
            if not isinstance(name, str) or not name:
                continue
            raw_args = getattr(fn, "arguments", None) or "{}"
            tool_calls.append(
                ToolCall(
                    id=str(tc.id),
                    name=name,
                    arguments=_parse_arguments(raw_args, log=self._log, call_id=str(tc.id)),
                    arguments_json=raw_args,
                )
            )
            wire_calls.append(
                {"id": str(tc.id), "type": "function", "function": {"name": name, "arguments": raw_args}}
            )

        assistant: dict[str, Any] = {"role": "assistant", "content": text if text_blocks else None}
        if wire_calls:
            assistant["tool_calls"] = wire_calls

        self._log.info(
            "llm_complete",
            finish_reason=getattr(choices[0], "finish_reason", None),
            text_len=len(text or ""),
            tool_calls=[c.name for c in tool_calls],
        )
        return Completion(text_blocks=text_blocks, tool_calls=tool_calls, message=assistant)
