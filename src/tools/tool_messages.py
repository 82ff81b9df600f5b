from __future__ import annotations

from typing import Any

from core.types import ToolResult

GUIDANCE_TEXT = "\n".join(
    [
        "Use the RESULT_JSON above to answer EXACTLY what the user asked.",
        "If the user asked for sitemap URLs without internal links, compute and list those URLs from the JSON.",
        "Do not apologise or say the call was unsuccessful when a RESULT_JSON is present.",
    ]
)


def tool_message_from_result(r: ToolResult) -> dict[str, Any]:
    """Build an OpenAI-compatible tool message from a ToolResult.

    `is_error` is local bookkeeping; the LLM client strips it before sending.
    """

    msg: dict[str, Any] = {
        "role": "tool",
        "tool_call_id": r.tool_call_id,
        "content": r.content,
    }
    if not r.ok:
        msg["is_error"] = True
    return msg


def guidance_message() -> dict[str, Any]:
    return {"role": "user", "content": GUIDANCE_TEXT}
