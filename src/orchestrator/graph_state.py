from __future__ import annotations

import operator
from typing import Any, Annotated
from typing_extensions import TypedDict

from core.types import CallSummary, ChatOutcome, ToolCall


class ChatState(TypedDict, total=False):
    # Input
    system: str
    latest_user_text: str

    # Conversation (append-only; nodes return the extended list)
    history: list[dict[str, Any]]

    # Loop bookkeeping
    round: int
    tool_round_done: bool
    pending_tool_calls: list[ToolCall]

    # Accumulated tool artifacts
    tool_calls: Annotated[list[CallSummary], operator.add]
    last_payload: Any
    has_payload: bool

    # Final output
    outcome: ChatOutcome
