from __future__ import annotations

from .client import LlmClient, ReasoningService, to_wire_messages

__all__ = ["LlmClient", "ReasoningService", "to_wire_messages"]
