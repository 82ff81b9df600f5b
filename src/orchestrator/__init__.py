"""Conversation orchestration (bounded tool-use loop)."""

from __future__ import annotations

from .arguments import complete_arguments, infer_url
from .chat import STEP_LIMIT_REPLY, ChatOrchestrator
from .fallback import compute_sitemap_orphans, looks_like_refusal, synthesize_orphan_reply

__all__ = [
    "ChatOrchestrator",
    "STEP_LIMIT_REPLY",
    "complete_arguments",
    "compute_sitemap_orphans",
    "infer_url",
    "looks_like_refusal",
    "synthesize_orphan_reply",
]
