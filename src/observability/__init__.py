from __future__ import annotations

from .context import add_error, bind_context, set_round, set_state
from .logging import configure_logging, get_logger, truncate

__all__ = [
    "add_error",
    "bind_context",
    "configure_logging",
    "get_logger",
    "set_round",
    "set_state",
    "truncate",
]
