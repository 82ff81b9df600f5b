"""Text envelope that carries tool results inside text content blocks.

Contract (shared by the worker, the bridge and the orchestrator):

- success::

    RESULT_JSON:
    ```json
    { ...pretty-printed payload... }
    ```

- failure: a single ``ERROR: <message>`` line.

Consumers that only understand text must keep working, so the envelope is
never relaxed without bumping ``ENVELOPE_VERSION``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

ENVELOPE_VERSION = 1
RESULT_MARKER = "RESULT_JSON:"
ERROR_PREFIX = "ERROR: "

_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)

_MISSING = object()


def wrap_result(payload: Any) -> str:
    body = json.dumps(payload, ensure_ascii=False, indent=2)
    return f"{RESULT_MARKER}\n```json\n{body}\n```"


def wrap_error(message: str) -> str:
    return f"{ERROR_PREFIX}{message}"


def strip_error_prefix(text: str) -> str:
    """Return the message behind an ``ERROR:`` sentinel (or the text unchanged)."""

    stripped = text.strip()
    if stripped.upper().startswith(ERROR_PREFIX.strip()):
        return stripped[len(ERROR_PREFIX.strip()) :].strip()
    return stripped


def _from_fence(text: str) -> Any:
    match = _FENCE_RE.search(text)
    if match is None:
        return _MISSING
    try:
        return json.loads(match.group(1))
    except ValueError:
        return _MISSING


def _from_raw(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return _MISSING


_PARSERS: tuple[Callable[[str], Any], ...] = (_from_fence, _from_raw)


def parse_text_payload(text: str) -> Any:
    """Best-effort structured payload from a text block.

    Ordered chain: fenced ``json`` block, then the raw text as JSON, then an
    opaque ``{"text": raw}`` wrapper. Never raises.
    """

    if text:
        for parser in _PARSERS:
            value = parser(text)
            if value is not _MISSING:
                return value
    return {"text": text}
