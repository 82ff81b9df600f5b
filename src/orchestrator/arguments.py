from __future__ import annotations

import re
from typing import Any

_URL_RE = re.compile(r"https?://[^\s)]+", re.IGNORECASE)

CRAWL_TOOL = "crawl_site"


def infer_url(text: str) -> str | None:
    match = _URL_RE.search(text or "")
    return match.group(0) if match else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def complete_arguments(
    tool_name: str,
    arguments: dict[str, Any],
    *,
    latest_user_text: str,
    default_depth: int = 2,
    default_max_pages: int = 500,
) -> dict[str, Any]:
    """Fill the crawl arguments the model tends to omit. Other tools pass through.

    Returns a new dict; `arguments` is left untouched.
    """

    args = dict(arguments)
    if tool_name != CRAWL_TOOL:
        return args

    start = args.get("startUrl")
    if not isinstance(start, str) or not start:
        inferred = infer_url(latest_user_text)
        if inferred:
            args["startUrl"] = inferred
    if not _is_number(args.get("depth")):
        args["depth"] = default_depth
    if not _is_number(args.get("maxPages")):
        args["maxPages"] = default_max_pages
    return args
