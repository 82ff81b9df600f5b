"""Deterministic answers built from the last structured tool payload.

Used when the reasoning service claims a failure even though a tool already
returned data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

# Both key spellings and both nesting depths have shipped; keep probing all of them.
PRECOMPUTED_ORPHAN_PATHS = (
    "output.report.sitemapOrphans",
    "output.report.orphansSitemap",
    "report.sitemapOrphans",
    "report.orphansSitemap",
)
INVENTORY_PATHS = ("output.inventory", "inventory")

# Depth the crawler assigns to URLs only reachable through the sitemap.
UNLINKED_DEPTH = 9999

REFUSAL_PHRASES: tuple[str, ...] = (
    "i couldn't",
    "i could not",
    "i can't",
    "i cannot",
    "i was unable",
    "i wasn't able",
    "was not successful",
    "wasn't successful",
    "unsuccessful",
    "there was an error",
    "an error occurred",
    "i'm sorry",
    "i am sorry",
    "i apologize",
    "i apologise",
    "unfortunately",
)


def looks_like_refusal(text: str, phrases: Iterable[str] = REFUSAL_PHRASES) -> bool:
    """True when `text` reads like an apology or a failure claim."""

    lowered = (text or "").lower()
    return any(p in lowered for p in phrases)


def pick(obj: Any, *paths: str) -> Any:
    """Return the value at the first dotted path that exists in `obj`."""

    for path in paths:
        cur = obj
        found = True
        for part in path.split("."):
            if isinstance(cur, Mapping) and part in cur:
                cur = cur[part]
            else:
                found = False
                break
        if found:
            return cur
    return None


def compute_sitemap_orphans(payload: Any) -> list[str]:
    """Sitemap URLs that no internal link points to, de-duplicated in first-seen order."""

    for path in PRECOMPUTED_ORPHAN_PATHS:
        direct = pick(payload, path)
        if isinstance(direct, list) and direct:
            return list(dict.fromkeys(str(u) for u in direct))

    inventory: list[Any] = []
    for path in INVENTORY_PATHS:
        found = pick(payload, path)
        if isinstance(found, list):
            inventory = found
            break

    orphans: list[str] = []
    for item in inventory:
        if not isinstance(item, Mapping):
            continue
        url = item.get("normalizedUrl") or item.get("url") or item.get("finalUrl")
        if url and (item.get("discoveredBy") == "sitemap" or item.get("depth") == UNLINKED_DEPTH):
            orphans.append(str(url))
    return list(dict.fromkeys(orphans))


def synthesize_orphan_reply(payload: Any, *, limit: int = 20) -> str:
    urls = compute_sitemap_orphans(payload)
    if not urls:
        return "I found no sitemap URLs without internal links in the crawl data."

    shown = urls[:limit]
    lines = ["These sitemap URLs do not appear to receive internal links (according to the crawl):"]
    lines.extend(f"• {u}" for u in shown)
    more = len(urls) - len(shown)
    if more > 0:
        lines.append(f"…and {more} more.")
    return "\n".join(lines)
