from __future__ import annotations

import pytest

from orchestrator.fallback import (
    compute_sitemap_orphans,
    looks_like_refusal,
    pick,
    synthesize_orphan_reply,
)


def _inventory() -> list[dict]:
    return [
        {"url": "https://example.com/", "depth": 0, "discoveredBy": "link"},
        {"normalizedUrl": "https://example.com/a", "discoveredBy": "sitemap"},
        {"url": "https://example.com/b", "depth": 9999},
        {"finalUrl": "https://example.com/c", "discoveredBy": "sitemap"},
        {"url": "https://example.com/a", "discoveredBy": "sitemap"},
        {"discoveredBy": "sitemap"},
        "not-a-record",
    ]


def test_orphans_from_inventory_are_deduplicated_in_order() -> None:
    payload = {"output": {"inventory": _inventory()}}
    assert compute_sitemap_orphans(payload) == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]


def test_orphans_are_order_independent_as_a_set() -> None:
    forward = compute_sitemap_orphans({"inventory": _inventory()})
    backward = compute_sitemap_orphans({"inventory": list(reversed(_inventory()))})
    assert set(forward) == set(backward)
    assert len(backward) == len(set(backward))


@pytest.mark.parametrize(
    "payload",
    [
        {"output": {"report": {"sitemapOrphans": ["https://x/1", "https://x/1", "https://x/2"]}}},
        {"output": {"report": {"orphansSitemap": ["https://x/1", "https://x/2"]}}},
        {"report": {"sitemapOrphans": ["https://x/1", "https://x/2"]}},
        {"report": {"orphansSitemap": ["https://x/1", "https://x/2"]}},
    ],
)
def test_precomputed_report_wins(payload: dict) -> None:
    payload.setdefault("inventory", [{"url": "https://x/ignored", "discoveredBy": "sitemap"}])
    assert compute_sitemap_orphans(payload) == ["https://x/1", "https://x/2"]


def test_empty_precomputed_list_falls_through_to_inventory() -> None:
    payload = {
        "output": {
            "report": {"sitemapOrphans": []},
            "inventory": [{"url": "https://x/from-inventory", "discoveredBy": "sitemap"}],
        }
    }
    assert compute_sitemap_orphans(payload) == ["https://x/from-inventory"]


@pytest.mark.parametrize("nested", [None, "pending", {"items": []}])
def test_non_list_nested_inventory_falls_through_to_top_level(nested) -> None:
    payload = {
        "output": {"inventory": nested},
        "inventory": [{"url": "https://x/top-level", "discoveredBy": "sitemap"}],
    }
    assert compute_sitemap_orphans(payload) == ["https://x/top-level"]


def test_unusable_payloads_yield_nothing() -> None:
    assert compute_sitemap_orphans(None) == []
    assert compute_sitemap_orphans({"text": "OK"}) == []
    assert compute_sitemap_orphans({"inventory": "nope"}) == []


def test_pick_takes_first_existing_path() -> None:
    obj = {"a": {"b": None}, "c": {"d": 1}}
    assert pick(obj, "x.y", "c.d") == 1
    assert pick(obj, "a.b", "c.d") is None
    assert pick(obj, "missing") is None


def test_reply_lists_at_most_limit_urls() -> None:
    inventory = [{"url": f"https://example.com/p{i}", "discoveredBy": "sitemap"} for i in range(25)]
    reply = synthesize_orphan_reply({"inventory": inventory}, limit=20)

    lines = reply.splitlines()
    assert lines[0].startswith("These sitemap URLs")
    assert sum(1 for line in lines if line.startswith("• ")) == 20
    assert lines[-1] == "…and 5 more."


def test_reply_without_orphans() -> None:
    reply = synthesize_orphan_reply({"inventory": [{"url": "https://example.com/", "depth": 0}]})
    assert reply == "I found no sitemap URLs without internal links in the crawl data."


@pytest.mark.parametrize(
    "text",
    [
        "I'm sorry, the crawl was not successful.",
        "Unfortunately I couldn't reach the site.",
        "I CANNOT complete this request.",
        "There was an error while crawling.",
    ],
)
def test_refusals_are_detected(text: str) -> None:
    assert looks_like_refusal(text) is True


def test_normal_answers_are_not_refusals() -> None:
    assert looks_like_refusal("Found 3 sitemap URLs without internal links.") is False
    assert looks_like_refusal("") is False
    assert looks_like_refusal("no se pudo", phrases=("no se pudo",)) is True
