from __future__ import annotations

from orchestrator.arguments import complete_arguments, infer_url


def test_infer_url_takes_first_url() -> None:
    assert infer_url("crawl https://example.com/foo please") == "https://example.com/foo"
    assert infer_url("see (HTTP://Example.com/x) and https://b.test") == "HTTP://Example.com/x"
    assert infer_url("no link here") is None


def test_crawl_arguments_are_completed_from_user_text() -> None:
    args = complete_arguments("crawl_site", {}, latest_user_text="crawl https://example.com/foo please")
    assert args == {"startUrl": "https://example.com/foo", "depth": 2, "maxPages": 500}


def test_explicit_values_are_kept() -> None:
    original = {"startUrl": "https://given.test/", "depth": 0, "maxPages": 7}
    args = complete_arguments("crawl_site", original, latest_user_text="crawl https://other.test")
    assert args == original
    assert args is not original


def test_non_numeric_limits_are_replaced() -> None:
    args = complete_arguments(
        "crawl_site",
        {"startUrl": "https://given.test/", "depth": "3", "maxPages": True},
        latest_user_text="",
        default_depth=1,
        default_max_pages=50,
    )
    assert args["depth"] == 1
    assert args["maxPages"] == 50


def test_missing_url_without_hint_stays_missing() -> None:
    args = complete_arguments("crawl_site", {}, latest_user_text="crawl my site")
    assert "startUrl" not in args


def test_other_tools_pass_through() -> None:
    original = {"urls": ["https://example.com/"]}
    args = complete_arguments("audit_indexability", original, latest_user_text="https://example.com/x")
    assert args == original
