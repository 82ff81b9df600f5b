from __future__ import annotations

import pytest
import respx
from httpx import Response

from worker.base_client import BaseServiceClient, BaseServiceError


@pytest.mark.asyncio
async def test_post_json_returns_body() -> None:
    client = BaseServiceClient("http://base.test/", user_agent="ua-test")
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            respx_mock.post("http://base.test/api/audit").mock(
                return_value=Response(200, json={"ok": True, "results": []})
            )
            data = await client.post_json("/api/audit", {"urls": ["https://example.com/"]})
    finally:
        await client.close()

    assert data == {"ok": True, "results": []}
    assert client.url("/api/crawl") == "http://base.test/api/crawl"


@pytest.mark.asyncio
async def test_error_field_wins_over_status() -> None:
    client = BaseServiceClient("http://base.test", user_agent="ua-test")
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            respx_mock.post("http://base.test/api/crawl").mock(return_value=Response(422, json={"error": "bad depth"}))
            with pytest.raises(BaseServiceError) as ei:
                await client.post_json("/api/crawl", {})
    finally:
        await client.close()

    assert ei.value.message == "bad depth"
    assert ei.value.status_code == 422


@pytest.mark.asyncio
async def test_non_json_failure_reports_status_and_url() -> None:
    client = BaseServiceClient("http://base.test", user_agent="ua-test")
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            respx_mock.post("http://base.test/api/crawl").mock(return_value=Response(502, text="<html>bad gateway</html>"))
            with pytest.raises(BaseServiceError) as ei:
                await client.post_json("/api/crawl", {})
    finally:
        await client.close()

    assert str(ei.value) == "HTTP 502 http://base.test/api/crawl"


@pytest.mark.asyncio
async def test_close_is_idempotent() -> None:
    client = BaseServiceClient("http://base.test", user_agent="ua-test")
    await client.close()
    await client.close()
