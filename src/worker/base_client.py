from __future__ import annotations

from typing import Any

import httpx

from observability import get_logger, truncate

DEFAULT_TIMEOUT_S = 600.0


class BaseServiceError(RuntimeError):
    """Non-2xx response or an `ok: false` body from the base service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BaseServiceClient:
    """Plain request/response calls to the service that hosts crawl/audit."""

    def __init__(
        self,
        base_url: str,
        *,
        user_agent: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self._log = get_logger("crawlagent.worker.http")
        self.client = httpx.AsyncClient(timeout=timeout_s, transport=transport)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = self.url(path)
        self._log.info("http_post", url=url, body=truncate(body))
        resp = await self.client.post(
            url,
            json=body,
            headers={"content-type": "application/json", "user-agent": self.user_agent},
        )

        data: Any
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {"raw": resp.text}
        self._log.info(
            "http_resp",
            url=url,
            status=resp.status_code,
            ok=resp.is_success,
            data=truncate(data),
        )

        failed_body = isinstance(data, dict) and data.get("ok") is False
        if not resp.is_success or failed_body:
            error = data.get("error") if isinstance(data, dict) else None
            msg = str(error) if error else f"HTTP {resp.status_code} {url}"
            raise BaseServiceError(msg, status_code=resp.status_code)

        if not isinstance(data, dict):
            return {"value": data}
        return data

    async def get(self, path: str) -> httpx.Response:
        return await self.client.get(self.url(path), headers={"user-agent": self.user_agent})

    async def close(self) -> None:
        # Safe to call multiple times
        if not self.client.is_closed:
            await self.client.aclose()
