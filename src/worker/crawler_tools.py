from __future__ import annotations

from typing import Any

from .base_client import BaseServiceClient
from .registry import ToolOutcome, ToolRejected, WorkerRegistry
from .schemas import AuditArgs, CrawlArgs

DEFAULT_DEPTH = 2
DEFAULT_MAX_PAGES = 500


def build_registry(client: BaseServiceClient) -> WorkerRegistry:
    """Register the crawl/audit tools plus two diagnostics."""

    registry = WorkerRegistry()

    async def echo_args(args: dict[str, Any]) -> dict[str, Any]:
        return {"args": args}

    async def health(_: dict[str, Any]) -> ToolOutcome:
        resp = await client.get("/api/crawl")
        if resp.is_success:
            return ToolOutcome(text=f"OK: service at {client.base_url} responds")
        return ToolOutcome(text=f"ERROR: {resp.status_code}", is_error=True)

    async def crawl_site(args: CrawlArgs) -> dict[str, Any]:
        payload = args.model_dump(exclude_none=True)
        payload["depth"] = args.depth if args.depth is not None else DEFAULT_DEPTH
        payload["maxPages"] = args.maxPages if args.maxPages is not None else DEFAULT_MAX_PAGES
        payload["userAgent"] = args.userAgent or client.user_agent

        resp = await client.post_json("/api/crawl", payload)
        if resp.get("output") is None:
            raise ToolRejected("base service returned no crawl output")
        out: dict[str, Any] = {"output": resp["output"]}
        if resp.get("snapshotFile") is not None:
            out = {"snapshotFile": resp["snapshotFile"], **out}
        return out

    async def audit_indexability(args: AuditArgs) -> dict[str, Any]:
        resp = await client.post_json(
            "/api/audit",
            {"urls": args.urls, "userAgent": args.userAgent or client.user_agent},
        )
        return {"results": resp.get("results", [])}

    registry.register(
        "echo.args",
        echo_args,
        title="Echo",
        description="Return the arguments exactly as the handler received them.",
    )
    registry.register(
        "crawler.health",
        health,
        title="Health",
        description="Ping the crawl endpoint of the base service.",
    )
    registry.register(
        "crawl.site",
        crawl_site,
        input_model=CrawlArgs,
        title="Crawler",
        description="Discover internal URLs while honouring robots.txt and sitemaps.",
    )
    registry.register(
        "audit.indexability",
        audit_indexability,
        input_model=AuditArgs,
        title="Indexability audit",
        description="Indexability: status, canonical, noindex, hreflang.",
    )
    return registry
