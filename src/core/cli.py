from __future__ import annotations

import argparse
import asyncio
import json

from observability.logging import configure_logging, get_logger

from .config import load_config
from .errors import CrawlAgentError


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Crawl agent: chat with site-analysis tools")
    p.add_argument("--config", default=None, help="YAML config path (defaults + env when omitted)")
    p.add_argument("--log-level", default="INFO", help="log level")
    p.add_argument("--text", default=None, help="one-shot chat message; prints the JSON outcome")
    p.add_argument("--plan", action="store_true", help="print the worker launch plan and exit")
    p.add_argument("--health", action="store_true", help="call crawler.health through the worker")
    p.add_argument("--serve", action="store_true", help="run the HTTP API with uvicorn")
    return p


def _print(obj: object) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


async def _health(cfg) -> int:
    from mcp_client.bridge import ProcessBridge

    bridge = ProcessBridge(cfg.worker)
    try:
        result = await bridge.invoke("crawler.health", {})
    finally:
        await bridge.aclose()
    _print({"ok": True, "result": result})
    return 0


async def _chat_once(cfg, text: str) -> int:
    from llm.client import LlmClient
    from mcp_client.bridge import ProcessBridge
    from orchestrator.chat import ChatOrchestrator

    bridge = ProcessBridge(cfg.worker)
    try:
        orch = ChatOrchestrator(llm=LlmClient(cfg.llm), chat_cfg=cfg.chat, invoke=bridge.invoke)
        outcome = await orch.run([{"role": "user", "content": text}])
    finally:
        await bridge.aclose()
    _print(outcome.to_body())
    return 0 if outcome.ok else 1


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    log = get_logger("crawlagent.cli", level=args.log_level)

    try:
        cfg = load_config(args.config)

        if args.plan:
            from mcp_client.resolver import describe_launch_plan

            _print(describe_launch_plan(cfg.worker))
            return 0

        if args.health:
            return asyncio.run(_health(cfg))

        if args.serve:
            import uvicorn

            from api.app import create_app

            uvicorn.run(create_app(cfg), host=cfg.service.host, port=cfg.service.port, log_level=args.log_level.lower())
            return 0

        if args.text:
            return asyncio.run(_chat_once(cfg, args.text))
    except CrawlAgentError as e:
        log.error("cli_failed", error=str(e), kind=type(e).__name__)
        _print({"ok": False, "error": str(e)})
        return 2

    _build_parser().print_help()
    return 0
