"""Inbound HTTP surface: chat, the crawl/audit base service, worker health."""

from __future__ import annotations

import importlib
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core.config import AppConfig
from core.errors import (
    BridgeError,
    ConfigError,
    ConfigurationError,
    ReasoningServiceError,
    WorkerConnectionError,
    WorkerNotFoundError,
)
from llm.client import LlmClient, ReasoningService
from mcp_client.bridge import ProcessBridge
from mcp_client.resolver import describe_launch_plan
from observability import get_logger
from observability.logging import KVLogger
from orchestrator.chat import ChatOrchestrator, ToolInvoker
from worker.schemas import AuditArgs, CrawlArgs

from .schemas import ChatRequest

Backend = Callable[[dict[str, Any]], Awaitable[Any]]


def load_backend(dotted: str, *, path: str) -> Backend:
    """Import ``package.module:function``."""

    module_name, _, attr = dotted.partition(":")
    if not module_name or not attr:
        raise ConfigError("must look like 'package.module:function'", path=path)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import {module_name!r}: {e}", path=path) from e
    fn = getattr(module, attr, None)
    if not callable(fn):
        raise ConfigError(f"{dotted!r} is not callable", path=path)
    return fn


def _error(status: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message, **extra}, status_code=status)


def _validation_text(errors: Any) -> str:
    parts: list[str] = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "<body>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "invalid request: " + "; ".join(parts)


def get_config(request: Request) -> AppConfig:
    return request.app.state.cfg


def get_invoke(request: Request) -> ToolInvoker:
    return request.app.state.invoke


def get_orchestrator(request: Request) -> ChatOrchestrator:
    state = request.app.state
    if state.orchestrator is None:
        # Lazy: the crawl/audit routes must work without an API key.
        llm = state.llm or LlmClient(state.cfg.llm)
        state.orchestrator = ChatOrchestrator(llm=llm, chat_cfg=state.cfg.chat, invoke=state.invoke)
    return state.orchestrator


router = APIRouter()


@router.post("/api/chat")
async def chat_route(body: ChatRequest, orch: ChatOrchestrator = Depends(get_orchestrator)):
    outcome = await orch.run([m.model_dump() for m in body.messages])
    return JSONResponse(outcome.to_body(), status_code=outcome.status)


@router.get("/api/crawl")
async def crawl_ready():
    return {"ok": True, "msg": "crawl endpoint ready"}


@router.post("/api/crawl")
async def crawl_route(request: Request):
    log = request.app.state.log
    backend: Backend | None = request.app.state.crawl_backend
    args = CrawlArgs.model_validate(await _json_body(request))
    if backend is None:
        return _error(501, "crawl backend is not configured (service.crawl_backend)")
    try:
        result = await backend(args.model_dump(exclude_none=True))
    except Exception as e:  # noqa: BLE001
        log.exception("crawl_backend_failed", error=str(e))
        return _error(500, str(e) or "crawl failed")
    if isinstance(result, Mapping) and "output" in result:
        return {"ok": True, **result}
    return {"ok": True, "output": result}


@router.post("/api/audit")
async def audit_route(request: Request):
    log = request.app.state.log
    backend: Backend | None = request.app.state.audit_backend
    args = AuditArgs.model_validate(await _json_body(request))
    if backend is None:
        return _error(501, "audit backend is not configured (service.audit_backend)")
    try:
        result = await backend(args.model_dump(exclude_none=True))
    except Exception as e:  # noqa: BLE001
        log.exception("audit_backend_failed", error=str(e))
        return _error(500, str(e) or "audit failed")
    if isinstance(result, Mapping) and "results" in result:
        return {"ok": True, **result}
    return {"ok": True, "results": result}


@router.get("/api/mcp/health")
async def mcp_health(
    request: Request, cfg: AppConfig = Depends(get_config), invoke: ToolInvoker = Depends(get_invoke)
):
    plan = describe_launch_plan(cfg.worker)
    try:
        result = await invoke("crawler.health", {})
    except (BridgeError, ConfigurationError) as e:
        request.app.state.log.error("mcp_health_failed", error=str(e))
        return JSONResponse({"ok": False, "plan": plan, "error": str(e)}, status_code=500)
    return {"ok": True, "plan": plan, "result": result}


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise RequestValidationError([{"loc": ("body",), "msg": f"invalid JSON: {e}", "type": "json_invalid"}]) from e


def _install_error_handlers(app: FastAPI, log: KVLogger) -> None:
    @app.exception_handler(RequestValidationError)
    async def _on_request_validation(_: Request, exc: RequestValidationError):
        return _error(400, _validation_text(exc.errors()))

    @app.exception_handler(ValidationError)
    async def _on_validation(_: Request, exc: ValidationError):
        return _error(400, _validation_text(exc.errors()))

    @app.exception_handler(ReasoningServiceError)
    async def _on_reasoning(_: Request, exc: ReasoningServiceError):
        log.error("reasoning_service_failed", error=str(exc))
        return _error(502, str(exc))

    @app.exception_handler(ConfigurationError)
    async def _on_configuration(_: Request, exc: ConfigurationError):
        log.error("configuration_error", error=str(exc))
        return _error(503 if isinstance(exc, WorkerNotFoundError) else 500, str(exc))

    @app.exception_handler(BridgeError)
    async def _on_bridge(_: Request, exc: BridgeError):
        log.error("bridge_error", error=str(exc))
        return _error(503 if isinstance(exc, WorkerConnectionError) else 500, str(exc))


def create_app(
    cfg: AppConfig,
    *,
    llm: ReasoningService | None = None,
    invoke: ToolInvoker | None = None,
    crawl_backend: Backend | None = None,
    audit_backend: Backend | None = None,
) -> FastAPI:
    log = get_logger("crawlagent.api")
    bridge: ProcessBridge | None = None
    if invoke is None:
        bridge = ProcessBridge(cfg.worker)
        invoke = bridge.invoke

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("api_start", host=cfg.service.host, port=cfg.service.port)
        try:
            yield
        finally:
            if bridge is not None:
                await bridge.aclose()

    app = FastAPI(title="Crawl Agent", lifespan=lifespan)
    app.state.cfg = cfg
    app.state.log = log
    app.state.llm = llm
    app.state.invoke = invoke
    app.state.orchestrator = None
    app.state.crawl_backend = crawl_backend or (
        load_backend(cfg.service.crawl_backend, path="service.crawl_backend") if cfg.service.crawl_backend else None
    )
    app.state.audit_backend = audit_backend or (
        load_backend(cfg.service.audit_backend, path="service.audit_backend") if cfg.service.audit_backend else None
    )

    _install_error_handlers(app, log)
    app.include_router(router)
    return app
