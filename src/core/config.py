from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

# re-export for contract/tests
__all__ = [
    "AppConfig",
    "ChatConfig",
    "ConfigError",
    "LlmConfig",
    "ServiceConfig",
    "WorkerConfig",
    "load_config",
]


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

DEFAULT_SYSTEM_PROMPT = "\n".join(
    [
        "You are a technical SEO assistant.",
        "If the user asks about crawling, sitemaps, indexability, canonicals, noindex or hreflang:",
        "1) Use 'crawl_site' or 'audit_indexability'.",
        "2) If you receive a RESULT_JSON block, ASSUME the tool call succeeded and answer with clear conclusions.",
        "3) Do not apologise and do not retry tools unless the tool_result starts with 'ERROR:'.",
    ]
)


def _expand_env_in_str(value: str, *, path: str) -> str:
    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in os.environ or os.environ[key] == "":
            raise ConfigError(f"environment variable {key!r} is not set", path=path)
        return os.environ[key]

    return _ENV_PATTERN.sub(repl, value)


def _expand_env(obj: Any, *, path: str) -> Any:
    if isinstance(obj, str):
        return _expand_env_in_str(obj, path=path)
    if isinstance(obj, list):
        return [_expand_env(v, path=path) for v in obj]
    if isinstance(obj, dict):
        return {k: _expand_env(v, path=f"{path}.{k}" if path else str(k)) for k, v in obj.items()}
    return obj


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("must be a mapping", path=key)
    return value


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _env(name: str) -> str | None:
    return _opt_str(os.getenv(name))


@dataclass(frozen=True)
class LlmConfig:
    api_key: str | None = None
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    timeout_s: float = 60.0
    max_retries: int = 2
    max_tokens: int = 2000


@dataclass(frozen=True)
class WorkerConfig:
    """Where the worker lives and how it reaches the base service.

    Unset fields fall back to MCP_CRAWLER_DIR / MCP_PYTHON_PATH /
    CRAWLER_BASE_URL / CRAWLER_USER_AGENT at load time.
    """

    dir: str | None = None
    python_path: str | None = None
    base_url: str = "http://127.0.0.1:8000"
    user_agent: str = "mcp-crawler"


@dataclass(frozen=True)
class ChatConfig:
    max_rounds: int = 3
    default_depth: int = 2
    default_max_pages: int = 500
    fallback_limit: int = 20
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


@dataclass(frozen=True)
class ServiceConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    # "package.module:function" dotted paths to the opaque crawl/audit implementations.
    crawl_backend: str | None = None
    audit_backend: str | None = None


@dataclass(frozen=True)
class AppConfig:
    llm: LlmConfig = field(default_factory=LlmConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


def _positive_int(value: Any, *, path: str) -> int:
    try:
        out = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("must be an integer", path=path) from e
    if out < 1:
        raise ConfigError("must be >= 1", path=path)
    return out


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load YAML config and expand ${ENV_VAR}.

    With `path=None` only defaults and environment variables are used.
    """

    # Local dev: allow injecting secrets from .env (do not commit it).
    load_dotenv(override=False)

    raw: Any = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError("config file does not exist", path=str(config_path))

        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except Exception as e:  # noqa: BLE001
            raise ConfigError(f"YAML parse failed: {e}", path=str(config_path)) from e

        if not isinstance(raw, dict):
            raise ConfigError("top level must be a YAML mapping", path=str(config_path))

    expanded = _expand_env(raw, path="")

    llm_raw = _section(expanded, "llm")
    llm = LlmConfig(
        api_key=_opt_str(llm_raw.get("api_key")) or _env("OPENAI_API_KEY"),
        base_url=_opt_str(llm_raw.get("base_url")) or _env("OPENAI_BASE_URL"),
        model=str(llm_raw.get("model") or _env("LLM_MODEL") or LlmConfig.model),
        timeout_s=float(llm_raw.get("timeout_s", LlmConfig.timeout_s)),
        max_retries=int(llm_raw.get("max_retries", LlmConfig.max_retries)),
        max_tokens=_positive_int(llm_raw.get("max_tokens", LlmConfig.max_tokens), path="llm.max_tokens"),
    )

    worker_raw = _section(expanded, "worker")
    worker = WorkerConfig(
        dir=_opt_str(worker_raw.get("dir")) or _env("MCP_CRAWLER_DIR"),
        python_path=_opt_str(worker_raw.get("python_path")) or _env("MCP_PYTHON_PATH"),
        base_url=str(_opt_str(worker_raw.get("base_url")) or _env("CRAWLER_BASE_URL") or WorkerConfig.base_url),
        user_agent=str(
            _opt_str(worker_raw.get("user_agent")) or _env("CRAWLER_USER_AGENT") or WorkerConfig.user_agent
        ),
    )

    chat_raw = _section(expanded, "chat")
    chat = ChatConfig(
        max_rounds=_positive_int(chat_raw.get("max_rounds", ChatConfig.max_rounds), path="chat.max_rounds"),
        default_depth=int(chat_raw.get("default_depth", ChatConfig.default_depth)),
        default_max_pages=_positive_int(
            chat_raw.get("default_max_pages", ChatConfig.default_max_pages), path="chat.default_max_pages"
        ),
        fallback_limit=_positive_int(
            chat_raw.get("fallback_limit", ChatConfig.fallback_limit), path="chat.fallback_limit"
        ),
        system_prompt=str(chat_raw.get("system_prompt") or DEFAULT_SYSTEM_PROMPT),
    )
    if not 0 <= chat.default_depth <= 6:
        raise ConfigError("must be between 0 and 6", path="chat.default_depth")

    service_raw = _section(expanded, "service")
    service = ServiceConfig(
        host=str(service_raw.get("host", ServiceConfig.host)),
        port=_positive_int(service_raw.get("port", ServiceConfig.port), path="service.port"),
        crawl_backend=_opt_str(service_raw.get("crawl_backend")),
        audit_backend=_opt_str(service_raw.get("audit_backend")),
    )
    for key in ("crawl_backend", "audit_backend"):
        value = getattr(service, key)
        if value is not None and ":" not in value:
            raise ConfigError("must look like 'package.module:function'", path=f"service.{key}")

    return AppConfig(llm=llm, worker=worker, chat=chat, service=service)
