from __future__ import annotations

from pathlib import Path

import pytest

from core.config import DEFAULT_SYSTEM_PROMPT, load_config
from core.errors import ConfigError

_ENV_KEYS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "LLM_MODEL",
    "MCP_CRAWLER_DIR",
    "MCP_PYTHON_PATH",
    "CRAWLER_BASE_URL",
    "CRAWLER_USER_AGENT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "app.yaml"
    p.write_text(text.lstrip(), encoding="utf-8")
    return p


def test_defaults_without_file() -> None:
    cfg = load_config(None)
    assert cfg.llm.api_key is None
    assert cfg.llm.model == "gpt-4o-mini"
    assert cfg.worker.dir is None
    assert cfg.worker.base_url == "http://127.0.0.1:8000"
    assert cfg.worker.user_agent == "mcp-crawler"
    assert cfg.chat.max_rounds == 3
    assert cfg.chat.system_prompt == DEFAULT_SYSTEM_PROMPT
    assert cfg.service.crawl_backend is None


def test_environment_fallbacks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_test")
    monkeypatch.setenv("MCP_CRAWLER_DIR", "/mnt/c/work/servers/mcp-crawler")
    monkeypatch.setenv("MCP_PYTHON_PATH", "/opt/py/bin/python")
    monkeypatch.setenv("CRAWLER_BASE_URL", "http://base.test:9000")
    monkeypatch.setenv("CRAWLER_USER_AGENT", "ua-env")

    cfg = load_config(None)
    assert cfg.llm.api_key == "k_test"
    assert cfg.worker.dir == "/mnt/c/work/servers/mcp-crawler"
    assert cfg.worker.python_path == "/opt/py/bin/python"
    assert cfg.worker.base_url == "http://base.test:9000"
    assert cfg.worker.user_agent == "ua-env"


def test_yaml_expands_env_and_wins_over_fallbacks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MY_KEY", "k_yaml")
    monkeypatch.setenv("CRAWLER_BASE_URL", "http://ignored.test")

    p = _write(
        tmp_path,
        """
llm:
  api_key: ${MY_KEY}
  model: gpt-test
worker:
  base_url: http://yaml.test
chat:
  max_rounds: 5
  default_depth: 0
service:
  port: 9100
  crawl_backend: mysite.crawler:crawl
""",
    )

    cfg = load_config(p)
    assert cfg.llm.api_key == "k_yaml"
    assert cfg.llm.model == "gpt-test"
    assert cfg.worker.base_url == "http://yaml.test"
    assert cfg.chat.max_rounds == 5
    assert cfg.chat.default_depth == 0
    assert cfg.service.port == 9100
    assert cfg.service.crawl_backend == "mysite.crawler:crawl"


def test_missing_env_var_is_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MY_KEY", raising=False)
    p = _write(tmp_path, "llm:\n  api_key: ${MY_KEY}\n")

    with pytest.raises(ConfigError) as ei:
        load_config(p)

    assert "MY_KEY" in str(ei.value)
    assert ei.value.path == "llm.api_key"


@pytest.mark.parametrize(
    ("text", "path"),
    [
        ("chat:\n  max_rounds: 0\n", "chat.max_rounds"),
        ("chat:\n  default_depth: 7\n", "chat.default_depth"),
        ("service:\n  audit_backend: not-dotted\n", "service.audit_backend"),
        ("worker: [1, 2]\n", "worker"),
    ],
)
def test_invalid_values_name_their_key(tmp_path: Path, text: str, path: str) -> None:
    with pytest.raises(ConfigError) as ei:
        load_config(_write(tmp_path, text))
    assert ei.value.path == path


def test_missing_file_is_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_repo_sample_config_loadable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "k_dummy")

    cfg = load_config(Path(__file__).resolve().parents[2] / "configs" / "app.yaml")
    assert cfg.llm.api_key == "k_dummy"
    assert cfg.chat.max_rounds == 3
