from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from core.errors import ConfigurationError

_TOOL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Public (model-facing) name -> name registered inside the worker.
DEFAULT_TOOL_NAMES: dict[str, str] = {
    "crawl_site": "crawl.site",
    "audit_indexability": "audit.indexability",
}


def to_model_tool_name(name: str) -> str:
    """Validate and return a model-facing tool name.

    Model-facing names must be OpenAI-compatible (letters/digits/underscore/hyphen);
    worker names may use dots, which is why the two sides are mapped.
    """

    if not isinstance(name, str) or not name:
        raise ValueError("name must be a non-empty string")
    if not _TOOL_NAME_RE.fullmatch(name):
        raise ValueError(f"tool name is not OpenAI-compatible: {name!r}")
    return name


@dataclass(frozen=True, slots=True)
class ToolNameMap:
    """Bidirectional public <-> worker tool-name table."""

    public_to_worker: Mapping[str, str]
    worker_to_public: Mapping[str, str]

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str]) -> ToolNameMap:
        forward: dict[str, str] = {}
        backward: dict[str, str] = {}
        for public, worker in pairs.items():
            to_model_tool_name(public)
            if not isinstance(worker, str) or not worker:
                raise ValueError(f"worker tool name for {public!r} must be a non-empty string")
            if worker in backward:
                raise ValueError(f"worker tool {worker!r} is mapped twice ({backward[worker]!r}, {public!r})")
            forward[public] = worker
            backward[worker] = public
        return cls(public_to_worker=forward, worker_to_public=backward)

    def to_worker(self, public_name: str) -> str:
        try:
            return self.public_to_worker[public_name]
        except KeyError:
            raise ConfigurationError(f"no worker tool mapped for public tool {public_name!r}") from None

    def to_public(self, worker_name: str) -> str:
        try:
            return self.worker_to_public[worker_name]
        except KeyError:
            raise ConfigurationError(f"worker tool {worker_name!r} is not published") from None

    def ensure_total(self, public_names: Iterable[str]) -> None:
        missing = [n for n in public_names if n not in self.public_to_worker]
        if missing:
            raise ConfigurationError(f"published tools without a worker mapping: {', '.join(missing)}")


def default_name_map() -> ToolNameMap:
    return ToolNameMap.from_pairs(DEFAULT_TOOL_NAMES)
