"""Worker process: crawl/audit tools served over MCP stdio."""

from __future__ import annotations

from .base_client import BaseServiceClient, BaseServiceError
from .crawler_tools import build_registry
from .registry import ToolOutcome, ToolRejected, WorkerRegistry

__all__ = [
    "BaseServiceClient",
    "BaseServiceError",
    "ToolOutcome",
    "ToolRejected",
    "WorkerRegistry",
    "build_registry",
]
