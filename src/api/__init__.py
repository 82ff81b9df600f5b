"""HTTP API (FastAPI)."""

from __future__ import annotations

from .app import create_app, load_backend

__all__ = ["create_app", "load_backend"]
