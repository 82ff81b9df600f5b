"""Input shapes for the worker tools (unknown fields are rejected)."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"not an absolute http(s) URL: {value!r}")
    return value


class CrawlArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    startUrl: str
    depth: int | None = Field(default=None, ge=0, le=6)
    maxPages: int | None = Field(default=None, ge=1, le=5000)
    includeSubdomains: bool | None = None
    userAgent: str | None = None

    @field_validator("startUrl")
    @classmethod
    def _start_url(cls, v: str) -> str:
        return _check_http_url(v)


class AuditArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(min_length=1, max_length=200)
    userAgent: str | None = None

    @field_validator("urls")
    @classmethod
    def _urls(cls, v: list[str]) -> list[str]:
        return [_check_http_url(u) for u in v]
