from __future__ import annotations

from typing import Any

from core.types import ToolDefinition

CRAWL_SITE = ToolDefinition(
    name="crawl_site",
    description=(
        "Discover internal URLs while honouring robots.txt and sitemaps. "
        "Returns inventory, edges, stats and SEO reports."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "startUrl": {"type": "string", "format": "uri"},
            "depth": {"type": "integer", "minimum": 0, "maximum": 6},
            "maxPages": {"type": "integer", "minimum": 1, "maximum": 5000},
            "includeSubdomains": {"type": "boolean"},
            "userAgent": {"type": "string"},
        },
        "required": ["startUrl"],
        "additionalProperties": False,
    },
)

AUDIT_INDEXABILITY = ToolDefinition(
    name="audit_indexability",
    description="Audit indexability: status, canonical, meta/X-Robots noindex, hreflang and issues per URL.",
    input_schema={
        "type": "object",
        "properties": {
            "urls": {
                "type": "array",
                "items": {"type": "string", "format": "uri"},
                "minItems": 1,
                "maxItems": 200,
            },
            "userAgent": {"type": "string"},
        },
        "required": ["urls"],
        "additionalProperties": False,
    },
)

DEFAULT_CATALOG: tuple[ToolDefinition, ...] = (CRAWL_SITE, AUDIT_INDEXABILITY)


def get_openai_tool_specs(catalog: tuple[ToolDefinition, ...] | list[ToolDefinition] = DEFAULT_CATALOG) -> list[dict[str, Any]]:
    """Return OpenAI-compatible tool specs for the published catalog.

    Note: OpenAI-compatible format:
    {
      "type": "function",
      "function": {
        "name": "tool_name",
        "description": "...",
        "parameters": { ...JSON Schema... }
      }
    }
    """

    return [t.to_openai() for t in catalog]
