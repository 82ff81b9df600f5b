from __future__ import annotations

import asyncio
import os

from observability import configure_logging

from .server import serve_stdio


def main() -> int:
    configure_logging(level=os.getenv("CRAWLER_LOG_LEVEL", "INFO"))
    asyncio.run(serve_stdio())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
