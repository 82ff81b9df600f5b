from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    # servers/mcp-crawler/main.py -> <repo>/src
    root = Path(__file__).resolve().parents[2]
    src = root / "src"
    if src.exists():
        # Append (not prepend) to avoid shadowing third-party packages.
        sys.path.append(str(src))


def main() -> int:
    _ensure_src_on_path()
    from worker.__main__ import main as worker_main

    return worker_main()


if __name__ == "__main__":
    raise SystemExit(main())
