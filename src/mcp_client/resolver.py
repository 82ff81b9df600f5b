"""Locate the worker directory and interpreter across host environments.

Resolution order for the worker directory (first success wins):

1. explicit override (`worker.dir` / MCP_CRAWLER_DIR), after drive-mount translation;
2. walk up from the current working directory looking for `servers/mcp-crawler`;
3. fail, reporting every candidate that was probed.

The interpreter probe is independent and never fails.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from core.config import WorkerConfig
from core.errors import WorkerNotFoundError
from observability import get_logger

from .types import LaunchPlan

WORKER_SUBPATH = ("servers", "mcp-crawler")
ENTRY_POINT = "main.py"
MAX_WALK_LEVELS = 8
FALLBACK_COMMAND = "python3"

_MNT_DRIVE_RE = re.compile(r"^/mnt/([a-zA-Z])(?:/(.*))?$")
_WIN_DRIVE_RE = re.compile(r"^([a-zA-Z]):[\\/](.*)$")


def to_native_path(path: str, *, windows: bool | None = None) -> str:
    """Translate a single-letter drive mount path into the host's native form.

    `/mnt/c/work` <-> `C:\\work`. Anything else is returned untouched.
    """

    on_windows = (os.name == "nt") if windows is None else windows
    if on_windows:
        m = _MNT_DRIVE_RE.match(path)
        if not m:
            return path
        rest = (m.group(2) or "").replace("/", "\\")
        return f"{m.group(1).upper()}:\\{rest}"

    m = _WIN_DRIVE_RE.match(path)
    if not m:
        return path
    rest = m.group(2).replace("\\", "/")
    return f"/mnt/{m.group(1).lower()}/{rest}".rstrip("/")


def _is_dir(path: str | Path) -> bool:
    try:
        return Path(path).is_dir()
    except OSError:
        return False


def _is_file(path: str | Path) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        return False


def find_worker_dir(
    override: str | None,
    *,
    cwd: str | Path | None = None,
    max_levels: int = MAX_WALK_LEVELS,
    windows: bool | None = None,
) -> tuple[str, list[str]]:
    """Return `(worker_dir, tried_paths)` or raise WorkerNotFoundError."""

    tried: list[str] = []

    if override:
        candidate = to_native_path(override, windows=windows)
        tried.append(candidate)
        if _is_dir(candidate):
            return candidate, tried

    start = Path(cwd) if cwd is not None else Path.cwd()
    cur = start
    for _ in range(max_levels):
        candidate_path = cur.joinpath(*WORKER_SUBPATH)
        tried.append(str(candidate_path))
        if _is_dir(candidate_path):
            return str(candidate_path), tried
        parent = cur.parent
        if parent == cur:
            break
        cur = parent

    fallback = start.joinpath(*WORKER_SUBPATH).resolve()
    tried.append(str(fallback))

    raise WorkerNotFoundError(
        "worker directory not found. Tried:\n"
        + "\n".join(f" - {p}" for p in tried)
        + "\nHint: set MCP_CRAWLER_DIR to the ABSOLUTE path of the worker directory.",
        tried_paths=tried,
    )


def python_candidates(environ: Mapping[str, str] | None = None) -> list[str]:
    """Well-known interpreter locations, most specific first."""

    env = os.environ if environ is None else environ
    out: list[str] = []
    for var in ("VIRTUAL_ENV", "CONDA_PREFIX"):
        prefix = env.get(var)
        if not prefix:
            continue
        out.append(str(Path(prefix) / "bin" / "python"))
        out.append(str(Path(prefix) / "Scripts" / "python.exe"))
        out.append(str(Path(prefix) / "python.exe"))
    return out


def resolve_python_executable(override: str | None, *, environ: Mapping[str, str] | None = None) -> str:
    if override and _is_file(override):
        return override

    for candidate in python_candidates(environ):
        if _is_file(candidate):
            return candidate

    if sys.executable and _is_file(sys.executable):
        return sys.executable

    return FALLBACK_COMMAND


def resolve_launch_plan(cfg: WorkerConfig, *, cwd: str | Path | None = None) -> LaunchPlan:
    worker_dir, tried = find_worker_dir(cfg.dir, cwd=cwd)
    return LaunchPlan(
        working_directory=worker_dir,
        executable_path=resolve_python_executable(cfg.python_path),
        base_service_url=cfg.base_url,
        entry_point_relative_path=ENTRY_POINT,
        user_agent=cfg.user_agent,
        candidate_paths_tried=tuple(tried),
    )


def describe_launch_plan(cfg: WorkerConfig, *, cwd: str | Path | None = None) -> dict[str, Any]:
    """Diagnostic view of what a connection attempt would spawn. Never raises."""

    try:
        return resolve_launch_plan(cfg, cwd=cwd).to_dict()
    except WorkerNotFoundError as e:
        get_logger("crawlagent.resolver").warning("launch_plan_unresolved", tried_paths=e.tried_paths)
        return {
            "error": str(e),
            "executable_path": resolve_python_executable(cfg.python_path),
            "base_service_url": cfg.base_url,
            "entry_point_relative_path": ENTRY_POINT,
        }
