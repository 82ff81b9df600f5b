from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class LaunchPlan:
    """Everything needed to spawn the worker over stdio.

    Recomputed on every connection attempt; only the connection is cached.
    """

    working_directory: str
    executable_path: str
    base_service_url: str
    entry_point_relative_path: str
    user_agent: str = "mcp-crawler"
    candidate_paths_tried: tuple[str, ...] = field(default_factory=tuple)

    @property
    def entry_point(self) -> Path:
        return Path(self.working_directory) / self.entry_point_relative_path

    def to_dict(self) -> dict[str, Any]:
        return {
            "working_directory": self.working_directory,
            "executable_path": self.executable_path,
            "base_service_url": self.base_service_url,
            "entry_point_relative_path": self.entry_point_relative_path,
            "user_agent": self.user_agent,
            "candidate_paths_tried": list(self.candidate_paths_tried),
        }
