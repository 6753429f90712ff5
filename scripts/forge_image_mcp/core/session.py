"""Process-lifetime session state for iterative editing."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional


LastImageStatus = Literal["none", "present", "missing"]


@dataclass
class SessionState:
    last_artifact_path: Optional[Path] = None

    def record_artifact(self, path: Path) -> None:
        self.last_artifact_path = Path(path)


@dataclass(frozen=True)
class LastImageInfo:
    status: LastImageStatus
    path: Optional[Path] = None
    size_bytes: Optional[int] = None
    modified_at: Optional[datetime] = None


def probe_last_image(session: SessionState) -> LastImageInfo:
    """Live-probe the tracked artifact; absence is a state, not an error."""
    path = session.last_artifact_path
    if path is None:
        return LastImageInfo(status="none")
    try:
        info = os.stat(path)
    except OSError:
        return LastImageInfo(status="missing", path=path)
    return LastImageInfo(
        status="present",
        path=path,
        size_bytes=info.st_size,
        modified_at=datetime.fromtimestamp(info.st_mtime),
    )
