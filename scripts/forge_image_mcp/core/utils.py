"""Utility helpers for Forge Image MCP."""

from __future__ import annotations

import os
import secrets
import string
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

IMAGES_DIR_NAME = "forge-image-mcp-images"
_ID_ALPHABET = string.ascii_lowercase + string.digits
_SYSTEM_PREFIXES = ("/usr/", "/opt/", "/var/")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO 8601 UTC timestamp with ``:`` and ``.`` replaced so it is filename safe."""
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def random_id(length: int = 6) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def artifact_filename(prefix: str, now: Optional[datetime] = None) -> str:
    return f"{prefix}-{utc_timestamp(now)}-{random_id()}.png"


def default_images_dir() -> Path:
    override = os.getenv("FORGE_IMAGE_MCP_OUTPUTS")
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32":
        return Path.home() / "Documents" / IMAGES_DIR_NAME
    cwd = Path.cwd()
    if str(cwd).startswith(_SYSTEM_PREFIXES):
        return Path.home() / IMAGES_DIR_NAME
    return cwd / "generated_imgs"


def ensure_out_dir(out_dir: Optional[Path]) -> Path:
    if out_dir is None:
        out_dir = default_images_dir()
    out_dir = Path(out_dir).expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir
