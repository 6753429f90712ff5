"""Validation of externally supplied image paths.

Checks run in a fixed order on every call and nothing is cached, since files
can be created, moved or grown between tool invocations. Only size metadata is
inspected; file contents are never sniffed.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .contracts import ImagePart, ImageRef

MAX_IMAGE_SIZE_BYTES = 20 * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp", "gif")

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


@dataclass(frozen=True)
class ImageCheck:
    path: str
    ref: Optional[ImageRef] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.ref is not None


def _extension(path: Path) -> str:
    return path.suffix.lower().lstrip(".")


def mime_type_for(path: str | Path) -> str:
    # Total over all extensions; the fallback is unreachable behind the allow-list.
    return _MIME_TYPES.get(_extension(Path(path)), "image/jpeg")


def validate_image_path(path: str) -> ImageCheck:
    try:
        resolved = Path(path).expanduser().resolve()
    except (OSError, RuntimeError, ValueError):
        return ImageCheck(path=path, reason=f"Invalid image path: {path}")

    ext = _extension(resolved)
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        shown = f".{ext}" if ext else "(none)"
        allowed = ", ".join(f".{item}" for item in ALLOWED_IMAGE_EXTENSIONS)
        return ImageCheck(path=path, reason=f'Unsupported image format "{shown}". Allowed: {allowed}')

    try:
        info = os.stat(resolved)
    except (OSError, ValueError):
        return ImageCheck(path=path, reason=f"Image file not found: {path}")
    if not stat.S_ISREG(info.st_mode):
        return ImageCheck(path=path, reason=f"Image file not found: {path}")

    if info.st_size > MAX_IMAGE_SIZE_BYTES:
        size_mb = round(info.st_size / 1024 / 1024)
        limit_mb = MAX_IMAGE_SIZE_BYTES // (1024 * 1024)
        return ImageCheck(
            path=path,
            reason=f"Image file too large ({size_mb}MB). Maximum: {limit_mb}MB",
        )

    return ImageCheck(path=path, ref=ImageRef(path=resolved, extension=ext, size_bytes=info.st_size))


def load_image(ref: ImageRef) -> ImagePart:
    return ImagePart(data=ref.path.read_bytes(), mime_type=mime_type_for(ref.path))
