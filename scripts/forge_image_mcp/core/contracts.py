"""Core data contracts for Forge Image MCP."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional, Sequence, Union


ModelId = Literal["default", "pro"]
ArtifactPrefix = Literal["generated", "edited"]

MODEL_IDS: dict[str, str] = {
    "default": "gemini-2.5-flash-image",
    "pro": "gemini-3-pro-image-preview",
}
DEFAULT_MODEL_ID: ModelId = "default"


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ImagePart:
    data: bytes = field(repr=False)
    mime_type: str = "image/png"


ContentPart = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class Candidate:
    parts: Sequence[ContentPart] = ()


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized provider output: zero or more candidates of ordered parts."""

    candidates: Sequence[Candidate] = ()
    model: Optional[str] = None


@dataclass(frozen=True)
class ImageRef:
    path: Path
    extension: str
    size_bytes: int


@dataclass
class GenerationRequest:
    prompt: str
    model_id: ModelId = DEFAULT_MODEL_ID
    input_images: Sequence[ImageRef] = ()


@dataclass(frozen=True)
class PersistedImage:
    file_path: Path
    mime_type: str
    data: bytes = field(default=b"", repr=False, compare=False)


@dataclass
class GenerationResult:
    prompt: str
    prefix: ArtifactPrefix
    narrative_text: str = ""
    produced_artifacts: List[PersistedImage] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    model: Optional[str] = None
    source_image: Optional[Path] = None
    reference_images: Sequence[str] = ()
