"""Core contracts and helpers."""

from .contracts import (
    GenerationRequest,
    GenerationResult,
    ImagePart,
    ImageRef,
    PersistedImage,
    ProviderResponse,
    TextPart,
)
from .errors import ImageToolError

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "ImagePart",
    "ImageRef",
    "ImageToolError",
    "PersistedImage",
    "ProviderResponse",
    "TextPart",
]
