"""Closed error taxonomy surfaced to protocol clients.

Every failure that leaves a tool call is one of the classes below. ``classify``
folds arbitrary exceptions into the taxonomy so nothing crosses the protocol
boundary unclassified.
"""

from __future__ import annotations

from typing import Optional


class ImageToolError(Exception):
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_text(self) -> str:
        return f"[{self.code}] {self.message}"


class NotConfiguredError(ImageToolError):
    code = "NOT_CONFIGURED"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or "Gemini API token not configured. Use configure_credential first "
            "or set GEMINI_API_KEY."
        )


class InvalidInputError(ImageToolError):
    code = "INVALID_INPUT"


class GenerationFailedError(ImageToolError):
    code = "GENERATION_FAILED"

    def __init__(self, cause: str, *, action: str = "generate image") -> None:
        super().__init__(f"Failed to {action}: {cause}")
        self.cause = cause


class NoPriorImageError(ImageToolError):
    code = "NO_PRIOR_IMAGE"

    def __init__(self) -> None:
        super().__init__("No previous image found. Please generate or edit an image first.")


class StalePriorImageError(ImageToolError):
    code = "STALE_PRIOR_IMAGE"

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Last image file not found at: {path}. It may have been moved or deleted; "
            "please generate a new image first."
        )
        self.path = path


class InternalError(ImageToolError):
    code = "INTERNAL_ERROR"


def classify(exc: BaseException) -> ImageToolError:
    if isinstance(exc, ImageToolError):
        return exc
    message = str(exc) or exc.__class__.__name__
    return InternalError(f"Tool execution failed: {message}")


__all__ = [
    "ImageToolError",
    "NotConfiguredError",
    "InvalidInputError",
    "GenerationFailedError",
    "NoPriorImageError",
    "StalePriorImageError",
    "InternalError",
    "classify",
]
