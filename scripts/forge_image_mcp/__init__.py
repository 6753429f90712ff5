"""Forge Image MCP public surface."""

from .api import (
    configure_credential,
    continue_editing,
    create_context,
    edit_image,
    generate_image,
    get_configuration_status,
    get_last_image_info,
)
from .core import GenerationResult, ImageToolError, PersistedImage

__all__ = [
    "configure_credential",
    "continue_editing",
    "create_context",
    "edit_image",
    "generate_image",
    "get_configuration_status",
    "get_last_image_info",
    "GenerationResult",
    "ImageToolError",
    "PersistedImage",
]
