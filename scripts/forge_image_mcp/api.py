"""Tool-level operations for Forge Image MCP.

Each public coroutine here backs one MCP tool: it serializes on the context
lock, runs the orchestrator, and renders the outcome as protocol content.
Failures are classified into the error taxonomy and re-raised as ``ToolError``
with a ``[CODE] message`` text.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ImageContent, TextContent

from forge_image_mcp.core import orchestrator
from forge_image_mcp.core.contracts import GenerationResult
from forge_image_mcp.core.credentials import ENV_VAR, CredentialResolver, CredentialStatus
from forge_image_mcp.core.errors import classify
from forge_image_mcp.core.orchestrator import ImageContext
from forge_image_mcp.core.session import LastImageInfo, probe_last_image
from forge_image_mcp.providers import ProviderAdapter, get_adapter

logger = logging.getLogger("forge_image_mcp.api")

ToolContent = Union[TextContent, ImageContent]
T = TypeVar("T")


def create_context(
    *,
    images_dir: Optional[str | Path] = None,
    config_path: Optional[str | Path] = None,
    adapter_factory: Optional[Callable[[str], ProviderAdapter]] = None,
) -> ImageContext:
    credentials = CredentialResolver(Path(config_path) if config_path else None)
    credentials.resolve()
    return ImageContext(
        credentials=credentials,
        adapter_factory=adapter_factory or get_adapter,
        images_dir=Path(images_dir) if images_dir else None,
    )


async def _guarded(ctx: ImageContext, tool: str, operation: Callable[[], Awaitable[T]]) -> T:
    async with ctx.lock:
        try:
            return await operation()
        except Exception as exc:
            error = classify(exc)
            if error is exc:
                logger.warning("%s failed: %s", tool, error.to_text())
            else:
                logger.exception("%s failed with an unclassified error", tool)
            raise ToolError(error.to_text()) from exc


def render_result(result: GenerationResult) -> str:
    verb = "generated" if result.prefix == "generated" else "edited"
    lines = [f"Image {verb} with {result.model or 'Gemini'}!", ""]
    if result.source_image is not None:
        lines.append(f"Original: {result.source_image}")
        lines.append(f'Edit prompt: "{result.prompt}"')
    else:
        lines.append(f'Prompt: "{result.prompt}"')
    if result.reference_images:
        lines.append("")
        lines.append("Reference images:")
        lines.extend(f"- {path}" for path in result.reference_images)
    if result.narrative_text:
        lines.append("")
        lines.append(f"Description: {result.narrative_text}")
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in result.warnings)
    if result.produced_artifacts:
        lines.append("")
        lines.append("Image saved to:")
        lines.extend(f"- {artifact.file_path}" for artifact in result.produced_artifacts)
        lines.append("")
        lines.append("To modify this image, use: continue_editing")
        lines.append("To check current image info, use: get_last_image_info")
    return "\n".join(lines)


def result_content(result: GenerationResult) -> List[ToolContent]:
    content: List[ToolContent] = [TextContent(type="text", text=render_result(result))]
    for artifact in result.produced_artifacts:
        content.append(
            ImageContent(
                type="image",
                data=base64.b64encode(artifact.data).decode("ascii"),
                mimeType=artifact.mime_type,
            )
        )
    return content


def render_last_image_info(info: LastImageInfo) -> str:
    if info.status == "none":
        return "No previous image found.\n\nPlease generate or edit an image first."
    if info.status == "missing":
        return (
            "Last Image Information:\n\n"
            f"Path: {info.path}\n"
            "Status: File not found\n\n"
            "The image file may have been moved or deleted. Please generate a new image."
        )
    size_kb = round((info.size_bytes or 0) / 1024)
    modified = info.modified_at.strftime("%Y-%m-%d %H:%M:%S") if info.modified_at else "unknown"
    return (
        "Last Image Information:\n\n"
        f"Path: {info.path}\n"
        f"File Size: {size_kb} KB\n"
        f"Last Modified: {modified}\n\n"
        "Use continue_editing to make further changes."
    )


def render_configuration_status(status: CredentialStatus, config_path: Path) -> str:
    if status.configured and status.source == "environment":
        return (
            "Gemini API token is configured and ready to use\n"
            f"Source: Environment variable ({ENV_VAR})\n"
            "This is the most secure configuration method."
        )
    if status.configured:
        return (
            "Gemini API token is configured and ready to use\n"
            f"Source: Local configuration file ({config_path})\n"
            "Consider using environment variables for better security."
        )
    return (
        "Gemini API token is not configured\n\n"
        "Configuration options (in priority order):\n"
        f"1. Environment variable: {ENV_VAR} (recommended, e.g. via the MCP client \"env\" block)\n"
        "2. Use the configure_credential tool"
    )


async def configure_credential(ctx: ImageContext, token: str) -> str:
    async def run() -> str:
        ctx.credentials.persist(token)
        return (
            "Gemini API token configured successfully. "
            "You can now use the image generation tools."
        )

    return await _guarded(ctx, "configure_credential", run)


async def generate_image(
    ctx: ImageContext,
    prompt: str,
    model_id: Optional[str] = None,
) -> List[ToolContent]:
    async def run() -> List[ToolContent]:
        result = await orchestrator.generate(ctx, prompt, model_id)
        return result_content(result)

    return await _guarded(ctx, "generate_image", run)


async def edit_image(
    ctx: ImageContext,
    image_path: str,
    prompt: str,
    reference_images: Optional[Sequence[str]] = None,
    model_id: Optional[str] = None,
) -> List[ToolContent]:
    async def run() -> List[ToolContent]:
        result = await orchestrator.edit(ctx, image_path, prompt, reference_images, model_id)
        return result_content(result)

    return await _guarded(ctx, "edit_image", run)


async def continue_editing(
    ctx: ImageContext,
    prompt: str,
    reference_images: Optional[Sequence[str]] = None,
    model_id: Optional[str] = None,
) -> List[ToolContent]:
    async def run() -> List[ToolContent]:
        result = await orchestrator.continue_editing(ctx, prompt, reference_images, model_id)
        return result_content(result)

    return await _guarded(ctx, "continue_editing", run)


async def get_last_image_info(ctx: ImageContext) -> str:
    async def run() -> str:
        return render_last_image_info(probe_last_image(ctx.session))

    return await _guarded(ctx, "get_last_image_info", run)


async def get_configuration_status(ctx: ImageContext) -> str:
    async def run() -> str:
        return render_configuration_status(ctx.credentials.status(), ctx.credentials.config_path)

    return await _guarded(ctx, "get_configuration_status", run)
