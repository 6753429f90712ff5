"""MCP stdio server exposing the Forge Image tools.

Usage:
  forge-image-mcp
  forge-image-mcp --images-dir ~/Pictures/forge --log-level DEBUG

Notes:
- Loads the nearest .env without overriding variables already set.
- Logs go to stderr; stdout carries the protocol.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from mcp.server.fastmcp import FastMCP
from pydantic import Field

from forge_image_mcp import api
from forge_image_mcp.core.orchestrator import ImageContext

SERVER_NAME = "forge-image-mcp"
LOG_LEVEL_ENV_VAR = "FORGE_IMAGE_MCP_LOG_LEVEL"

logger = logging.getLogger("forge_image_mcp.server")

_MODEL_HELP = (
    'Model to use: "default" (gemini-2.5-flash-image, fast) or '
    '"pro" (gemini-3-pro-image-preview, higher quality). Defaults to "default".'
)


def build_server(ctx: ImageContext) -> FastMCP:
    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "Generate and edit images with Gemini. Use generate_image for new images, "
            "edit_image for a specific file, and continue_editing to iterate on the last "
            "image produced in this session."
        ),
    )

    @mcp.tool(name="configure_credential")
    async def configure_credential(
        token: str = Field(description="Your Gemini API key from Google AI Studio"),
    ):
        """Configure and persist the Gemini API token used for image generation."""
        return await api.configure_credential(ctx, token)

    @mcp.tool(name="generate_image")
    async def generate_image(
        prompt: str = Field(description="Text prompt describing the NEW image to create from scratch"),
        modelId: Optional[str] = Field(default=None, description=_MODEL_HELP),  # noqa: N803
    ):
        """Generate a NEW image from a text prompt.

        Use this only when creating a completely new image, not when modifying an
        existing one.
        """
        return await api.generate_image(ctx, prompt, modelId)

    @mcp.tool(name="edit_image")
    async def edit_image(
        imagePath: str = Field(description="Full file path to the main image file to edit"),  # noqa: N803
        prompt: str = Field(description="Text describing the modifications to make to the image"),
        referenceImages: Optional[List[str]] = Field(  # noqa: N803
            default=None,
            description="Optional file paths of additional reference images (style transfer, added elements, ...)",
        ),
        modelId: Optional[str] = Field(default=None, description=_MODEL_HELP),  # noqa: N803
    ):
        """Edit a SPECIFIC existing image file, optionally guided by reference images."""
        return await api.edit_image(ctx, imagePath, prompt, referenceImages, modelId)

    @mcp.tool(name="continue_editing")
    async def continue_editing(
        prompt: str = Field(description="Text describing the modifications to make to the last image"),
        referenceImages: Optional[List[str]] = Field(  # noqa: N803
            default=None,
            description="Optional file paths of additional reference images",
        ),
        modelId: Optional[str] = Field(default=None, description=_MODEL_HELP),  # noqa: N803
    ):
        """Continue editing the LAST image generated or edited in this session."""
        return await api.continue_editing(ctx, prompt, referenceImages, modelId)

    @mcp.tool(name="get_last_image_info")
    async def get_last_image_info():
        """Get information about the last generated/edited image in this session."""
        return await api.get_last_image_info(ctx)

    @mcp.tool(name="get_configuration_status")
    async def get_configuration_status():
        """Check whether a Gemini API token is configured and where it came from."""
        return await api.get_configuration_status(ctx)

    return mcp


def _configure_logging(level: Optional[str]) -> None:
    level_name = (level or os.getenv(LOG_LEVEL_ENV_VAR) or "WARNING").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_dotenv() -> Optional[Path]:
    dotenv_path = find_dotenv(usecwd=True)
    if not dotenv_path:
        return None
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return Path(dotenv_path)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Forge Image MCP: Gemini image generation over MCP stdio.")
    parser.add_argument("--images-dir", default=None, help="Directory for generated images")
    parser.add_argument("--log-level", default=None, help=f"Log level (default: ${LOG_LEVEL_ENV_VAR} or WARNING)")
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    dotenv_path = _load_dotenv()
    if dotenv_path is not None:
        logger.info("Loaded environment from %s", dotenv_path)

    ctx = api.create_context(images_dir=args.images_dir)
    logger.info("Starting %s", SERVER_NAME)
    build_server(ctx).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
