"""Gemini image adapter."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List, Optional, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    types = None  # type: ignore

from forge_image_mcp.core.contracts import (
    Candidate,
    ContentPart,
    ImagePart,
    ProviderResponse,
    TextPart,
)

logger = logging.getLogger("forge_image_mcp.providers.gemini")


def _decode_inline(data: Any) -> Optional[bytes]:
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            return data.encode("latin1")
    return None


def _to_sdk_parts(parts: Sequence[ContentPart]) -> List[Any]:
    sdk_parts: List[Any] = []
    for part in parts:
        if isinstance(part, ImagePart):
            sdk_parts.append(
                types.Part(inline_data=types.Blob(data=part.data, mime_type=part.mime_type))
            )
        else:
            sdk_parts.append(types.Part(text=part.text))
    return sdk_parts


def parse_response(response: Any, model: Optional[str] = None) -> ProviderResponse:
    """Fold a loosely typed SDK response into text/image parts per candidate."""
    candidates: List[Candidate] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        raw_parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        parts: List[ContentPart] = []
        for part in raw_parts:
            text = getattr(part, "text", None)
            if text:
                parts.append(TextPart(text=text))
            inline_data = getattr(part, "inline_data", None)
            data = _decode_inline(getattr(inline_data, "data", None)) if inline_data else None
            if data:
                mime_type = getattr(inline_data, "mime_type", None) or "image/png"
                parts.append(ImagePart(data=data, mime_type=mime_type))
        candidates.append(Candidate(parts=tuple(parts)))
    return ProviderResponse(candidates=tuple(candidates), model=model)


class GeminiAdapter:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        if genai is None:
            raise RuntimeError("google-genai package not installed. Run: pip install google-genai")
        self._client = genai.Client(api_key=api_key)

    async def generate_content(
        self,
        *,
        model: str,
        parts: Sequence[ContentPart],
    ) -> ProviderResponse:
        if len(parts) == 1 and isinstance(parts[0], TextPart):
            contents: Any = parts[0].text
        else:
            contents = [types.Content(role="user", parts=_to_sdk_parts(parts))]
        logger.debug("Calling %s with %d part(s)", model, len(parts))
        response = await self._client.aio.models.generate_content(model=model, contents=contents)
        return parse_response(response, model=model)
