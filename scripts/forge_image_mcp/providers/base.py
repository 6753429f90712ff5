"""Provider adapter interfaces."""

from __future__ import annotations

from typing import Protocol, Sequence

from forge_image_mcp.core.contracts import ContentPart, ProviderResponse


class ProviderAdapter(Protocol):
    name: str

    async def generate_content(
        self,
        *,
        model: str,
        parts: Sequence[ContentPart],
    ) -> ProviderResponse:
        ...
