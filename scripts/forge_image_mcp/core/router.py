"""Model id resolution and alias normalization."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from .contracts import DEFAULT_MODEL_ID, MODEL_IDS, ModelId
from .errors import InvalidInputError


MODEL_ALIASES: Dict[str, ModelId] = {
    "default": "default",
    "pro": "pro",
    "gemini-2.5-flash-image": "default",
    "gemini-3-pro-image-preview": "pro",
}


def resolve_model(model_id: Optional[str]) -> Tuple[ModelId, str]:
    """Map a caller-supplied model literal to ``(canonical id, provider model)``.

    ``None`` and the empty string select the default model. Anything outside the
    closed set raises ``InvalidInputError``.
    """
    if model_id is None or model_id == "":
        return DEFAULT_MODEL_ID, MODEL_IDS[DEFAULT_MODEL_ID]
    canonical = MODEL_ALIASES.get(model_id)
    if canonical is None:
        supported = ", ".join(sorted(MODEL_ALIASES))
        raise InvalidInputError(f'Unsupported model "{model_id}". Supported: {supported}')
    return canonical, MODEL_IDS[canonical]
