"""Provider adapter registry."""

from __future__ import annotations

from typing import Dict, Tuple

from .base import ProviderAdapter


DEFAULT_PROVIDER = "gemini"

_ADAPTERS: Dict[Tuple[str, str], ProviderAdapter] = {}


def _build_adapter(provider: str, api_key: str) -> ProviderAdapter:
    if provider == "gemini":
        from .gemini import GeminiAdapter
        return GeminiAdapter(api_key)
    raise ValueError(f"No adapter registered for provider '{provider}'.")


def get_adapter(api_key: str, provider: str = DEFAULT_PROVIDER) -> ProviderAdapter:
    key = (provider.strip().lower(), api_key)
    adapter = _ADAPTERS.get(key)
    if adapter is not None:
        return adapter
    adapter = _build_adapter(key[0], api_key)
    _ADAPTERS[key] = adapter
    return adapter


__all__ = ["get_adapter", "ProviderAdapter", "DEFAULT_PROVIDER"]
