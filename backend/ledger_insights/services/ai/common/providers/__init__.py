"""Provider factory — returns the configured provider instance."""

from __future__ import annotations

import logging

from ledger_insights.core.config import get_settings
from ledger_insights.services.errors import InferenceError

from .base import BaseProvider, InlineDataPart, ProviderResult, RequestPart, TextPart
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "BaseProvider",
    "ProviderResult",
    "MockProvider",
    "RequestPart",
    "TextPart",
    "InlineDataPart",
]


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    Raises ``InferenceError`` when the provider is unknown, not in the
    allowlist, or has no API key. This runs per request, so a missing key
    surfaces at call time rather than at startup.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist %r", name, settings.ai_allowed_providers)
        raise InferenceError("unknown_provider", f"provider {name!r} is not allowed")

    if name == "mock":
        return MockProvider()

    if name == "gemini":
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY not set")
            raise InferenceError("missing_api_key", "GEMINI_API_KEY is not configured")
        from .gemini import GeminiProvider

        return GeminiProvider(api_key=settings.gemini_api_key)

    logger.warning("Unknown provider %r", name)
    raise InferenceError("unknown_provider", f"provider {name!r} is not implemented")
