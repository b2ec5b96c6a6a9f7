"""AI Router — picks provider, model and generation limits for a scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ledger_insights.core.config import Settings, get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)

# scope -> (provider setting, model setting)
SCOPE_SETTINGS: dict[str, tuple[str, str]] = {
    "analysis": ("ai_analysis_provider", "ai_analysis_model"),
}
FALLBACK_PROVIDER = "mock"


@dataclass(frozen=True)
class ResolvedConfig:
    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: Optional[float]
    thinking_budget: int


def _scope_value(settings: Settings, scope: str, index: int) -> str:
    names = SCOPE_SETTINGS.get(scope)
    if names is None:
        return ""
    return (getattr(settings, names[index]) or "").strip()


def _provider_name(settings: Settings, scope: str, override: str | None) -> str:
    if settings.enable_ai_overrides and override and override.strip():
        return override.strip().lower()
    return _scope_value(settings, scope, 0).lower() or FALLBACK_PROVIDER


def _model_name(settings: Settings, scope: str, provider_name: str, override: str | None) -> str:
    if settings.enable_ai_overrides and override and override.strip():
        model = override.strip()
    else:
        model = _scope_value(settings, scope, 1)

    allowed = settings.ai_allowed_models.get(provider_name) or []
    if not allowed:
        return model
    if not model:
        return allowed[0]
    if model not in allowed:
        logger.warning("Model %r is not allowed for %r, using %r", model, provider_name, allowed[0])
        return allowed[0]
    return model


def resolve(
    scope: str,
    *,
    payload_kind: str = "text",
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    """Resolve the inference configuration for *scope*.

    Request overrides win only when ``enable_ai_overrides`` is set; then the
    scope's ``AI_<SCOPE>_PROVIDER`` / ``AI_<SCOPE>_MODEL``; then ``mock``.
    A model outside the provider's allowlist is replaced by the first allowed
    one. Binary payloads get ``ai_thinking_budget_binary``.

    Raises ``InferenceError`` (from ``get_provider``) for an unusable provider.
    """
    settings = get_settings()
    provider_name = _provider_name(settings, scope, override_provider)

    if payload_kind == "binary":
        budget = settings.ai_thinking_budget_binary
    else:
        budget = settings.ai_thinking_budget_text

    return ResolvedConfig(
        provider=get_provider(provider_name),
        model=_model_name(settings, scope, provider_name, override_model),
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_output_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
        thinking_budget=budget,
    )
