"""AI audit — one structured log line per inference run."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from ledger_insights.core.config import get_settings

from .providers.base import ProviderResult

logger = logging.getLogger(__name__)

# Scope-dependent audit actions. Falls back to "AI_RUN" for unknown scopes.
SCOPE_ACTIONS: dict[str, str] = {
    "analysis": "AI_ANALYSIS_RUN",
}


def build_ai_audit_entry(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the audit metadata dict.

    * PII: prompt and response are always hashed; raw text is only included
      when ``AI_DEBUG_STORE_RAW=true``.
    """
    settings = get_settings()

    entry: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "thoughts_tokens": provider_result.thoughts_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": hashlib.sha256(prompt_text.encode()).hexdigest(),
        "response_hash": hashlib.sha256(provider_result.raw_text.encode()).hexdigest(),
    }

    if settings.ai_debug_store_raw:
        entry["prompt_raw"] = prompt_text
        entry["response_raw"] = provider_result.raw_text

    if extra_meta:
        entry.update(extra_meta)
    return entry


def log_ai_run(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Emit the audit entry for one inference run and return it."""
    entry = build_ai_audit_entry(
        scope=scope,
        provider_result=provider_result,
        prompt_text=prompt_text,
        extra_meta=extra_meta,
    )
    logger.info("%s %s", entry["action"], json.dumps(entry, default=str, sort_keys=True))
    return entry
