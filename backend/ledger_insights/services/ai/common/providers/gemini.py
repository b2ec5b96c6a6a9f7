"""Google Gemini provider (Generative Language REST API)."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from ledger_insights.services.errors import InferenceError

from .base import BaseProvider, InlineDataPart, ProviderResult, RequestPart, TextPart

logger = logging.getLogger(__name__)

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-pro-preview"


def _encode_part(part: RequestPart) -> dict[str, Any]:
    if isinstance(part, InlineDataPart):
        return {"inline_data": {"mime_type": part.mime_type, "data": part.data}}
    if isinstance(part, TextPart):
        return {"text": part.text}
    raise TypeError(f"Unsupported request part: {type(part).__name__}")


def _response_text(data: dict[str, Any]) -> str:
    """Join the non-thought text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        return ""
    chunks = [
        p.get("text", "")
        for p in content.get("parts") or []
        if isinstance(p, dict) and not p.get("thought")
    ]
    return "".join(chunks)


class GeminiProvider(BaseProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def generate(
        self,
        parts: Sequence[RequestPart],
        *,
        model: str = "",
        response_mime_type: str = "application/json",
        thinking_budget: Optional[int] = None,
        temperature: float = 0.2,
        max_tokens: int = 8192,
        timeout_seconds: Optional[float] = None,
    ) -> ProviderResult:
        if not self._api_key:
            raise InferenceError("missing_api_key", "GEMINI_API_KEY is not configured")

        model = model or DEFAULT_MODEL
        generation_config: dict[str, Any] = {
            "responseMimeType": response_mime_type,
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        }
        if thinking_budget is not None:
            generation_config["thinkingConfig"] = {"thinkingBudget": thinking_budget}

        body = {
            "contents": [{"role": "user", "parts": [_encode_part(p) for p in parts]}],
            "generationConfig": generation_config,
        }

        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                f"{self._base_url}/models/{model}:generateContent",
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()

        if not isinstance(data, dict):
            raise InferenceError("service_rejected", f"expected a JSON object, got {type(data).__name__}")

        elapsed = (time.monotonic() - t0) * 1000

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise InferenceError("blocked_prompt", f"prompt blocked: {block_reason}")

        usage = data.get("usageMetadata") or {}
        return ProviderResult(
            raw_text=_response_text(data),
            model=data.get("modelVersion") or model,
            provider=self.name,
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
            thoughts_tokens=usage.get("thoughtsTokenCount", 0),
            latency_ms=round(elapsed, 2),
        )
