"""Financial document analysis service.

Pipeline for one request:
  1. Ingestion: document -> ``TextPayload`` | ``BinaryPayload``
  2. Prompt assembly: payload -> ordered request parts
  3. Inference: one provider call, JSON output, per-kind thinking budget
  4. Validation: raw text -> ``FinancialAnalysis``

No retries: every failure is terminal and raised as an ``AnalysisError``
subclass for the lifecycle layer to record.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from ledger_insights.services.ai.common import router as ai_router
from ledger_insights.services.ai.common.audit import log_ai_run
from ledger_insights.services.ai.common.providers.base import ProviderResult
from ledger_insights.services.errors import InferenceError
from ledger_insights.services.ingestion import InputDocument, RequestPayload, TextPayload, build_payload

from .contracts import FinancialAnalysis
from .prompt import build_request_parts, prompt_text
from .validation import validate_analysis

logger = logging.getLogger(__name__)


@dataclass
class AnalysisServiceResult:
    """Result from ``analyze_payload`` including metadata."""

    analysis: FinancialAnalysis
    provider_result: ProviderResult
    payload_kind: str
    total_latency_ms: float


async def invoke_analysis(
    payload: RequestPayload,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ProviderResult:
    """Send *payload* to the inference service and return the raw result.

    Raises ``InferenceError`` for configuration problems, transport failures,
    non-2xx responses and empty response text.
    """
    config = ai_router.resolve(
        "analysis",
        payload_kind=payload.kind,
        override_provider=override_provider,
        override_model=override_model,
    )
    parts = build_request_parts(payload)

    try:
        result = await config.provider.generate(
            parts,
            model=config.model,
            response_mime_type="application/json",
            thinking_budget=config.thinking_budget,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_seconds=config.timeout_seconds,
        )
    except InferenceError:
        raise
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "Inference service rejected request: status=%s body=%s",
            exc.response.status_code,
            exc.response.text[:300],
        )
        raise InferenceError("service_rejected", f"HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        logger.warning("Inference transport failure: %s", exc)
        raise InferenceError("transport_error", str(exc) or type(exc).__name__) from exc
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Unreadable inference service response: %s", exc)
        raise InferenceError("service_rejected", f"unreadable response: {exc}") from exc

    if not result.raw_text or not result.raw_text.strip():
        raise InferenceError("empty_response", f"{result.provider}:{result.model} returned no text")

    log_ai_run(
        scope="analysis",
        provider_result=result,
        prompt_text=prompt_text(parts),
        extra_meta={
            "payload_kind": payload.kind,
            "truncated": isinstance(payload, TextPayload) and payload.truncated,
            "thinking_budget": config.thinking_budget,
        },
    )
    return result


async def analyze_payload(
    payload: RequestPayload,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> AnalysisServiceResult:
    """Run inference for *payload* and validate the response."""
    t0 = time.monotonic()
    result = await invoke_analysis(
        payload,
        override_provider=override_provider,
        override_model=override_model,
    )
    analysis = validate_analysis(result.raw_text)
    total_ms = (time.monotonic() - t0) * 1000

    return AnalysisServiceResult(
        analysis=analysis,
        provider_result=result,
        payload_kind=payload.kind,
        total_latency_ms=round(total_ms, 2),
    )


async def analyze_document(
    document: InputDocument,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> AnalysisServiceResult:
    """Full pipeline: ingest *document*, then ``analyze_payload``."""
    payload = build_payload(document)
    logger.info(
        "Analyzing %r as %s payload (media_type=%s)",
        document.filename,
        payload.kind,
        document.media_type,
    )
    return await analyze_payload(
        payload,
        override_provider=override_provider,
        override_model=override_model,
    )
