"""Failure taxonomy for the document analysis pipeline.

Every failure carries a short snake_case ``kind`` used for logging and
alerting. None of the kinds are shown to end users; the HTTP layer collapses
them into one generic message.
"""

from __future__ import annotations

from typing import Any


class AnalysisError(Exception):
    """Base class for terminal failures of one analysis request."""

    alert_action = "ANALYSIS_FAILED"

    def __init__(self, kind: str, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else kind)


class IngestionError(AnalysisError):
    """The uploaded document could not be turned into a request payload."""

    alert_action = "ANALYSIS_INGESTION_FAILED"


class InferenceError(AnalysisError):
    """The inference service call failed or returned no usable text."""

    alert_action = "ANALYSIS_INFERENCE_FAILED"


class SchemaError(AnalysisError):
    """The inference output did not satisfy the analysis schema."""

    alert_action = "ANALYSIS_SCHEMA_REJECTED"

    def __init__(
        self,
        kind: str,
        detail: str = "",
        *,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(kind, detail)
        self.errors = errors or []
