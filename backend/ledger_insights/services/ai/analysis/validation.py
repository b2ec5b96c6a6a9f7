"""Response validation and normalization for the analysis scope.

The inference output is untrusted. ``validate_analysis`` either returns a
complete ``FinancialAnalysis`` or raises ``SchemaError``; it never returns a
partially populated object.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from ledger_insights.core.config import get_settings
from ledger_insights.services.ai.common.json_tools import decode_json_document
from ledger_insights.services.errors import SchemaError

from .contracts import CategoryShare, FinancialAnalysis

logger = logging.getLogger(__name__)

CATEGORY_TARGET = 100.0


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _diagnostics(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{path, message, expected, actual}``."""
    issues: list[dict[str, Any]] = []
    for err in exc.errors(include_url=False):
        path = ".".join(str(p) for p in err.get("loc", ()))
        issues.append(
            {
                "path": path or "$",
                "message": err.get("msg", ""),
                "expected": err.get("type", ""),
                "actual": "missing" if err.get("type") == "missing" else _describe(err.get("input")),
            }
        )
    return issues


def _rescale(analysis: FinancialAnalysis, total: float) -> FinancialAnalysis:
    shares = tuple(
        CategoryShare(
            category=c.category,
            percentage=round(c.percentage * CATEGORY_TARGET / total, 2),
        )
        for c in analysis.charts.category_distribution
    )
    charts = analysis.charts.model_copy(update={"category_distribution": shares})
    return analysis.model_copy(update={"charts": charts})


def enforce_category_distribution(
    analysis: FinancialAnalysis,
    *,
    tolerance: float,
    policy: str,
) -> FinancialAnalysis:
    """Apply the sum-to-100 invariant to ``categoryDistribution``.

    Within *tolerance* the analysis passes unchanged. Outside it, ``reject``
    raises and ``rescale`` proportionally rescales with a warning. An empty or
    all-zero distribution cannot be rescaled and is always rejected.
    """
    total = analysis.charts.category_total
    if abs(total - CATEGORY_TARGET) <= tolerance:
        return analysis

    detail = f"categoryDistribution sums to {total:g}, expected {CATEGORY_TARGET:g} ± {tolerance:g}"
    issue = {
        "path": "charts.categoryDistribution",
        "message": detail,
        "expected": f"sum {CATEGORY_TARGET:g} ± {tolerance:g}",
        "actual": f"sum {total:g}",
    }
    if policy == "rescale" and total > 0:
        logger.warning("Rescaling category distribution: %s", detail)
        return _rescale(analysis, total)
    raise SchemaError("category_sum_mismatch", detail, errors=[issue])


def check_chronology(analysis: FinancialAnalysis) -> bool:
    """Return False (and warn) if ISO ``spendOverTime`` dates go backwards.

    Points are never re-sorted. Non-ISO date labels are not checked.
    """
    parsed: list[date] = []
    for point in analysis.charts.spend_over_time:
        try:
            parsed.append(date.fromisoformat(point.date[:10]))
        except ValueError:
            return True
    for i in range(1, len(parsed)):
        if parsed[i] < parsed[i - 1]:
            logger.warning(
                "spendOverTime is not chronological at index %d (%s after %s)",
                i,
                parsed[i].isoformat(),
                parsed[i - 1].isoformat(),
            )
            return False
    return True


def validate_analysis(
    raw_text: str,
    *,
    tolerance: Optional[float] = None,
    policy: Optional[str] = None,
) -> FinancialAnalysis:
    """Parse and validate *raw_text* into a ``FinancialAnalysis``.

    Raises ``SchemaError`` with kind ``malformed_json``, ``invalid_schema``
    or ``category_sum_mismatch``.
    """
    settings = get_settings()
    if tolerance is None:
        tolerance = settings.analysis_category_tolerance
    if policy is None:
        policy = settings.analysis_category_policy

    try:
        document = decode_json_document(raw_text)
    except ValueError as exc:
        raise SchemaError("malformed_json", str(exc)) from exc
    except RecursionError as exc:
        raise SchemaError("malformed_json", "document is nested too deeply") from exc

    if not isinstance(document, dict):
        raise SchemaError(
            "invalid_schema",
            f"expected a JSON object, got {_describe(document)}",
            errors=[{"path": "$", "message": "not an object", "expected": "object", "actual": _describe(document)}],
        )

    try:
        analysis = FinancialAnalysis.model_validate(document)
    except ValidationError as exc:
        issues = _diagnostics(exc)
        summary = "; ".join(f"{i['path']}: {i['message']}" for i in issues[:5])
        raise SchemaError("invalid_schema", summary, errors=issues) from exc

    analysis = enforce_category_distribution(analysis, tolerance=tolerance, policy=policy)
    check_chronology(analysis)
    return analysis
