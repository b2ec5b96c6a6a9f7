"""Prompt assembly for the financial analysis scope.

``ANALYSIS_PROMPT`` is fixed configuration. Only the text payload is
interpolated into the request; the template itself never varies per request.
"""

from __future__ import annotations

from ledger_insights.services.ai.common.providers.base import InlineDataPart, RequestPart, TextPart
from ledger_insights.services.ingestion import BinaryPayload, RequestPayload, TextPayload

ANALYSIS_SCHEMA = """{
  "summary": { "totalSpend": number, "totalBudget": number, "burnRate": string, "topCategory": string },
  "charts": {
    "monthlySpend": [{ "month": string, "amount": number }],
    "categoryDistribution": [{ "category": string, "percentage": number }],
    "vendorSpend": [{ "vendor": string, "amount": number }],
    "spendOverTime": [{ "date": string, "amount": number }]
  },
  "insights": [string],
  "suggestions": [{ "title": string, "description": string, "impact": "High" | "Medium" | "Low", "potentialSavings": number }]
}"""

ANALYSIS_PROMPT = f"""Analyze this financial statement. Extract all transaction data and provide deep strategic insights.

RULES:
- 'categoryDistribution' values must be valid percentages (0-100) representing the share of total spend for that category. They MUST sum to 100.
- 'spendOverTime' must be in chronological order, with ISO dates (YYYY-MM-DD).
- 'vendorSpend' may be an empty list when no vendor can be identified.
- All amounts are plain numbers in the statement currency, without symbols or thousands separators.
- 'insights' must surface recurring charges, anomalous transactions and notable changes between periods.
- 'suggestions' must target the largest spend concentrations first.
- 'impact' reflects return on effort relative to spend magnitude: "High" for changes to the largest categories or vendors, "Low" for small or one-off items.
- 'potentialSavings' is the estimated saving per month as a non-negative number; use 0 when no saving can be estimated.

Return ONLY a JSON object matching this schema:
{ANALYSIS_SCHEMA}"""


def build_request_parts(payload: RequestPayload) -> list[RequestPart]:
    """Return the ordered request parts for *payload*.

    * ``BinaryPayload`` -> [attachment, instruction]
    * ``TextPayload``   -> [instruction + data]
    """
    if isinstance(payload, BinaryPayload):
        return [
            InlineDataPart(data=payload.data, mime_type=payload.mime_type),
            TextPart(text=ANALYSIS_PROMPT),
        ]
    if isinstance(payload, TextPayload):
        return [TextPart(text=f"{ANALYSIS_PROMPT}\n\nData:\n{payload.content}")]
    raise TypeError(f"Unsupported payload: {type(payload).__name__}")


def prompt_text(parts: list[RequestPart]) -> str:
    """Concatenated text parts, used for audit hashing."""
    return "\n".join(p.text for p in parts if isinstance(p, TextPart))
