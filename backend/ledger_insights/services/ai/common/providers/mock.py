"""Mock provider — deterministic analysis for tests and local runs."""

from __future__ import annotations

import json
import time
from collections.abc import Sequence
from typing import Optional

from .base import BaseProvider, ProviderResult, RequestPart, TextPart

MOCK_ANALYSIS: dict = {
    "summary": {
        "totalSpend": 4820.5,
        "totalBudget": 5500.0,
        "burnRate": "$160.68/day",
        "topCategory": "Housing",
    },
    "charts": {
        "monthlySpend": [
            {"month": "2025-01", "amount": 2310.25},
            {"month": "2025-02", "amount": 2510.25},
        ],
        "categoryDistribution": [
            {"category": "Housing", "percentage": 52.0},
            {"category": "Groceries", "percentage": 18.5},
            {"category": "Dining", "percentage": 14.5},
            {"category": "Subscriptions", "percentage": 6.0},
            {"category": "Other", "percentage": 9.0},
        ],
        "vendorSpend": [
            {"vendor": "Landlord LLC", "amount": 2500.0},
            {"vendor": "Fresh Market", "amount": 892.0},
            {"vendor": "StreamCo", "amount": 45.98},
        ],
        "spendOverTime": [
            {"date": "2025-01-01", "amount": 1250.0},
            {"date": "2025-01-15", "amount": 420.75},
            {"date": "2025-02-01", "amount": 1250.0},
            {"date": "2025-02-14", "amount": 310.5},
        ],
    },
    "insights": [
        "Housing accounts for over half of total spend.",
        "Dining spend rose 22% from January to February.",
        "Two streaming subscriptions bill on the same day each month.",
    ],
    "suggestions": [
        {
            "title": "Consolidate streaming services",
            "description": "Cancel one of the two overlapping streaming plans.",
            "impact": "Low",
            "potentialSavings": 22.99,
        },
        {
            "title": "Cap dining spend",
            "description": "Set a monthly dining budget at the January level.",
            "impact": "Medium",
            "potentialSavings": 150.0,
        },
        {
            "title": "Review automatic renewals",
            "description": "Audit annual renewals before they post.",
            "impact": "Low",
            "potentialSavings": 0,
        },
    ],
}


class MockProvider(BaseProvider):
    name = "mock"

    def __init__(self, raw_text: Optional[str] = None) -> None:
        self._raw_text = raw_text

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
        t0 = time.monotonic()
        text = self._raw_text if self._raw_text is not None else json.dumps(MOCK_ANALYSIS)
        prompt_words = sum(len(p.text.split()) for p in parts if isinstance(p, TextPart))
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=prompt_words,
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
