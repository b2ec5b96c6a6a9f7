import json

import httpx
import pytest
import pytest_asyncio

from ledger_insights.core.config import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    # Never reach the real inference service from tests; individual tests opt
    # back in to "gemini" with a fake transport.
    for name in ("GEMINI_API_KEY", "API_KEY", "AI_ANALYSIS_MODEL", "ENABLE_AI_OVERRIDES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AI_ANALYSIS_PROVIDER", "mock")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_lifecycle():
    from ledger_insights.services.analysis_lifecycle import analysis_lifecycle

    analysis_lifecycle.reset()
    yield
    analysis_lifecycle.reset()


def make_analysis_dict(**overrides) -> dict:
    """A valid analysis document (camelCase, as the service returns it)."""
    doc = {
        "summary": {
            "totalSpend": 3000,
            "totalBudget": 3500.0,
            "burnRate": "$100/day",
            "topCategory": "Rent",
        },
        "charts": {
            "monthlySpend": [{"month": "Jan", "amount": 1400.0}, {"month": "Feb", "amount": 1600.0}],
            "categoryDistribution": [
                {"category": "Rent", "percentage": 60},
                {"category": "Food", "percentage": 40},
            ],
            "vendorSpend": [],
            "spendOverTime": [
                {"date": "2025-01-01", "amount": 1200.0},
                {"date": "2025-02-01", "amount": 1200.0},
            ],
        },
        "insights": ["Rent dominates spend."],
        "suggestions": [
            {"title": "Cook at home", "description": "Fewer takeaways.", "impact": "Medium", "potentialSavings": 120},
            {"title": "Renegotiate rent", "description": "Ask for a renewal discount.", "impact": "High", "potentialSavings": 300},
        ],
    }
    doc.update(overrides)
    return doc


def make_analysis_json(**overrides) -> str:
    return json.dumps(make_analysis_dict(**overrides))


@pytest.fixture
def analysis_dict():
    return make_analysis_dict()


@pytest_asyncio.fixture
async def client():
    """In-process ASGI client."""
    from ledger_insights.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
