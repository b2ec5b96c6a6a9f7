"""Endpoint tests for /api/v1/analysis."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_analysis_dict, make_analysis_json

from ledger_insights.core.config import get_settings
from ledger_insights.services.ai.common.providers.base import ProviderResult

GENERIC = "Analysis failed. Please ensure the file is a clear bank statement."


def _patch_generate(text):
    return patch(
        "ledger_insights.services.ai.common.providers.mock.MockProvider.generate",
        new_callable=AsyncMock,
        return_value=ProviderResult(raw_text=text, model="m", provider="mock"),
    )


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "analysis_state": "idle"}


@pytest.mark.asyncio
async def test_state_starts_idle(client):
    resp = await client.get("/api/v1/analysis/state")
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "idle"
    assert body["loading"] is False
    assert body["stepIndex"] == 0
    assert body["stepCount"] == 7
    assert body["error"] is None
    assert body["analysis"] is None


@pytest.mark.asyncio
async def test_csv_upload_success(client):
    resp = await client.post(
        "/api/v1/analysis",
        files={"file": ("statement.csv", b"date,amount\n2025-01-01,12.5\n", "text/csv")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "success"
    assert body["error"] is None
    analysis = body["analysis"]
    assert set(analysis["charts"]) == {"monthlySpend", "categoryDistribution", "vendorSpend", "spendOverTime"}
    savings = [s["potentialSavings"] for s in analysis["suggestions"]]
    assert savings == sorted(savings, reverse=True)

    state = (await client.get("/api/v1/analysis/state")).json()
    assert state["state"] == "success"
    assert state["requestId"] == body["requestId"]


@pytest.mark.asyncio
async def test_pdf_upload_uses_attachment(client):
    with _patch_generate(make_analysis_json()) as generate:
        resp = await client.post(
            "/api/v1/analysis",
            files={"file": ("statement.pdf", b"%PDF-1.4 body", "application/pdf")},
        )
    assert resp.status_code == 200
    parts = generate.call_args.args[0]
    assert parts[0].mime_type == "application/pdf"


@pytest.mark.asyncio
async def test_octet_stream_resolved_by_extension(client):
    with _patch_generate(make_analysis_json()) as generate:
        resp = await client.post(
            "/api/v1/analysis",
            files={"file": ("statement.pdf", b"%PDF-1.4 body", "application/octet-stream")},
        )
    assert resp.status_code == 200
    assert generate.call_args.args[0][0].mime_type == "application/pdf"


@pytest.mark.asyncio
async def test_unsupported_type_rejected_before_pipeline(client):
    resp = await client.post(
        "/api/v1/analysis",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
    )
    assert resp.status_code == 415
    state = (await client.get("/api/v1/analysis/state")).json()
    assert state["state"] == "idle"


@pytest.mark.asyncio
async def test_empty_inference_response_fails_with_generic_message(client):
    with _patch_generate(""):
        resp = await client.post(
            "/api/v1/analysis",
            files={"file": ("statement.txt", b"rent 1200", "text/plain")},
        )
    assert resp.status_code == 422
    body = resp.json()
    assert body["state"] == "failed"
    assert body["error"] == GENERIC
    assert body["analysis"] is None
    assert body["stepIndex"] == 0


@pytest.mark.asyncio
async def test_category_sum_80_rejected_under_reject_policy(client, monkeypatch):
    monkeypatch.setenv("ANALYSIS_CATEGORY_POLICY", "reject")
    get_settings.cache_clear()
    doc = make_analysis_dict()
    doc["charts"]["categoryDistribution"] = [
        {"category": "Food", "percentage": 50},
        {"category": "Rent", "percentage": 30},
    ]
    with _patch_generate(json.dumps(doc)):
        resp = await client.post(
            "/api/v1/analysis",
            files={"file": ("statement.csv", b"a,b", "text/csv")},
        )
    assert resp.status_code == 422
    assert resp.json()["error"] == GENERIC


@pytest.mark.asyncio
async def test_undecodable_text_fails(client):
    resp = await client.post(
        "/api/v1/analysis",
        files={"file": ("statement.csv", b"\xff\xfe\xfa\xfb", "text/csv")},
    )
    assert resp.status_code == 422
    assert resp.json()["state"] == "failed"


@pytest.mark.asyncio
async def test_state_reports_loading_while_request_in_flight(client, monkeypatch):
    monkeypatch.setenv("ANALYSIS_PROGRESS_INTERVAL_SECONDS", "0.01")
    get_settings.cache_clear()
    gate = asyncio.Event()

    async def slow_generate(self, parts, **kwargs):
        await gate.wait()
        return ProviderResult(raw_text=make_analysis_json(), model="m", provider="mock")

    with patch(
        "ledger_insights.services.ai.common.providers.mock.MockProvider.generate",
        new=slow_generate,
    ):
        upload = asyncio.create_task(
            client.post(
                "/api/v1/analysis",
                files={"file": ("statement.csv", b"a,b", "text/csv")},
            )
        )
        for _ in range(50):
            await asyncio.sleep(0.01)
        state = (await client.get("/api/v1/analysis/state")).json()
        assert state["state"] == "loading"
        assert state["loading"] is True
        assert 0 < state["stepIndex"] <= 6

        gate.set()
        resp = await upload

    assert resp.status_code == 200
    assert resp.json()["state"] == "success"


@pytest.mark.asyncio
async def test_superseded_upload_gets_conflict(client):
    gate = asyncio.Event()
    calls = []

    async def generate(self, parts, **kwargs):
        calls.append(parts)
        if len(calls) == 1:
            await gate.wait()
        return ProviderResult(raw_text=make_analysis_json(), model="m", provider="mock")

    with patch(
        "ledger_insights.services.ai.common.providers.mock.MockProvider.generate",
        new=generate,
    ):
        first = asyncio.create_task(
            client.post("/api/v1/analysis", files={"file": ("old.csv", b"a,b", "text/csv")})
        )
        for _ in range(50):
            if calls:
                break
            await asyncio.sleep(0.01)

        second = await client.post("/api/v1/analysis", files={"file": ("new.csv", b"c,d", "text/csv")})
        gate.set()
        stale = await first

    assert second.status_code == 200
    assert stale.status_code == 409
    state = (await client.get("/api/v1/analysis/state")).json()
    assert state["requestId"] == second.json()["requestId"]
