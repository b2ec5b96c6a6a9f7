"""Document analysis endpoints — upload and lifecycle polling."""

from __future__ import annotations

import logging
import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from ledger_insights.core.config import get_settings
from ledger_insights.schemas.analysis import AnalysisStateResponse
from ledger_insights.services.ai.analysis.contracts import FinancialAnalysis
from ledger_insights.services.ai.analysis.service import analyze_document
from ledger_insights.services.analysis_lifecycle import AnalysisLifecycle, LifecycleState, analysis_lifecycle
from ledger_insights.services.errors import IngestionError
from ledger_insights.services.ingestion import InputDocument, normalize_media_type

logger = logging.getLogger(__name__)

router = APIRouter()


def get_lifecycle() -> AnalysisLifecycle:
    return analysis_lifecycle


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[1].lower()


def resolve_media_type(content_type: Optional[str], filename: Optional[str]) -> str:
    """Return the declared media type for an upload, or raise 415.

    The declared ``content_type`` wins when accepted; otherwise an accepted
    file extension decides (browsers often send ``application/octet-stream``).
    """
    settings = get_settings()
    declared = normalize_media_type(content_type)
    if declared in settings.analysis_accepted_media_types:
        return content_type or declared

    ext = _extension(filename)
    if ext in settings.analysis_accepted_extensions_normalized:
        guessed, _ = mimetypes.guess_type(f"upload{ext}")
        if guessed:
            return guessed
        return "text/plain"

    raise HTTPException(415, f"Unsupported file type {content_type or ext or 'unknown'!r}")


def _response(snapshot_view: AnalysisStateResponse) -> JSONResponse:
    status = 422 if snapshot_view.state == LifecycleState.FAILED else 200
    return JSONResponse(status_code=status, content=snapshot_view.model_dump(by_alias=True, mode="json"))


@router.post(
    "/analysis",
    response_model=AnalysisStateResponse,
    summary="Analyze an uploaded financial document",
    responses={
        422: {"model": AnalysisStateResponse},
        415: {"description": "Unsupported file type"},
        409: {"description": "Superseded by a newer upload"},
    },
)
async def upload_document(
    file: UploadFile = File(...),
    override_provider: Optional[str] = Form(None),
    override_model: Optional[str] = Form(None),
    lifecycle: AnalysisLifecycle = Depends(get_lifecycle),
):
    media_type = resolve_media_type(file.content_type, file.filename)

    async def pipeline() -> FinancialAnalysis:
        try:
            data = await file.read()
        except OSError as exc:
            raise IngestionError("unreadable_stream", str(exc)) from exc
        document = InputDocument(data=data, media_type=media_type, filename=file.filename or "")
        result = await analyze_document(
            document,
            override_provider=override_provider,
            override_model=override_model,
        )
        return result.analysis

    snapshot = await lifecycle.run(pipeline)
    if snapshot.superseded:
        raise HTTPException(409, "Superseded by a newer upload")
    return _response(AnalysisStateResponse.from_snapshot(snapshot))


@router.get(
    "/analysis/state",
    response_model=AnalysisStateResponse,
    summary="Current analysis lifecycle state and progress",
)
async def analysis_state(lifecycle: AnalysisLifecycle = Depends(get_lifecycle)):
    view = AnalysisStateResponse.from_snapshot(lifecycle.snapshot())
    return JSONResponse(content=view.model_dump(by_alias=True, mode="json"))
