from typing import Any, Optional

from pydantic import BaseModel, Field

from ledger_insights.services.analysis_lifecycle import LOADING_STEPS, LifecycleSnapshot, LifecycleState


class AnalysisStateResponse(BaseModel):
    """Lifecycle projection consumed by the rendering layer."""

    state: LifecycleState
    loading: bool
    step_index: int = Field(alias="stepIndex")
    step_label: str = Field(alias="stepLabel")
    step_count: int = Field(default=len(LOADING_STEPS), alias="stepCount")
    error: Optional[str] = None
    request_id: int = Field(alias="requestId")
    analysis: Optional[dict[str, Any]] = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_snapshot(cls, snapshot: LifecycleSnapshot) -> "AnalysisStateResponse":
        analysis = None
        if snapshot.state == LifecycleState.SUCCESS and snapshot.analysis is not None:
            analysis = snapshot.analysis.to_view()
        return cls(
            state=snapshot.state,
            loading=snapshot.loading,
            step_index=snapshot.step_index,
            step_label=snapshot.step_label,
            error=snapshot.error,
            request_id=snapshot.request_id,
            analysis=analysis,
        )
