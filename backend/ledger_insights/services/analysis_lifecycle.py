"""Lifecycle of the single in-flight analysis request.

States: IDLE -> LOADING -> SUCCESS | FAILED. A new request re-enters LOADING
from any state. While LOADING a cosmetic step index advances on a fixed
interval, capped at the last step; it is never a completion signal.

Every ``begin()`` issues a new request token. Completions carrying an older
token are discarded, so when two uploads race the latest request wins
regardless of which call returns last.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Optional

from ledger_insights.core.config import get_settings
from ledger_insights.services.ai.analysis.contracts import FinancialAnalysis
from ledger_insights.services.errors import AnalysisError
from ledger_insights.utils.alerting import alert_tracker

logger = logging.getLogger(__name__)

LOADING_STEPS: tuple[str, ...] = (
    "Ingesting document data...",
    "OCR: Extracting ledger balances...",
    "Cross-referencing accounts and loans...",
    "Detecting spending anomalies...",
    "Calculating category distributions...",
    "Synthesizing strategic suggestions...",
    "Finalizing visualization frames...",
)
FINAL_STEP = len(LOADING_STEPS) - 1


class LifecycleState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class LifecycleSnapshot:
    state: LifecycleState
    step_index: int
    error: Optional[str]
    request_id: int
    analysis: Optional[FinancialAnalysis]
    superseded: bool = False

    @property
    def loading(self) -> bool:
        return self.state == LifecycleState.LOADING

    @property
    def step_label(self) -> str:
        return LOADING_STEPS[self.step_index]


class AnalysisLifecycle:
    def __init__(
        self,
        *,
        interval_seconds: Optional[float] = None,
        failure_message: Optional[str] = None,
    ) -> None:
        self._interval_seconds = interval_seconds
        self._failure_message = failure_message
        self._state = LifecycleState.IDLE
        self._step_index = 0
        self._error: Optional[str] = None
        self._analysis: Optional[FinancialAnalysis] = None
        self._token = 0
        self._ticker: Optional[asyncio.Task] = None

    @property
    def interval_seconds(self) -> float:
        if self._interval_seconds is not None:
            return self._interval_seconds
        return get_settings().analysis_progress_interval_seconds

    @property
    def failure_message(self) -> str:
        if self._failure_message is not None:
            return self._failure_message
        return get_settings().analysis_failure_message

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def step_index(self) -> int:
        return self._step_index

    def snapshot(self) -> LifecycleSnapshot:
        return LifecycleSnapshot(
            state=self._state,
            step_index=self._step_index,
            error=self._error,
            request_id=self._token,
            analysis=self._analysis,
        )

    def is_current(self, token: int) -> bool:
        return token == self._token

    # --- transitions ---

    def begin(self) -> int:
        """Enter LOADING for a new request and return its token."""
        self._token += 1
        self._state = LifecycleState.LOADING
        self._error = None
        self._step_index = 0
        self._restart_ticker(self._token)
        logger.info("Analysis request %d started", self._token)
        return self._token

    def tick(self, token: int) -> bool:
        """Advance the cosmetic step for *token*. Returns True if it moved."""
        if not self.is_current(token) or self._state != LifecycleState.LOADING:
            return False
        if self._step_index >= FINAL_STEP:
            return False
        self._step_index += 1
        return True

    def succeed(self, token: int, analysis: FinancialAnalysis) -> bool:
        if not self.is_current(token):
            logger.info("Discarding stale result for request %d (current %d)", token, self._token)
            return False
        self._stop_ticker()
        self._analysis = analysis
        self._state = LifecycleState.SUCCESS
        self._step_index = 0
        logger.info("Analysis request %d succeeded", token)
        return True

    def fail(self, token: int, error: BaseException) -> bool:
        if not self.is_current(token):
            logger.info("Discarding stale failure for request %d (current %d): %s", token, self._token, error)
            return False
        self._stop_ticker()
        self._state = LifecycleState.FAILED
        self._step_index = 0
        self._error = self.failure_message

        if isinstance(error, AnalysisError):
            logger.warning(
                "Analysis request %d failed: %s kind=%s detail=%s",
                token,
                type(error).__name__,
                error.kind,
                error.detail,
            )
            alert_tracker.record(error.alert_action, {"kind": error.kind})
        else:
            alert_tracker.record("ANALYSIS_FAILED", {"kind": type(error).__name__})
        return True

    async def run(self, pipeline: Callable[[], Awaitable[FinancialAnalysis]]) -> LifecycleSnapshot:
        """Run one request through the lifecycle and return the resulting snapshot.

        If a newer request began while this one was in flight, the snapshot
        is marked ``superseded``; its state belongs to the newer request.
        """
        token = self.begin()
        try:
            analysis = await pipeline()
        except AnalysisError as exc:
            self.fail(token, exc)
        except Exception as exc:
            logger.exception("Unexpected error in analysis request %d", token)
            self.fail(token, exc)
        else:
            self.succeed(token, analysis)
        snapshot = self.snapshot()
        if not self.is_current(token):
            return replace(snapshot, superseded=True)
        return snapshot

    # --- progress ticker ---

    async def _tick_loop(self, token: int) -> None:
        interval = self.interval_seconds
        while self.is_current(token) and self._state == LifecycleState.LOADING:
            await asyncio.sleep(interval)
            self.tick(token)

    def _restart_ticker(self, token: int) -> None:
        self._stop_ticker()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (sync caller): progress only moves via tick().
            return
        self._ticker = loop.create_task(self._tick_loop(token))

    def _stop_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done():
            self._ticker.cancel()
        self._ticker = None

    def reset(self) -> None:
        """Back to IDLE with no result (tests and shutdown)."""
        self._stop_ticker()
        self._state = LifecycleState.IDLE
        self._step_index = 0
        self._error = None
        self._analysis = None


analysis_lifecycle = AnalysisLifecycle()
