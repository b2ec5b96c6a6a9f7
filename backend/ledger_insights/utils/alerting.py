import logging
import time
from collections import deque
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_THRESHOLDS = {
    "ANALYSIS_INGESTION_FAILED": 10,
    "ANALYSIS_INFERENCE_FAILED": 5,
    "ANALYSIS_SCHEMA_REJECTED": 5,
    "ANALYSIS_FAILED": 5,
}


class FailureAlertTracker:
    def __init__(self, window_seconds: int, thresholds: dict[str, int]) -> None:
        self._window_seconds = window_seconds
        self._thresholds = thresholds
        self._buckets: dict[str, deque[float]] = {}
        self._lock = Lock()

    def record(self, action: str, metadata: Optional[dict] = None) -> bool:
        if action not in self._thresholds:
            return False
        limit = self._thresholds[action]
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets.get(action)
            if bucket is None:
                bucket = deque()
                self._buckets[action] = bucket
            cutoff = now - self._window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            bucket.append(now)
            # Alert at the threshold and every multiple of it
            if len(bucket) >= limit and len(bucket) % limit == 0:
                logger.warning(
                    "ALERT action=%s count=%s window_seconds=%s metadata=%s",
                    action,
                    len(bucket),
                    self._window_seconds,
                    metadata or {},
                )
                return True
        return False


alert_tracker = FailureAlertTracker(DEFAULT_WINDOW_SECONDS, DEFAULT_THRESHOLDS)
