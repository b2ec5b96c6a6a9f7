from ledger_insights.utils.alerting import FailureAlertTracker


def _clock(monkeypatch, start=1000.0):
    t = {"now": start}
    monkeypatch.setattr("ledger_insights.utils.alerting.time.monotonic", lambda: t["now"])
    return t


def test_alert_emitted_at_each_threshold_multiple(monkeypatch, caplog):
    _clock(monkeypatch)
    tracker = FailureAlertTracker(window_seconds=60, thresholds={"ANALYSIS_SCHEMA_REJECTED": 3})

    fired = [tracker.record("ANALYSIS_SCHEMA_REJECTED", {"kind": "malformed_json"}) for _ in range(6)]

    assert fired == [False, False, True, False, False, True]
    alerts = [r for r in caplog.records if r.getMessage().startswith("ALERT")]
    assert len(alerts) == 2
    assert "action=ANALYSIS_SCHEMA_REJECTED" in alerts[0].getMessage()


def test_untracked_action_is_ignored(monkeypatch):
    _clock(monkeypatch)
    tracker = FailureAlertTracker(window_seconds=60, thresholds={"ANALYSIS_FAILED": 1})

    assert [tracker.record("SOMETHING_ELSE") for _ in range(3)] == [False, False, False]


def test_events_outside_window_are_pruned(monkeypatch):
    t = _clock(monkeypatch)
    tracker = FailureAlertTracker(window_seconds=60, thresholds={"ANALYSIS_INFERENCE_FAILED": 3})

    assert tracker.record("ANALYSIS_INFERENCE_FAILED") is False
    assert tracker.record("ANALYSIS_INFERENCE_FAILED") is False

    # Both earlier failures fall out of the window before the third arrives.
    t["now"] += 120.0
    assert tracker.record("ANALYSIS_INFERENCE_FAILED") is False
    assert tracker.record("ANALYSIS_INFERENCE_FAILED") is False
    assert tracker.record("ANALYSIS_INFERENCE_FAILED") is True
