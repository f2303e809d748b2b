import pickle

import pytest
from prometheus_client import REGISTRY

from learnit.shared.telemetry import Telemetry, measure_time


class Timed:
    def __init__(self) -> None:
        self.telemetry = Telemetry("Timed")

    @measure_time("ok")
    def ok(self, value: int) -> int:
        return value * 2

    @measure_time("boom")
    def boom(self) -> None:
        raise RuntimeError("boom")


def duration_count(method: str) -> float:
    value = REGISTRY.get_sample_value(
        "app_method_duration_seconds_count", {"component": "Timed", "method": method}
    )
    return value or 0.0


def test_measure_time_records_success():
    before = duration_count("ok")
    assert Timed().ok(21) == 42
    assert duration_count("ok") == before + 1


def test_measure_time_records_and_reraises_failure():
    before = duration_count("boom")
    with pytest.raises(RuntimeError):
        Timed().boom()
    assert duration_count("boom") == before + 1


def test_counters():
    def sample(name, labels):
        return REGISTRY.get_sample_value(name, labels) or 0.0

    rejected = sample("session_intent_rejections_total", {"action": "JOIN", "reason": "INVALID_INPUT"})
    applied = sample("session_transitions_total", {"action": "JOIN"})

    Telemetry.count_rejection("JOIN", "INVALID_INPUT")
    Telemetry.count_transition("JOIN")

    assert sample(
        "session_intent_rejections_total", {"action": "JOIN", "reason": "INVALID_INPUT"}
    ) == rejected + 1
    assert sample("session_transitions_total", {"action": "JOIN"}) == applied + 1


def test_trace_id_appears_in_log(caplog):
    trace_id = Telemetry.start_trace()
    assert Telemetry.get_trace_id() == trace_id

    t = Telemetry("TraceComponent")
    with caplog.at_level("INFO", logger="TraceComponent"):
        t.log_info("hello", deck_id="D1")

    assert f"[{trace_id}] hello | {{'deck_id': 'D1'}}" in caplog.text


def test_telemetry_is_pickle_safe():
    t = Telemetry("PickledComponent")
    restored = pickle.loads(pickle.dumps(t))

    restored.log_info("After pickle")
    assert restored.component == "PickledComponent"
    assert restored.logger is not None
