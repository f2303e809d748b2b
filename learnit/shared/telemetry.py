import logging
import sys
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from prometheus_client import REGISTRY, Counter, Histogram

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="system")

tracer = trace.get_tracer("learnit")

C = TypeVar("C")


def _collector(name: str, factory: Callable[[], C], registered_as: str | None = None) -> C:
    """
    Creates a Prometheus collector once per process. Streamlit re-imports
    modules on rerun, so a second registration returns the existing one.
    """
    try:
        return factory()
    except ValueError:
        return cast(C, REGISTRY._names_to_collectors[registered_as or name])


METRIC_NAME = "app_method_duration_seconds"
METHOD_DURATION = _collector(
    METRIC_NAME,
    lambda: Histogram(METRIC_NAME, "Time spent in method", ["component", "method"]),
)

INTENT_REJECTIONS = _collector(
    "session_intent_rejections",
    lambda: Counter(
        "session_intent_rejections",
        "Live session intents rejected by the state machine",
        ["action", "reason"],
    ),
    registered_as="session_intent_rejections_total",
)

SESSION_TRANSITIONS = _collector(
    "session_transitions",
    lambda: Counter(
        "session_transitions",
        "Live session transitions written to the store",
        ["action"],
    ),
    registered_as="session_transitions_total",
)

P = ParamSpec("P")
R = TypeVar("R")


def measure_time(metric_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Times an instance method: one span per call, a histogram sample and a
    log line through the instance's `telemetry` attribute (if it has one).
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            self_obj: Any = args[0] if args else None
            component = self_obj.__class__.__name__ if self_obj else "Unknown"
            method = func.__name__
            telemetry = getattr(self_obj, "telemetry", None)

            with tracer.start_as_current_span(f"{component}.{method}") as span:
                span.set_attribute("learnit.trace_id", Telemetry.get_trace_id())
                start = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    duration_ms = _observe(component, method, start)
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    if telemetry:
                        telemetry.log_error(
                            f"💥 Failed: {metric_name}", e, duration_ms=duration_ms
                        )
                    raise

                duration_ms = _observe(component, method, start)
                if telemetry:
                    telemetry.log_info(f"⏱️ {metric_name}", duration_ms=duration_ms)
                return result

        return wrapper

    return decorator


def _observe(component: str, method: str, start: float) -> float:
    duration = time.perf_counter() - start
    METHOD_DURATION.labels(component=component, method=method).observe(duration)
    return round(duration * 1000, 2)


class Telemetry:
    """
    Per-component facade for logs and counters. Log lines carry the
    correlation id of the current Streamlit run: `[trace-id] event | kwargs`.
    """

    def __init__(self, component_name: str) -> None:
        self.component = component_name
        self.logger: logging.Logger
        self._setup_logger()

    def _setup_logger(self) -> None:
        self.logger = logging.getLogger(self.component)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    # Loggers hold locks and cannot be pickled
    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state.pop("logger", None)
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._setup_logger()

    # --- Correlation ---

    @staticmethod
    def start_trace() -> str:
        c_id = str(uuid.uuid4())[:8]
        correlation_id_ctx.set(c_id)
        return c_id

    @staticmethod
    def get_trace_id() -> str:
        return correlation_id_ctx.get()

    # --- Counters ---

    @staticmethod
    def count_rejection(action: str, reason: str) -> None:
        INTENT_REJECTIONS.labels(action=action, reason=reason).inc()

    @staticmethod
    def count_transition(action: str) -> None:
        SESSION_TRANSITIONS.labels(action=action).inc()

    # --- Logs ---

    def _format(self, event: str, kwargs: dict[str, Any]) -> str:
        return f"[{self.get_trace_id()}] {event} | {kwargs}"

    def log_info(self, event: str, **kwargs: Any) -> None:
        self.logger.info(self._format(event, kwargs))

    def log_warning(self, event: str, **kwargs: Any) -> None:
        self.logger.warning(self._format(f"⚠️ {event}", kwargs))

    def log_error(self, event: str, error: Exception, **kwargs: Any) -> None:
        self.logger.error(
            self._format(f"❌ {event} | Error: {error}", kwargs), exc_info=True
        )
