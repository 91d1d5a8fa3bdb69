"""Request tracing and logging helpers."""

from .instrumentation import instrument_stage, timed_stage
from .trace import (
    RequestTrace,
    get_current_trace,
    mark_operation,
    record_result_count,
    reset_current_trace,
    set_current_trace,
)

__all__ = [
    "RequestTrace",
    "get_current_trace",
    "instrument_stage",
    "mark_operation",
    "record_result_count",
    "reset_current_trace",
    "set_current_trace",
    "timed_stage",
]
