import asyncio
import json
import logging

import pytest

from lessonhub.telemetry import (
    RequestTrace,
    instrument_stage,
    mark_operation,
    record_result_count,
    reset_current_trace,
    set_current_trace,
    timed_stage,
)
from lessonhub.telemetry.logging_utils import PERF_LEVEL_NUM, register_perf_level, resolve_log_level


@pytest.fixture
def trace():
    current = RequestTrace(path="/api/businesses")
    token = set_current_trace(current)
    yield current
    reset_current_trace(token)


def test_untracked_stage_is_ignored(trace):
    trace.record_stage_time("embedding", 5.0)
    assert trace.stage_times_ms == {}


def test_header_value_lists_every_tracked_stage(trace):
    mark_operation("search")
    with timed_stage("db"):
        pass
    record_result_count(4)
    trace.finalize()

    payload = json.loads(trace.to_header_value())
    assert payload["operation"] == "search"
    assert payload["result_count"] == 4
    assert payload["db_time_ms"] is not None
    assert payload["refine_time_ms"] is None
    assert payload["aggregate_time_ms"] is None


def test_finalize_defaults_result_count_for_active_trace(trace):
    mark_operation("admin_listing")
    trace.finalize()
    assert trace.result_count == 0


@pytest.mark.asyncio
async def test_concurrent_branches_accumulate_into_one_stage():
    @instrument_stage("db")
    async def query():
        await asyncio.sleep(0.01)

    trace = RequestTrace(path="/api/admin/dashboard")
    token = set_current_trace(trace)
    try:
        with timed_stage("aggregate"):
            await asyncio.gather(query(), query())
    finally:
        reset_current_trace(token)

    assert trace.stage_time("db") > trace.stage_time("aggregate")


def test_instrument_stage_wraps_plain_functions(trace):
    @instrument_stage("sort")
    def sort(values):
        return sorted(values)

    assert sort([3, 1, 2]) == [1, 2, 3]
    assert trace.stage_time("sort") is not None


def test_helpers_are_noops_without_trace():
    mark_operation("search")
    record_result_count(3)
    with timed_stage("db"):
        pass


def test_perf_level_resolution():
    register_perf_level()
    assert logging.getLevelName(PERF_LEVEL_NUM) == "PERF"
    assert resolve_log_level("perf") == PERF_LEVEL_NUM
    assert resolve_log_level("warning") == logging.WARNING
    assert resolve_log_level("nonsense", fallback=logging.ERROR) == logging.ERROR


def test_perf_level_registration_leaves_logger_class_untouched():
    register_perf_level()
    assert not hasattr(logging.Logger, "perf")
