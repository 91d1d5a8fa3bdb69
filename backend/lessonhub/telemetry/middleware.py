from __future__ import annotations

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .logging_utils import PERF_LEVEL_NUM, PERF_LOGGER_NAME
from .trace import TRACKED_STAGES, RequestTrace, reset_current_trace, set_current_trace

perf_logger = logging.getLogger(PERF_LOGGER_NAME)


class TelemetryMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, enabled: bool = True) -> None:
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace = RequestTrace(path=request.url.path, method=request.method)
        request.state.request_id = str(trace.request_id)
        token = set_current_trace(trace)

        response: Response | None = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            trace.finalize()
            if response is not None and request.url.path.startswith("/api/"):
                response.headers["X-Request-Performance"] = trace.to_header_value()
                response.headers["X-Request-Id"] = str(trace.request_id)

            if self.enabled:
                self._log_trace(trace, status_code)
            reset_current_trace(token)

    def _log_trace(self, trace: RequestTrace, status_code: int) -> None:
        if not trace.active:
            return

        stage_fields = " ".join(f"{stage}_ms={trace.stage_time(stage)}" for stage in TRACKED_STAGES)
        perf_logger.log(
            PERF_LEVEL_NUM,
            "request_trace request_id=%s status=%s operation=%s %s total_ms=%.3f results=%s",
            trace.request_id,
            status_code,
            trace.operation,
            stage_fields,
            trace.total_time_ms or 0.0,
            trace.result_count,
        )
