"""
FILE: reallocation_planner/api/observability.py
JSON logs, request correlation and planner metrics.

Route handlers attach planning context (destination, plan status, amounts) with
``annotate_request``/``record_plan_outcome``; the middleware folds it into the
``request.completed`` access log and the ``X-Plan-Status`` response header.
"""

import json
import logging
import os
import time
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, NamedTuple, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
planning_fields_var: ContextVar[Optional[dict[str, Any]]] = ContextVar(
    "planning_fields", default=None
)

PLAN_OUTCOMES = Counter(
    "reallocation_plan_outcomes_total",
    "Reallocation plans by endpoint and outcome status.",
    ["endpoint", "status"],
)

access_logger = logging.getLogger("http.access")


class RequestIds(NamedTuple):
    correlation_id: str
    request_id: str
    trace_id: str


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", "reallocation-planner"),
            "environment": os.getenv("ENVIRONMENT", "local"),
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get() or None,
            "request_id": request_id_var.get() or None,
            "trace_id": trace_id_var.get() or None,
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps({k: v for k, v in payload.items() if v is not None})


def configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)


def annotate_request(**fields: Any) -> None:
    """Attach planning context to the current request's access log; no-op outside one."""
    current = planning_fields_var.get()
    if current is not None:
        current.update(fields)


def record_plan_outcome(endpoint: str, status: str, **fields: Any) -> None:
    PLAN_OUTCOMES.labels(endpoint=endpoint, status=status).inc()
    annotate_request(plan_status=status, **fields)


def _trace_id_from(traceparent: str) -> str:
    parts = traceparent.split("-")
    if len(parts) >= 4 and len(parts[1]) == 32:
        return parts[1]
    return uuid4().hex


def _request_ids(request: Request) -> RequestIds:
    return RequestIds(
        correlation_id=request.headers.get("X-Correlation-Id") or f"corr_{uuid4().hex[:12]}",
        request_id=request.headers.get("X-Request-Id") or f"req_{uuid4().hex[:12]}",
        trace_id=_trace_id_from(request.headers.get("traceparent", "")),
    )


def _apply_response_headers(
    response: Response, ids: RequestIds, planning_fields: dict[str, Any]
) -> None:
    response.headers["X-Correlation-Id"] = ids.correlation_id
    response.headers["X-Request-Id"] = ids.request_id
    response.headers["X-Trace-Id"] = ids.trace_id
    response.headers["traceparent"] = f"00-{ids.trace_id}-0000000000000001-01"
    if "plan_status" in planning_fields:
        response.headers["X-Plan-Status"] = str(planning_fields["plan_status"])


def setup_observability(app: FastAPI) -> None:
    configure_logging()
    Instrumentator().instrument(app).expose(app)

    @app.middleware("http")
    async def _request_observability_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        ids = _request_ids(request)
        planning_fields: dict[str, Any] = {}

        tokens = [
            (correlation_id_var, correlation_id_var.set(ids.correlation_id)),
            (request_id_var, request_id_var.set(ids.request_id)),
            (trace_id_var, trace_id_var.set(ids.trace_id)),
            (planning_fields_var, planning_fields_var.set(planning_fields)),
        ]
        try:
            response: Response = await call_next(request)
        finally:
            access_logger.info(
                "request.completed",
                extra={
                    "extra_fields": {
                        "http_method": request.method,
                        "endpoint": request.url.path,
                        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                        **planning_fields,
                    }
                },
            )
            for var, token in reversed(tokens):
                var.reset(token)

        _apply_response_headers(response, ids, planning_fields)
        return response
