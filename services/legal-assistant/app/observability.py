import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

# Metrics collectors
REQUEST_COUNT = Counter(
    "legal_assistant_http_requests_total",
    "Total HTTP requests received",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "legal_assistant_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path", "status"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
ASSISTANT_LATENCY = Histogram(
    "legal_assistant_webhook_duration_seconds",
    "Conversational webhook latency in seconds",
    buckets=(0.25, 0.5, 1, 2, 5, 10, 20, 30),
)
ASSISTANT_ERRORS = Counter(
    "legal_assistant_webhook_errors_total",
    "Conversational webhook failures",
    ["reason"],
)
DIRECTIVE_OUTCOMES = Counter(
    "legal_assistant_directive_outcomes_total",
    "Directives handled, by action and terminal state",
    ["action", "outcome"],
)

UNTRACKED_PATHS = {"/metrics"}

logger = structlog.get_logger("legal-assistant")


def path_template(request: Request) -> str:
    route = request.scope.get("route")
    if route and getattr(route, "path", None):
        return route.path  # type: ignore[return-value]
    return request.url.path


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach a request id and timing to every request.
    Tenant and user ids are bound later by the auth dependency.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_contextvars(request_id=request_id, method=request.method)
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception:
            logger.exception("http_request_error")
            raise
        finally:
            _observe_request(request, status, time.perf_counter() - start)
            clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response


def _observe_request(request: Request, status: int, duration: float) -> None:
    path = path_template(request)
    if path in UNTRACKED_PATHS:
        return
    REQUEST_COUNT.labels(request.method, path, str(status)).inc()
    REQUEST_LATENCY.labels(request.method, path, str(status)).observe(duration)
    logger.info(
        "http_request",
        path=path,
        status_code=status,
        duration_ms=round(duration * 1000, 2),
    )


def metrics_endpoint() -> Response:
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_assistant_timing(duration: float) -> None:
    ASSISTANT_LATENCY.observe(duration)


def record_assistant_error(reason: str) -> None:
    ASSISTANT_ERRORS.labels(reason).inc()


def record_directive_outcome(action: str, outcome: str) -> None:
    DIRECTIVE_OUTCOMES.labels(action, outcome).inc()
