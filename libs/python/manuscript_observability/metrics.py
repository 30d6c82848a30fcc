"""Prometheus instruments for the HTTP surface, generation runs and LLM calls."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Optional, Union

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

if TYPE_CHECKING:  # pragma: no cover
    from manuscript_providers.base import MediaResponse, ProviderResponse

NAMESPACE = "manuscript"

HTTP_REQUESTS = Counter(
    "http_requests_total",
    "HTTP requests by route and response status",
    labelnames=("service", "method", "route", "status"),
    namespace=NAMESPACE,
)
HTTP_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Time spent serving HTTP requests",
    labelnames=("service", "method", "route"),
    namespace=NAMESPACE,
)

RUNS = Counter(
    "generation_runs_total",
    "Generation runs by final state",
    labelnames=("service", "state"),
    namespace=NAMESPACE,
)
ACTIVE_RUNS = Gauge(
    "generation_active_runs",
    "Generation runs currently holding a project slot",
    labelnames=("service",),
    namespace=NAMESPACE,
)
CHAPTERS = Counter(
    "chapters_total",
    "Chapter generation outcomes",
    labelnames=("service", "status"),
    namespace=NAMESPACE,
)
CHAPTER_DURATION = Histogram(
    "chapter_duration_seconds",
    "Wall-clock time spent on one chapter, retries included",
    labelnames=("service", "status"),
    buckets=(1, 5, 15, 30, 60, 120, 300, 600, 1200),
    namespace=NAMESPACE,
)
RETRIES = Counter(
    "chapter_retries_total",
    "Transient chapter failures that were retried",
    labelnames=("service",),
    namespace=NAMESPACE,
)

LLM_TOKENS = Counter(
    "llm_tokens_total",
    "Tokens consumed per provider, operation and direction",
    labelnames=("service", "operation", "provider", "token_type"),
    namespace=NAMESPACE,
)
LLM_COST = Counter(
    "llm_cost_usd_total",
    "Estimated LLM spend in USD",
    labelnames=("service", "operation", "provider"),
    namespace=NAMESPACE,
)
LLM_LATENCY = Histogram(
    "llm_latency_seconds",
    "Provider call latency",
    labelnames=("service", "operation", "provider"),
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
    namespace=NAMESPACE,
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count requests and observe latency, labelled by route template."""

    def __init__(self, app: FastAPI, service_name: str) -> None:
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        started = perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            route = request.scope.get("route")
            template = getattr(route, "path", None) or request.url.path
            HTTP_REQUESTS.labels(self.service_name, request.method, template, status).inc()
            HTTP_LATENCY.labels(self.service_name, request.method, template).observe(perf_counter() - started)


def setup_fastapi_metrics(app: FastAPI, service_name: str, endpoint: str = "/metrics") -> None:
    """Install the middleware and expose ``endpoint`` once per app."""

    if getattr(app.state, "metrics_configured", False):
        return
    app.add_middleware(PrometheusMiddleware, service_name=service_name)

    @app.get(endpoint, include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.state.metrics_configured = True


def observe_run_started(*, service_name: str) -> None:
    ACTIVE_RUNS.labels(service_name).inc()


def observe_run_finished(state: str, *, service_name: str) -> None:
    ACTIVE_RUNS.labels(service_name).dec()
    RUNS.labels(service_name, state).inc()


def observe_chapter(status: str, duration_seconds: float, *, service_name: str) -> None:
    CHAPTERS.labels(service_name, status).inc()
    CHAPTER_DURATION.labels(service_name, status).observe(max(duration_seconds, 0.0))


def observe_retry(*, service_name: str) -> None:
    RETRIES.labels(service_name).inc()


def _non_negative(value: object) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return float(value)
    return None


def observe_provider_response(
    *,
    operation: str,
    provider: str,
    service_name: str,
    response: Optional[Union["ProviderResponse", "MediaResponse"]],
) -> None:
    """Record token usage, latency and cost reported on ``response``.

    Media responses carry no token counts, so only their latency is recorded.
    """

    if response is None:
        return

    for token_type in ("prompt", "completion"):
        count = _non_negative(getattr(response, f"{token_type}_tokens", None))
        if count is not None:
            LLM_TOKENS.labels(service_name, operation, provider, token_type).inc(count)

    latency_ms = _non_negative(getattr(response, "latency_ms", None))
    if latency_ms is not None:
        LLM_LATENCY.labels(service_name, operation, provider).observe(latency_ms / 1000)

    cost = _non_negative(getattr(response, "cost_usd", None))
    if cost is not None:
        LLM_COST.labels(service_name, operation, provider).inc(cost)
