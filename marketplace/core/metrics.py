"""
Prometheus metrics configuration.
"""

import time
from typing import Any, Callable, TypeVar, cast

from fastapi import FastAPI, Request, Response
from loguru import logger
from prometheus_client import Counter, Gauge, Histogram, Summary
from prometheus_client.openmetrics.exposition import (
    CONTENT_TYPE_LATEST,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

F = TypeVar("F", bound=Callable[..., Any])

# Define metrics
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests count", ["method", "endpoint", "status_code"])

REQUEST_TIME = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, float("inf")),
)

REQUEST_IN_PROGRESS = Gauge("http_requests_in_progress", "Number of HTTP requests in progress", ["method", "endpoint"])

EXCEPTION_COUNT = Counter(
    "http_exceptions_total", "Total HTTP exceptions count", ["method", "endpoint", "exception_type"]
)

DB_QUERY_TIME = Summary("db_query_duration_seconds", "Database query duration in seconds", ["query_type", "table"])

SCHEMA_CACHE_EVENTS = Counter(
    "catalog_schema_cache_events_total", "Resolved schema cache events", ["event"]
)

STORE_READ_RETRIES = Counter("catalog_store_read_retries_total", "Read operations retried after a store failure")

CATALOG_ITEM_EVENTS = Counter("catalog_item_events_total", "Catalog item lifecycle events", ["event_type"])

CATALOG_SEARCH_TIME = Histogram(
    "catalog_search_duration_seconds",
    "Catalog search duration in seconds",
    ["scoped"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, float("inf")),
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware that collects Prometheus metrics for HTTP requests.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """
        Process a request and collect metrics.
        """
        method = request.method
        path = normalize_path(request.url.path)

        if path == "/metrics":
            response = await call_next(request)
            return cast(Response, response)

        start_time = time.time()
        REQUEST_IN_PROGRESS.labels(method=method, endpoint=path).inc()

        try:
            response = await call_next(request)
            response_typed = cast(Response, response)

            status_code = response_typed.status_code
            REQUEST_COUNT.labels(method=method, endpoint=path, status_code=status_code).inc()
            REQUEST_TIME.labels(method=method, endpoint=path).observe(time.time() - start_time)

            return response_typed
        except Exception as e:
            EXCEPTION_COUNT.labels(method=method, endpoint=path, exception_type=type(e).__name__).inc()
            logger.exception(f"Request failed: {str(e)}")
            raise
        finally:
            REQUEST_IN_PROGRESS.labels(method=method, endpoint=path).dec()


def normalize_path(path: str) -> str:
    """
    Replace numeric path segments with ``{id}`` to keep label cardinality low.
    """
    parts = path.split("/")
    return "/".join("{id}" if part.isdigit() else part for part in parts)


async def metrics_endpoint(request: Request) -> Response:
    """
    Endpoint for exposing Prometheus metrics.
    """
    from prometheus_client import REGISTRY

    data = generate_latest(REGISTRY)
    return Response(content=data, headers={"Content-Type": CONTENT_TYPE_LATEST})


def setup_metrics(app: FastAPI) -> None:
    """
    Set up Prometheus metrics and middleware for FastAPI application.
    """
    app.add_middleware(PrometheusMiddleware)
    app.add_route("/metrics", metrics_endpoint)

    logger.info("Prometheus metrics configured")


def record_schema_cache_event(event: str) -> None:
    """Record a schema cache hit, miss or invalidation."""
    SCHEMA_CACHE_EVENTS.labels(event=event).inc()


def record_store_read_retry() -> None:
    STORE_READ_RETRIES.inc()


def record_catalog_item_event(event_type: str) -> None:
    """Record a catalog item lifecycle event."""
    CATALOG_ITEM_EVENTS.labels(event_type=event_type).inc()


def observe_catalog_search(duration: float, scoped: bool) -> None:
    CATALOG_SEARCH_TIME.labels(scoped="category" if scoped else "all").observe(duration)


def time_db_query(query_type: str, table: str) -> Callable[[F], F]:
    """Decorator to time database queries."""

    def decorator(func: F) -> F:
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                DB_QUERY_TIME.labels(query_type=query_type, table=table).observe(time.time() - start_time)

        wrapper.__name__ = getattr(func, "__name__", "wrapper")
        wrapper.__doc__ = func.__doc__
        return cast(F, wrapper)

    return decorator
