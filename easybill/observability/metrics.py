# ==== PROMETHEUS METRICS ==== #

"""
Prometheus metrics for monitoring EasyBill.

Request latency, billing and inventory throughput, notification delivery,
gateway rejections, cache efficiency and database session usage.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY
)


# ==== REQUEST METRICS ==== #

http_request_latency_seconds = Histogram(
    "easybill_http_request_latency_seconds",
    "HTTP request latency in seconds",
    ["tenant", "method", "status"]
)

rate_limit_rejections_total = Counter(
    "easybill_rate_limit_rejections_total",
    "Requests rejected by the gateway rate limiter",
)

auth_failures_total = Counter(
    "easybill_auth_failures_total",
    "Authentication failures by reason",
    ["reason"]
)


# ==== BILLING METRICS ==== #

invoices_created_total = Counter(
    "easybill_invoices_created_total",
    "Invoices created by tenant",
    ["tenant"]
)

invoices_completed_total = Counter(
    "easybill_invoices_completed_total",
    "Invoices completed by tenant",
    ["tenant"]
)

invoice_amount_total = Counter(
    "easybill_invoice_amount_total",
    "Sum of completed invoice totals",
    ["tenant"]
)


# ==== INVENTORY METRICS ==== #

stock_movements_total = Counter(
    "easybill_stock_movements_total",
    "Stock movements recorded by tenant and movement type",
    ["tenant", "movement_type"]
)


# ==== REPORT METRICS ==== #

reports_generated_total = Counter(
    "easybill_reports_generated_total",
    "Reports generated by tenant and report type",
    ["tenant", "report_type"]
)


# ==== NOTIFICATION METRICS ==== #

notifications_total = Counter(
    "easybill_notifications_total",
    "Notifications processed by type and final status",
    ["type", "status"]
)


# ==== CACHE AND STORAGE METRICS ==== #

cache_requests_total = Counter(
    "easybill_cache_requests_total",
    "Cache lookups by cache name and result",
    ["cache", "result"]  # result: hit, miss
)

db_connections_active = Gauge(
    "easybill_db_connections_active",
    "Database sessions currently open"
)

app_info = Gauge(
    "easybill_app_info",
    "Application information",
    ["version", "environment", "service_name"]
)


def init_metrics(app) -> None:
    """Initialize metrics collection.

    Args:
        app: FastAPI application instance
    """
    from easybill import __version__
    from easybill.settings import settings

    app_info.labels(
        version=__version__,
        environment=settings.APP_ENV,
        service_name=settings.SERVICE_NAME
    ).set(1)


# Metrics router for Prometheus scraping
metrics_router = APIRouter()


@metrics_router.get("/metrics")
def get_metrics() -> PlainTextResponse:
    """Expose Prometheus metrics for scraping."""
    return PlainTextResponse(
        generate_latest(REGISTRY).decode("utf-8"),
        media_type="text/plain"
    )
