# ==== OPENTELEMETRY TRACING CONFIGURATION ==== #

"""
OpenTelemetry tracing configuration for EasyBill.

Sets up OTLP export and automatic instrumentation for SQLAlchemy, Redis and
httpx. FastAPI itself is instrumented in ``easybill.main``.
"""

from typing import Any, Dict

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from easybill.settings import settings


# ==== TRACING INITIALIZATION ==== #


def init_tracing(service_name: str) -> None:
    """
    Initialize OpenTelemetry tracing with an OTLP exporter.

    Does nothing when no exporter endpoint is configured, so local runs and
    tests work without an APM backend.

    Args:
        service_name (str): Name of the service for tracing identification
    """
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT

    # ⚠️ Allow local runs without SaaS APM
    if not endpoint:
        return

    # --► RESOURCE ATTRIBUTES CONFIGURATION
    resource_attrs = _parse_key_values(settings.OTEL_RESOURCE_ATTRIBUTES)
    resource_attrs["service.name"] = settings.OTEL_SERVICE_NAME or service_name

    # --► TRACER PROVIDER SETUP
    provider = TracerProvider(resource=Resource.create(resource_attrs))
    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        headers=_parse_key_values(settings.OTEL_EXPORTER_OTLP_HEADERS)
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    _setup_auto_instrumentation()


def _parse_key_values(raw: str | None) -> Dict[str, Any]:
    """Parse comma-separated ``key=value`` pairs used by OTEL env settings.

    Args:
        raw: Comma-separated key=value pairs

    Returns:
        Dictionary of parsed pairs, empty when ``raw`` is blank
    """
    parsed: Dict[str, Any] = {}
    if not raw:
        return parsed

    for part in filter(None, map(str.strip, raw.split(","))):
        if "=" in part:
            key, value = part.split("=", 1)
            parsed[key.strip()] = value.strip()

    return parsed


def _setup_auto_instrumentation() -> None:
    try:
        SQLAlchemyInstrumentor().instrument()
        RedisInstrumentor().instrument()
        HTTPXClientInstrumentor().instrument()
    except Exception as e:
        # Don't fail startup if instrumentation fails
        logger.warning(f"Failed to setup auto-instrumentation: {e}")


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for the given module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Tracer instance
    """
    return trace.get_tracer(name)
