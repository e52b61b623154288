"""OpenTelemetry configuration helpers."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from folio.config import AppSettings

logger = logging.getLogger(__name__)

_TELEMETRY_INITIALISED = False
_METRIC_EXPORT_INTERVAL_MS = 10000

_meter = metrics.get_meter("folio.snapshots")
cascade_runs = _meter.create_counter(
    "folio.cascade.runs",
    unit="1",
    description="Completed snapshot cascades",
)
snapshot_writes = _meter.create_counter(
    "folio.cascade.snapshot_writes",
    unit="1",
    description="Snapshots persisted by cascades",
)


def record_cascade(written: int, unchanged: int, warnings: int) -> None:
    """Count one finished cascade and its writes."""

    cascade_runs.add(1, {"has_warnings": warnings > 0})
    if written:
        snapshot_writes.add(written, {"outcome": "written"})
    if unchanged:
        snapshot_writes.add(unchanged, {"outcome": "unchanged"})


def _build_resource(settings: AppSettings) -> Resource:
    attributes: dict[str, Any] = {
        ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
        ResourceAttributes.SERVICE_NAMESPACE: "folio",
    }
    return Resource.create(attributes)


def _exporter_options(settings: AppSettings) -> dict[str, Any]:
    options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        options["endpoint"] = settings.telemetry_otlp_endpoint
    return options


def _install_providers(settings: AppSettings) -> tuple[TracerProvider, MeterProvider]:
    """Register OTLP-backed trace, metric and log providers globally."""

    resource = _build_resource(settings)
    options = _exporter_options(settings)

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**options)))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(**options), export_interval_millis=_METRIC_EXPORT_INTERVAL_MS
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**options)))
    set_logger_provider(logger_provider)
    LoggingInstrumentor().instrument(set_logging_format=False)

    return tracer_provider, meter_provider


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> None:
    """Configure OTLP exporters and instrument FastAPI plus SQLAlchemy."""

    global _TELEMETRY_INITIALISED  # noqa: PLW0603 - single initialisation guard

    if _TELEMETRY_INITIALISED:
        return

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return

    tracer_provider, meter_provider = _install_providers(settings)

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
    )

    if engine is not None:
        SQLAlchemyInstrumentor().instrument(
            engine=engine.sync_engine,
            tracer_provider=tracer_provider,
        )

    _TELEMETRY_INITIALISED = True
    logger.info("Telemetry initialised and instrumentation enabled")


__all__ = ["setup_telemetry", "record_cascade"]
