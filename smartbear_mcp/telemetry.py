"""Logging, tracing and error reporting.

This module provides:
- Structured JSON logging with OpenTelemetry trace context
- Tracer provider setup with optional OTLP export
- Error reporters used by the tool error boundary
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from opentelemetry import trace
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

TRACER_NAME = "smartbear_mcp"

_RESERVED_RECORD_KEYS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "getMessage", "taskName", "message",
}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process_id": os.getpid(),
        }

        span = trace.get_current_span()
        if span and span.is_recording():
            span_context = span.get_span_context()
            if span_context.is_valid:
                log_entry["trace_id"] = format(span_context.trace_id, "032x")
                log_entry["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith("otel"):
                log_entry[f"extra_{key}"] = value

        return json.dumps(log_entry, default=str)


def setup_logging(settings) -> logging.Logger:
    """Send JSON logs to stderr (stdout belongs to the stdio transport) and optionally a file."""
    level = logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = JSONFormatter()
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)
    for noisy in ("httpx", "httpcore", "mcp.server.lowlevel"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return root_logger


def setup_tracing(settings) -> TracerProvider:
    """Install a tracer provider; spans are exported only when an OTLP endpoint is set."""
    resource = Resource.create({
        SERVICE_NAME: settings.server_name,
        SERVICE_VERSION: settings.server_version,
        "mcp.transport": settings.transport,
        "deployment.environment": settings.release_stage,
    })
    tracer_provider = TracerProvider(resource=resource)

    if settings.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
        logger.info(f"Exporting traces to {settings.otlp_endpoint}")

    trace.set_tracer_provider(tracer_provider)
    HTTPXClientInstrumentor().instrument()
    LoggingInstrumentor().instrument(set_logging_format=False)
    return tracer_provider


class ErrorReporter(Protocol):
    """Sink for unexpected tool and resource errors."""

    def notify(self, error: BaseException, metadata: Optional[Dict[str, Any]] = None) -> None: ...


class LoggingErrorReporter:
    """Reports errors to the application log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def notify(self, error: BaseException, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log.error(
            f"Unhandled error: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={"error_metadata": metadata or {}},
        )


class OpenTelemetryErrorReporter:
    """Records each error on an error span, then logs it."""

    def __init__(self, tracer: Optional[trace.Tracer] = None):
        self.tracer = tracer or trace.get_tracer(TRACER_NAME)
        self._log_reporter = LoggingErrorReporter()

    def notify(self, error: BaseException, metadata: Optional[Dict[str, Any]] = None) -> None:
        with self.tracer.start_as_current_span("mcp.unhandled_error") as span:
            for key, value in (metadata or {}).items():
                span.set_attribute(f"app.{key}", str(value))
            span.set_attribute("error.unhandled", True)
            span.record_exception(error)
            span.set_status(Status(StatusCode.ERROR, str(error)))
        self._log_reporter.notify(error, metadata)


def setup_telemetry(settings) -> ErrorReporter:
    """Configure logging and, when enabled, tracing; return the error reporter to use."""
    setup_logging(settings)
    if settings.telemetry_enabled:
        setup_tracing(settings)
        return OpenTelemetryErrorReporter()
    return LoggingErrorReporter()
