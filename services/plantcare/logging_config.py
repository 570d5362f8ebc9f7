"""Structured logging configuration with OTEL context propagation.

JSON formatter that injects trace_id and span_id from the current
OpenTelemetry context into every log record, so a failed resolve can be
matched to its per-encoding attempt spans.
"""

import json
import logging
from datetime import datetime, timezone

from opentelemetry import trace


class OTelJSONFormatter(logging.Formatter):
    """JSON formatter with OTel trace correlation."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        span = trace.get_current_span()
        ctx = span.get_span_context() if span else None

        log_dict = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "service.name": self.service_name,
        }

        if ctx and ctx.is_valid:
            log_dict["trace_id"] = format(ctx.trace_id, "032x")
            log_dict["span_id"] = format(ctx.span_id, "016x")

        if hasattr(record, "plantcare_attributes"):
            log_dict.update(record.plantcare_attributes)

        if record.exc_info:
            log_dict["error.type"] = record.exc_info[0].__name__
            log_dict["error.message"] = str(record.exc_info[1])

        return json.dumps(log_dict, default=str)


def configure_logging(service_name: str, level: str = "INFO"):
    """Configure JSON logging with OTel correlation."""
    handler = logging.StreamHandler()
    handler.setFormatter(OTelJSONFormatter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    return root
