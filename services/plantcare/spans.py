"""Span attribute helpers for resolver and client calls.

Sets the plantcare.* attributes on resolve and per-attempt spans so a
single trace shows which encodings were probed and how each ended.
"""

from typing import Optional

from opentelemetry import trace

tracer = trace.get_tracer("plantcare")


def set_resolve_attributes(
    span: trace.Span,
    endpoint: str,
    max_retries: int,
    timeout_ms: int,
    prebuilt: bool = False,
    image_bytes: int = 0,
):
    """Set request attributes on the resolve span."""
    span.set_attribute("plantcare.endpoint", endpoint)
    span.set_attribute("plantcare.retries.max", max_retries)
    span.set_attribute("plantcare.timeout.ms", timeout_ms)
    span.set_attribute("plantcare.prebuilt", prebuilt)
    span.set_attribute("plantcare.image.bytes", image_bytes)


def set_attempt_attributes(
    span: trace.Span,
    encoding: str,
    success: bool,
    error: Optional[Exception] = None,
    status_code: Optional[int] = None,
):
    """Set outcome attributes on a per-encoding attempt span."""
    span.set_attribute("plantcare.encoding", encoding)
    span.set_attribute("plantcare.attempt.success", success)
    if status_code is not None:
        span.set_attribute("http.response.status_code", status_code)
    if error is not None:
        span.set_attribute("error.type", type(error).__name__)
        span.set_attribute("error.message", str(error)[:200])


def set_result_attributes(
    span: trace.Span,
    success: bool,
    encoding: Optional[str] = None,
    confidence: float = 0.0,
):
    """Record the final outcome on the resolve span."""
    span.set_attribute("plantcare.success", success)
    span.set_attribute("plantcare.confidence", confidence)
    if encoding:
        span.set_attribute("plantcare.encoding.used", encoding)
