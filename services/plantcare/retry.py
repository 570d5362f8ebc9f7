"""Per-attempt outcomes and the exponential backoff loop.

A single round trip never raises: transport errors, timeouts and non-2xx
statuses come back as an ``AttemptFailure`` so callers can decide whether to
retry or escalate to the next strategy.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from plantcare.errors import HttpStatusError, PlantCareError, TransportError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class AttemptSuccess:
    response: httpx.Response


@dataclass
class AttemptFailure:
    error: PlantCareError


AttemptOutcome = Union[AttemptSuccess, AttemptFailure]


def log_attributes(
    label: str,
    status_code: Optional[int] = None,
    error: Optional[Exception] = None,
) -> Dict[str, Any]:
    """Structured fields merged into JSON log records."""
    attrs: Dict[str, Any] = {"plantcare.attempt": label}
    if status_code is not None:
        attrs["http.response.status_code"] = status_code
    if error is not None:
        attrs["error.type"] = type(error).__name__
    return attrs


async def _read_text(response: httpx.Response) -> str:
    try:
        await response.aread()
        return response.text
    except httpx.HTTPError:
        return ""


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    timeout_seconds: float,
    **kwargs,
) -> AttemptOutcome:
    """Perform one round trip bounded by ``timeout_seconds`` wall-clock."""
    try:
        response = await asyncio.wait_for(
            client.request(method, url, timeout=timeout_seconds, **kwargs),
            timeout=timeout_seconds,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return AttemptFailure(TransportError(f"Timed out after {timeout_seconds}s"))
    except httpx.HTTPError as e:
        return AttemptFailure(TransportError(str(e) or type(e).__name__))

    if not response.is_success:
        body = await _read_text(response)
        return AttemptFailure(
            HttpStatusError(response.status_code, body, response.reason_phrase)
        )
    return AttemptSuccess(response)


async def retry_attempt(
    attempt: Callable[[], Awaitable[AttemptOutcome]],
    max_retries: int = 2,
    initial_delay_ms: int = 500,
    sleep: Sleep = asyncio.sleep,
    label: str = "",
) -> AttemptOutcome:
    """
    Run ``attempt`` until it succeeds or ``max_retries`` retries are spent.

    Delays between calls start at ``initial_delay_ms`` and double after
    every failure. Returns the last outcome.
    """
    delay_ms = initial_delay_ms
    outcome = await attempt()
    retries = 0
    while isinstance(outcome, AttemptFailure) and retries < max_retries:
        retries += 1
        logger.warning(
            "Retry %d/%d for %s after %dms: %s",
            retries, max_retries, label or "attempt", delay_ms, outcome.error,
            extra={
                "plantcare_attributes": {
                    **log_attributes(
                        label, getattr(outcome.error, "status_code", None), outcome.error
                    ),
                    "plantcare.retry": retries,
                    "plantcare.retry.delay_ms": delay_ms,
                }
            },
        )
        await sleep(delay_ms / 1000)
        delay_ms *= 2
        outcome = await attempt()
    return outcome
