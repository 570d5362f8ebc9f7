"""Crop recommendation and history client."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from opentelemetry import trace

from plantcare.credentials import require_token
from plantcare.errors import ExhaustedStrategies, PlantCareError, TransportError
from plantcare.retry import AttemptFailure, Sleep, retry_attempt, send_request

logger = logging.getLogger(__name__)

CROP_PATHS = (
    "/recommend",
    "/predict",
    "/api/recommend",
    "/api/predict",
    "/analyze",
    "/classify",
)

HISTORY_KEYS = ("history", "data", "predictions")

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def extract_history(body: Any) -> List[Any]:
    """
    Pull the list of history entries out of whatever shape the service sent.

    Accepts a bare list, an object holding a list under one of
    ``HISTORY_KEYS``, or an object whose values are the entries.
    """
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in HISTORY_KEYS:
            if isinstance(body.get(key), list):
                return body[key]
        return [item for item in body.values() if isinstance(item, dict)]
    return []


class CropClient:
    """Async client for the crop service and both history endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        crop_base_url: str,
        disease_history_endpoint: str,
        timeout_ms: int = 30000,
        max_retries: int = 2,
        initial_delay_ms: int = 500,
        sleep: Sleep = asyncio.sleep,
    ):
        self._http = client
        self.crop_base_url = crop_base_url.rstrip("/")
        self.disease_history_endpoint = disease_history_endpoint
        self.timeout_seconds = timeout_ms / 1000
        self.max_retries = max_retries
        self.initial_delay_ms = initial_delay_ms
        self._sleep = sleep
        self.tracer = trace.get_tracer(__name__)

    async def recommend(self, payload: Dict[str, Any], token: Optional[str]) -> Any:
        """
        Submit soil/climate parameters, trying each known route in turn.

        Returns:
            Parsed JSON body of the first 2xx response

        Raises:
            MissingCredential: If no token is available
            ExhaustedStrategies: If every route failed
        """
        headers = {**JSON_HEADERS, "Authorization": f"Bearer {require_token(token)}"}
        last_error: Optional[PlantCareError] = None

        with self.tracer.start_as_current_span("plantcare.crop.recommend") as span:
            for path in CROP_PATHS:
                url = f"{self.crop_base_url}{path}"
                logger.info("Trying crop endpoint %s", url)
                outcome = await self._call("POST", url, headers, json=payload)
                if isinstance(outcome, AttemptFailure):
                    logger.info("Crop endpoint %s failed: %s", path, outcome.error)
                    last_error = outcome.error
                    continue
                span.set_attribute("plantcare.crop.path", path)
                try:
                    return outcome.response.json()
                except ValueError:
                    last_error = TransportError(f"Non-JSON body from {path}")
                    continue

            span.set_attribute("plantcare.crop.exhausted", True)
            logger.error("All crop endpoints failed: %s", last_error)
            raise ExhaustedStrategies(last_error)

    async def crop_history(self, token: Optional[str]) -> List[Any]:
        return await self._history(f"{self.crop_base_url}/history", token)

    async def disease_history(self, token: Optional[str]) -> List[Any]:
        return await self._history(self.disease_history_endpoint, token)

    async def _history(self, url: str, token: Optional[str]) -> List[Any]:
        headers = {**JSON_HEADERS, "Authorization": f"Bearer {require_token(token)}"}
        with self.tracer.start_as_current_span("plantcare.history") as span:
            span.set_attribute("plantcare.history.url", url)
            outcome = await self._call("GET", url, headers)
            if isinstance(outcome, AttemptFailure):
                logger.error("History fetch from %s failed: %s", url, outcome.error)
                raise ExhaustedStrategies(outcome.error)
            try:
                body = outcome.response.json()
            except ValueError:
                logger.warning("Unexpected history body from %s", url)
                return []
            items = extract_history(body)
            span.set_attribute("plantcare.history.count", len(items))
            return items

    async def _call(self, method: str, url: str, headers: Dict[str, str], **kwargs):
        async def attempt():
            return await send_request(
                self._http, method, url, self.timeout_seconds, headers=headers, **kwargs
            )

        return await retry_attempt(
            attempt,
            max_retries=self.max_retries,
            initial_delay_ms=self.initial_delay_ms,
            sleep=self._sleep,
            label=url,
        )
