"""Multi-strategy resolver for disease image predictions."""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from plantcare.encodings import AttemptEncoding, candidate_encodings, data_url_once
from plantcare.errors import ExhaustedStrategies, MissingCredential, PlantCareError
from plantcare.models import (
    MultipartPayload,
    PredictionRequest,
    PredictionResult,
    ResolverOptions,
)
from plantcare.normalize import normalize, parse_body
from plantcare.retry import (
    AttemptFailure,
    AttemptOutcome,
    Sleep,
    log_attributes,
    retry_attempt,
    send_request,
)
from plantcare.spans import (
    set_attempt_attributes,
    set_resolve_attributes,
    set_result_attributes,
    tracer,
)

logger = logging.getLogger(__name__)

PREBUILT_LABEL = "multipart:prebuilt"

# (label, builder of httpx keyword arguments) for one strategy step
Plan = Tuple[str, Callable[[], Dict[str, Any]]]


class Resolver:
    """
    Submits an image to a prediction endpoint, probing request encodings.

    Encodings are tried strictly in order and the first 2xx response wins.
    Each encoding gets its own retry budget with exponential backoff.
    ``resolve`` never raises; failures come back as ``success=False``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
        encodings: Optional[List[AttemptEncoding]] = None,
    ):
        self._client = client
        self._sleep = sleep
        self.encodings = encodings if encodings is not None else candidate_encodings()

    async def resolve(
        self,
        request: Optional[PredictionRequest],
        endpoint: str,
        options: Optional[ResolverOptions] = None,
        prebuilt: Optional[MultipartPayload] = None,
    ) -> PredictionResult:
        options = options or ResolverOptions()

        if not options.auth_token:
            error = MissingCredential()
            logger.error("Disease analysis failed: %s", error)
            return PredictionResult.failure(str(error))

        with tracer.start_as_current_span("plantcare.resolve") as span:
            try:
                set_resolve_attributes(
                    span,
                    endpoint=endpoint,
                    max_retries=options.max_retries_per_attempt,
                    timeout_ms=options.timeout_ms,
                    prebuilt=prebuilt is not None,
                    image_bytes=len(request.content) if request else 0,
                )
                plans = self._plans(request, prebuilt)
                if not plans:
                    result = PredictionResult.failure("No valid input for disease analysis")
                elif self._client is not None:
                    result = await self._run(self._client, plans, endpoint, options)
                else:
                    async with httpx.AsyncClient() as client:
                        result = await self._run(client, plans, endpoint, options)
            except Exception as e:
                logger.exception("Disease analysis aborted")
                result = PredictionResult.failure(str(e) or type(e).__name__)

            set_result_attributes(
                span,
                success=result.success,
                encoding=result.encoding,
                confidence=result.confidence,
            )
            return result

    def _plans(
        self,
        request: Optional[PredictionRequest],
        prebuilt: Optional[MultipartPayload],
    ) -> List[Plan]:
        """Labels and body builders; no body is built until its turn."""
        plans: List[Plan] = []
        if prebuilt is not None:
            plans.append((PREBUILT_LABEL, prebuilt.to_httpx))
        if request is not None:
            encode = data_url_once(request)
            plans.extend(
                (enc.label, functools.partial(enc.build, request, encode))
                for enc in self.encodings
            )
        return plans

    async def _run(
        self,
        client: httpx.AsyncClient,
        plans: List[Plan],
        endpoint: str,
        options: ResolverOptions,
    ) -> PredictionResult:
        auth = {"Authorization": f"Bearer {options.auth_token}"}
        last_error: Optional[PlantCareError] = None

        for label, build in plans:
            kwargs = build()
            headers = {**kwargs.get("headers", {}), **auth}
            call_kwargs = {**kwargs, "headers": headers}

            async def attempt() -> AttemptOutcome:
                return await send_request(
                    client, "POST", endpoint, options.timeout_seconds, **call_kwargs
                )

            with tracer.start_as_current_span("plantcare.attempt") as span:
                outcome = await retry_attempt(
                    attempt,
                    max_retries=options.max_retries_per_attempt,
                    initial_delay_ms=options.initial_delay_ms,
                    sleep=self._sleep,
                    label=label,
                )
                if isinstance(outcome, AttemptFailure):
                    status_code = getattr(outcome.error, "status_code", None)
                    set_attempt_attributes(
                        span, label, False, error=outcome.error, status_code=status_code
                    )
                    last_error = outcome.error
                    logger.info(
                        "Encoding %s failed: %s", label, outcome.error,
                        extra={"plantcare_attributes": log_attributes(label, status_code, outcome.error)},
                    )
                    continue

                status_code = outcome.response.status_code
                set_attempt_attributes(span, label, True, status_code=status_code)

            parsed = parse_body(outcome.response)
            if parsed.degraded:
                logger.warning("Non-JSON body from %s, keeping raw text", label)
            logger.info(
                "Disease analysis succeeded with %s", label,
                extra={"plantcare_attributes": log_attributes(label, status_code)},
            )
            return normalize(parsed, encoding=label)

        error = ExhaustedStrategies(last_error)
        logger.error(
            "Disease analysis failed: %s", error,
            extra={"plantcare_attributes": {"plantcare.encodings.tried": len(plans)}},
        )
        return PredictionResult.failure(str(error))
