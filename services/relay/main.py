"""Relay API - forwards browser requests to the hosted plant model spaces."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import Body, FastAPI, File, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plantcare.config import Settings
from plantcare.credentials import resolve_token
from plantcare.crop_client import CropClient
from plantcare.errors import ExhaustedStrategies, MissingCredential
from plantcare.models import PredictionRequest, PredictionResult
from plantcare.resolver import Resolver
from plantcare.telemetry import setup_telemetry

SERVICE_NAME = "plantcare-relay"


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay app; ``transport`` replaces the network in tests."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the shared HTTP client and the clients built on it."""
        app.state.http = httpx.AsyncClient(
            timeout=settings.timeout_ms / 1000, transport=transport
        )
        app.state.resolver = Resolver(client=app.state.http)
        app.state.crop = CropClient(
            app.state.http,
            crop_base_url=settings.crop_base_url,
            disease_history_endpoint=settings.disease_history_endpoint,
            timeout_ms=settings.timeout_ms,
            max_retries=settings.max_retries,
            initial_delay_ms=settings.initial_delay_ms,
        )

        yield

        await app.state.http.aclose()

    app = FastAPI(
        title="Plant Care Relay",
        description="Relay for disease detection and crop recommendation",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
    )

    tracer, meter = setup_telemetry(app, SERVICE_NAME, log_level=settings.log_level)

    request_counter = meter.create_counter("plantcare_relay_requests_total")
    latency_histogram = meter.create_histogram("plantcare_relay_request_duration_ms")

    def _record(route: str, status: str, start_time: float):
        request_counter.add(1, {"route": route, "status": status})
        latency_histogram.record((time.time() - start_time) * 1000, {"route": route})

    def _token(authorization: Optional[str]) -> Optional[str]:
        return resolve_token(authorization, settings.auth_token)

    # --------------- Health endpoints ---------------
    @app.get("/startup")
    async def startup():
        """Startup probe - returns 200 once app is alive."""
        return {"status": "started", "service": SERVICE_NAME}

    @app.get("/health")
    async def health():
        """Liveness probe - returns 200 if event loop is responsive."""
        return {"status": "healthy", "service": SERVICE_NAME}

    @app.get("/ready")
    async def ready():
        """Readiness probe - ready once the shared HTTP client exists."""
        if getattr(app.state, "http", None) is None:
            raise HTTPException(status_code=503, detail="Service not ready")
        return {"status": "ready", "service": SERVICE_NAME}

    # --------------- Disease detection ---------------
    @app.post("/api/disease", response_model=PredictionResult)
    async def detect_disease(
        image: Optional[UploadFile] = File(None),
        authorization: Optional[str] = Header(None),
        x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-ID"),
    ):
        """
        Classify a leaf image through the disease model space.

        Form fields:
            image: The uploaded image file

        Returns:
            PredictionResult; 401 without a token, 400 without a file,
            502 when every request encoding failed
        """
        start_time = time.time()
        correlation_id = x_correlation_id or str(uuid.uuid4())
        headers = {"X-Correlation-ID": correlation_id}

        if image is None:
            _record("disease", "bad_request", start_time)
            result = PredictionResult.failure("No image file received")
            return JSONResponse(status_code=400, content=result.model_dump(), headers=headers)

        token = _token(authorization)
        request = PredictionRequest(
            content=await image.read(),
            filename=image.filename or "",
            media_type=image.content_type or "",
        )

        with tracer.start_as_current_span("relay.disease") as span:
            span.set_attribute("correlation_id", correlation_id)
            result = await app.state.resolver.resolve(
                request,
                settings.disease_endpoint,
                settings.resolver_options(auth_token=token),
            )

        if result.success:
            status_code, status = 200, "success"
        elif token is None:
            status_code, status = 401, "unauthorized"
        else:
            status_code, status = 502, "error"
        _record("disease", status, start_time)
        return JSONResponse(status_code=status_code, content=result.model_dump(), headers=headers)

    @app.get("/api/disease/history")
    async def disease_history(authorization: Optional[str] = Header(None)):
        """Past disease predictions, as a plain list."""
        start_time = time.time()
        try:
            items = await app.state.crop.disease_history(_token(authorization))
        except MissingCredential as e:
            _record("disease_history", "unauthorized", start_time)
            raise HTTPException(status_code=401, detail={"error": "missing_credential", "message": str(e)})
        except ExhaustedStrategies as e:
            _record("disease_history", "error", start_time)
            raise HTTPException(status_code=502, detail={"error": "upstream_error", "message": str(e)})
        _record("disease_history", "success", start_time)
        return items

    @app.get("/api/space-info")
    async def space_info():
        """Where disease predictions are sent."""
        return {
            "space_url": settings.disease_space_url,
            "api_endpoint": settings.disease_endpoint,
            "history_endpoint": settings.disease_history_endpoint,
        }

    # --------------- Crop recommendation ---------------
    @app.post("/api/crop-recommendation")
    async def crop_recommendation(
        payload: Dict[str, Any] = Body(...),
        authorization: Optional[str] = Header(None),
    ):
        """Relay soil and climate parameters to the crop model space."""
        start_time = time.time()
        try:
            result = await app.state.crop.recommend(payload, _token(authorization))
        except MissingCredential as e:
            _record("crop", "unauthorized", start_time)
            raise HTTPException(status_code=401, detail={"error": "missing_credential", "message": str(e)})
        except ExhaustedStrategies as e:
            _record("crop", "error", start_time)
            raise HTTPException(
                status_code=502,
                detail={
                    "error": "upstream_error",
                    "message": "Could not find a working crop recommendation endpoint",
                    "details": str(e),
                },
            )
        _record("crop", "success", start_time)
        return result

    @app.get("/api/crop-recommendation/history")
    async def crop_history(authorization: Optional[str] = Header(None)):
        """Past crop recommendations, as a plain list."""
        start_time = time.time()
        try:
            items = await app.state.crop.crop_history(_token(authorization))
        except MissingCredential as e:
            _record("crop_history", "unauthorized", start_time)
            raise HTTPException(status_code=401, detail={"error": "missing_credential", "message": str(e)})
        except ExhaustedStrategies as e:
            _record("crop_history", "error", start_time)
            raise HTTPException(status_code=502, detail={"error": "upstream_error", "message": str(e)})
        _record("crop_history", "success", start_time)
        return items

    return app


app = create_app()


def run():
    """Serve the relay with uvicorn on the configured host and port."""
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
