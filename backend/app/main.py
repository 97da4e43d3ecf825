"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from app.api.http.errors import register_error_handlers
from app.api.http.voice import router as voice_router
from app.api.ws import transcribe_stream_endpoint
from app.config import SERVICE_NAME, SERVICE_VERSION, get_settings
from app.core.di import build_container
from app.infrastructure.database import close_db, init_db, ping_db
from app.infrastructure.logging import (
    clear_request_context,
    set_request_context,
    setup_logging,
)
from app.infrastructure.vector_store import connect_vector_store
from app.schemas.voice import HealthResponse, StatusResponse

# Initialize settings
settings = get_settings()

# Setup logging
setup_logging(
    log_level=settings.log_level,
    debug_namespaces=settings.debug_namespaces,
)

logger = logging.getLogger("app")

ENDPOINTS = {
    "health": "GET /health",
    "status": "GET /status",
    "ready": "GET /health/ready",
    "transcriptions": "POST /api/v1/transcriptions",
    "transcribe_stream": "WS /api/v1/transcribe/stream",
    "voice_chat": "POST /voice-chat",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    current = get_settings()

    # Startup
    logger.info("Starting Tea voice backend", extra={"service": "app"})
    current.log_config_summary()

    if current.database_init_on_startup:
        await init_db()

    container = build_container(current)
    if current.qdrant_enabled:
        container.vector_store = await connect_vector_store(current.qdrant_url)
    app.state.container = container
    container.session_store.start_sweeper(current.session_sweep_interval_seconds)

    yield

    # Shutdown
    logger.info("Shutting down Tea voice backend", extra={"service": "app"})
    await container.session_store.stop_sweeper()
    for provider in (container.llm_provider, container.stt_provider, container.tts_provider):
        try:
            await provider.aclose()
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Provider close failed",
                extra={"service": "app", "provider": type(provider).__name__, "error": str(e)},
            )
    if container.vector_store is not None:
        await container.vector_store.close()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title="Tea Voice API",
    description="Voice conversation backend: speech in, spoken reply out",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else settings.cors_allow_origins_list,
    allow_origin_regex=None
    if settings.is_development
    else (settings.cors_allow_origin_regex or None),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(voice_router)


@app.middleware("http")
async def _http_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id")
    if not request_id:
        request_id = str(uuid4())

    set_request_context(request_id=request_id)
    start = time.time()
    status_code: int | None = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "HTTP request completed",
            extra={
                "service": "http",
                "duration_ms": duration_ms,
                "metadata": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                },
            },
        )
        clear_request_context()


# =============================================================================
# Health
# =============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy", version=SERVICE_VERSION)


@app.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    """Service status with the endpoint map and live session count."""
    container = getattr(request.app.state, "container", None)
    active_sessions = container.session_store.active_count() if container else 0

    vector_store = "disabled"
    if container is not None and container.vector_store is not None:
        vector_store = "connected"
        try:
            await container.vector_store.health_check()
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Vector store health check failed",
                extra={"service": "app", "error": str(e)},
            )
            vector_store = "unavailable"

    return StatusResponse(
        service=SERVICE_NAME,
        status="running",
        version=SERVICE_VERSION,
        endpoints=ENDPOINTS,
        active_sessions=active_sessions,
        vector_store=vector_store,
    )


@app.get("/health/ready")
async def readiness_check():
    """Readiness check for deployments (checks the database)."""
    errors = []

    try:
        await ping_db()
    except Exception as e:  # noqa: BLE001
        errors.append(f"Database: {e}")

    if errors:
        return {
            "status": "unhealthy",
            "errors": errors,
        }

    return {"status": "ready"}


# =============================================================================
# WebSocket Endpoint
# =============================================================================


@app.websocket("/api/v1/transcribe/stream")
async def ws_transcribe_stream(websocket: WebSocket):
    """Streaming transcription: binary PCM frames, then FINISH."""
    await transcribe_stream_endpoint(websocket)


# =============================================================================
# Development Info
# =============================================================================


if settings.is_development:

    @app.get("/")
    async def root():
        """Development root endpoint with API info."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "docs": "/docs",
            "endpoints": ENDPOINTS,
        }
