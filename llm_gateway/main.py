"""FastAPI application for the LLM gateway.

This module assembles the gateway: authentication, chunked XTTS
text-to-speech, chat completion, image generation and translation, plus
health and metrics endpoints for monitoring.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import psutil
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .backends import ChatBackend, ImageBackend, TranslationBackend
from .config import Settings, get_config
from .dependencies.auth import OptionalUser
from .middleware.rate_limit import get_rate_limit_metrics, setup_rate_limiting
from .middleware.security_headers import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from .routers import auth_router, chat_router, images_router, translation_router, tts_router
from .tts_engine import ChunkedSynthesizer, SpeakerProfileCache, XTTSClient
from .utils.security import TokenService
from .utils.user_store import UserStore

logger = logging.getLogger(__name__)

tags_metadata = [
    {"name": "Root", "description": "Main API information and navigation"},
    {"name": "Authentication", "description": "User accounts and JWT tokens"},
    {"name": "Audio", "description": "Text-to-speech synthesis through XTTS"},
    {"name": "Chat", "description": "Chat completion through Ollama or LocalAI"},
    {"name": "Images", "description": "Image generation through LocalAI"},
    {"name": "Translation", "description": "English/Polish translation through LibreTranslate"},
    {"name": "Monitoring", "description": "Health checks and system metrics"},
]


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current timestamp")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    version: str = Field(..., description="API version")
    user: Optional[Dict[str, str]] = Field(None, description="Authenticated caller, if any")


class SpeakerCacheMetrics(BaseModel):
    loaded: bool
    loaded_at: Optional[float] = None


class SystemMetricsResponse(BaseModel):
    cpu_percent: float
    memory_percent: float
    memory_available_gb: float
    disk_usage_percent: float
    speaker_cache: SpeakerCacheMetrics
    rate_limiting: Dict[str, Any]


def configure_logging(settings: Settings) -> None:
    """Configure root logging from API_LOG_LEVEL and API_LOG_FILE."""
    level = getattr(logging, settings.api.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    logging.getLogger().setLevel(level)

    if settings.api.log_file:
        root = logging.getLogger()
        if not any(getattr(h, "baseFilename", None) == settings.api.log_file for h in root.handlers):
            file_handler = logging.FileHandler(settings.api.log_file)
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
            root.addHandler(file_handler)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": {"error": {"message": _validation_message(exc), "type": "invalid_request_error"}}}
        )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and not isinstance(exc.detail, dict):
            return JSONResponse(status_code=404, content={"error": "Not found"})
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.api.debug else "Something went wrong",
            }
        )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Configuration, loaded from the environment when None
        transport: Optional httpx transport for every backend call

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_config()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(
            transport=transport,
            timeout=settings.backends.request_timeout_seconds
        )
        backends = settings.backends
        xtts = XTTSClient(settings.xtts.url, client, timeout=settings.xtts.chunk_timeout_seconds)
        speakers = SpeakerProfileCache(xtts.fetch_speakers)

        app.state.http_client = client
        app.state.xtts = xtts
        app.state.speakers = speakers
        app.state.synthesizer = ChunkedSynthesizer(
            xtts,
            speakers,
            max_chars=settings.xtts.max_chars,
            max_parallel_chunks=settings.xtts.max_parallel_chunks,
            chunk_timeout=settings.xtts.chunk_timeout_seconds
        )
        app.state.chat = ChatBackend(
            client,
            backends.ollama_base_url,
            backends.localai_base_url,
            ollama_model=backends.ollama_default_model,
            localai_model=backends.localai_default_model
        )
        app.state.images = ImageBackend(client, backends.localai_base_url, default_model=backends.image_model)
        app.state.translation = TranslationBackend(client, backends.libretranslate_url)

        logger.info(f"{settings.api.title} v{settings.api.version} started ({settings.environment})")
        logger.info(f"XTTS at {settings.xtts.url}, max {settings.xtts.max_chars} characters per chunk")
        try:
            yield
        finally:
            await client.aclose()
            logger.info("HTTP client closed")

    app = FastAPI(
        title=settings.api.title,
        version=settings.api.version,
        description=settings.api.description,
        openapi_tags=tags_metadata,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.started_at = time.time()
    app.state.users = UserStore(settings.auth.users_file, bcrypt_rounds=settings.auth.bcrypt_rounds)
    app.state.tokens = TokenService(
        settings.auth.jwt_secret,
        settings.auth.jwt_refresh_secret,
        algorithm=settings.auth.jwt_algorithm,
        access_token_minutes=settings.auth.access_token_minutes,
        refresh_token_days=settings.auth.refresh_token_days
    )

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint providing API information and navigation."""
        return {
            "message": f"{settings.api.title} is running!",
            "docs": "/docs",
            "endpoints": {
                "auth": "/api/auth",
                "tts": "/api/tts",
                "voices": "/api/tts/voices",
                "chat": "/api/chat",
                "images": "/api/images",
                "translate": "/api/translate",
            },
            "monitoring": {
                "health": "/health",
                "metrics": "/metrics",
            },
        }

    @app.get("/health", response_model=HealthResponse, tags=["Monitoring"])
    async def health_check(user: OptionalUser):
        """Health check endpoint for monitoring"""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now().isoformat(),
            uptime_seconds=time.time() - app.state.started_at,
            version=settings.api.version,
            user={"username": user.username, "role": user.role} if user else None
        )

    @app.get("/metrics", response_model=SystemMetricsResponse, tags=["Monitoring"])
    def system_metrics(request: Request):
        """Get system resource usage and gateway status."""
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')
        speakers: Optional[SpeakerProfileCache] = getattr(request.app.state, "speakers", None)

        return SystemMetricsResponse(
            cpu_percent=psutil.cpu_percent(interval=None),
            memory_percent=memory.percent,
            memory_available_gb=memory.available / (1024 ** 3),
            disk_usage_percent=disk.percent,
            speaker_cache=SpeakerCacheMetrics(
                loaded=bool(speakers and speakers.is_loaded),
                loaded_at=speakers.loaded_at if speakers else None
            ),
            rate_limiting=get_rate_limit_metrics(settings.rate_limit)
        )

    app.include_router(auth_router)
    app.include_router(tts_router)
    app.include_router(chat_router)
    app.include_router(images_router)
    app.include_router(translation_router)

    register_exception_handlers(app, settings)

    # Innermost first: rate limiting, body size, CORS, security headers
    setup_rate_limiting(app, settings.rate_limit)
    app.add_middleware(RequestSizeLimitMiddleware, max_body_bytes=settings.api.max_body_bytes)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=settings.api.cors_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware)

    return app


def run() -> None:
    """Start the gateway with uvicorn."""
    import uvicorn

    settings = get_config()
    configure_logging(settings)
    uvicorn.run(
        "llm_gateway.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.api.log_level,
    )


if __name__ == "__main__":
    run()
