"""
FastAPI Application Setup

Main entry point for the Curlylab API Gateway.

Responsibility:
    - FastAPI app initialization
    - Router registration (analysis, backend passthrough)
    - CORS middleware configuration
    - Global exception handlers
    - Request logging middleware
    - Startup/shutdown of shared clients (lifespan)
    - Health check endpoint

Architecture Notes:
    - Part of API Layer (Presentation)
    - Entry point for HTTP server (uvicorn)
    - Centralizes cross-cutting concerns (logging, CORS, error handling)
    - No business logic - pure HTTP orchestration

Contains:
    - create_app() factory function
    - lifespan() context manager
    - Global exception handlers
    - Request logging middleware
    - Health check endpoint: GET /health
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from redis.exceptions import RedisError
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# Import routers
from src.api.routers import analysis_router, passthrough_router

# Import shared schemas
from src.api.schemas.common import ErrorResponse, SimpleErrorResponse

# Import domain exceptions for global handling
from src.domain.shared.exceptions import ClientInputError

from src.infrastructure.backend.backend_client import close_backend_client
from src.infrastructure.messaging.broker_client import close_broker_client
from src.infrastructure.persistence.redis.connection import (
    close_connections,
    get_redis_client,
)
from src.infrastructure.persistence.redis.result_mailbox import ResultMailbox

# Configure logger
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class HealthCheckResponse(BaseModel):
    """
    Health check response model.

    Attributes:
        status: Health status (always "ok" if endpoint responds)
        version: API version
        timestamp: Unix timestamp of health check
    """

    status: str = "ok"
    version: str = API_VERSION
    timestamp: float


# ============================================================================
# LIFESPAN
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown.

    Startup:
        Connect to Redis and expose a ResultMailbox on app.state. Redis is
        optional: without it the gateway still works, but foreign replies
        are requeued instead of parked and Idempotency-Key is ignored.

    Shutdown:
        Close broker pools, Redis pool and the backend HTTP client.
    """
    try:
        redis_client = await asyncio.to_thread(get_redis_client)
        app.state.result_mailbox = ResultMailbox(redis_client)
        logger.info("Result mailbox ready (Redis connected)")
    except RedisError as e:
        app.state.result_mailbox = None
        logger.warning(f"Redis unavailable, running without result mailbox: {e}")

    logger.info("Lifespan startup: Ready to serve requests.")
    yield

    close_broker_client()
    close_connections()
    await close_backend_client()
    logger.info("Lifespan shutdown.")


# ============================================================================
# MIDDLEWARE
# ============================================================================


class RequestLoggingMiddleware:
    """
    Request logging middleware (pure ASGI).

    Logs all incoming requests with method, path, status code, and duration.
    Passes `receive` through untouched, so `request.is_disconnected()` in the
    analysis endpoints still sees the client's `http.disconnect`.

    Logging Format:
        INFO: "Incoming request: POST /composition/analyze"
        INFO: "Request completed: POST /composition/analyze - 200 - 0.523s"
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        logger.info(f"Incoming request: {method} {path}")

        start_time = time.time()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            duration = time.time() - start_time
            logger.info(f"Request completed: {method} {path} - {status_code} - {duration:.3f}s")


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================


async def client_input_exception_handler(request: Request, exc: ClientInputError):
    """
    Global exception handler for rejected analysis input.

    Every ClientInputError subclass maps to 400 Bad Request with the
    {"error": message} body used by the analysis endpoints.

    Examples:
        >>> raise UnsupportedMediaTypeError("File must be an image")
        >>> # Returns: 400 {"error": "File must be an image"}
    """
    logger.warning(
        f"Rejected input: {exc.__class__.__name__} - {exc.message} - "
        f"Request: {request.method} {request.url.path}"
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=SimpleErrorResponse(error=exc.message).model_dump(),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Request validation failures (malformed query or form parts) -> 400.

    Same {"error": message} body as other rejected input, so clients see a
    single error shape for anything they sent wrong.

    Examples:
        >>> # GET /composition/analyze?job_id=not-a-uuid
        >>> # Returns: 400 {"error": "Invalid request: query.job_id: Input should be a valid UUID, ..."}
    """
    errors = exc.errors()
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in errors
    )
    message = f"Invalid request: {details}" if details else "Invalid request"

    logger.warning(f"Rejected request: {request.method} {request.url.path} - {message}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=SimpleErrorResponse(error=message).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unexpected exceptions.

    Catches all unhandled exceptions and converts to 500 Internal Server Error.
    Logs full stack trace for debugging.
    """
    error_response = ErrorResponse(
        code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred",
        details={"error": str(exc), "type": exc.__class__.__name__},
    )

    logger.error(
        f"Unexpected error: {exc.__class__.__name__} - {str(exc)} - "
        f"Request: {request.method} {request.url.path}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(),
    )


# ============================================================================
# APP FACTORY
# ============================================================================


def create_app() -> FastAPI:
    """
    FastAPI application factory.

    Configuration:
        - Title: Curlylab API Gateway
        - CORS: Allow all origins (development mode)
        - Routers: analysis (/composition/analyze, /analyze) and backend
          passthrough (products, users, hairtypes, reviews, favourites)
        - Health: GET /health

    Usage:
        >>> app = create_app()
        >>> # uvicorn src.api.main:app --port 8080
    """
    app = FastAPI(
        title="Curlylab API Gateway",
        version=API_VERSION,
        description=(
            "Gateway for the Curlylab services. Bridges analysis requests to "
            "worker queues and forwards CRUD requests to the backend."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Add CORS middleware (allow all origins for development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Production: restrict to specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ClientInputError, client_input_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Paths are part of the public contract, no prefix
    app.include_router(analysis_router)
    app.include_router(passthrough_router)

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        status_code=status.HTTP_200_OK,
        summary="Health check endpoint",
        description="Simple health check for monitoring and load balancers",
        tags=["health"],
    )
    async def health_check() -> HealthCheckResponse:
        return HealthCheckResponse(status="ok", version=API_VERSION, timestamp=time.time())

    logger.info("FastAPI application created successfully")

    return app


# ============================================================================
# APP INSTANCE (for uvicorn)
# ============================================================================

# Usage: uvicorn src.api.main:app --port 8080
app = create_app()
