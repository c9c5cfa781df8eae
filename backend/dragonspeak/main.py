"""
FastAPI application entry point for the Dragonspeak service.
Configures the application, middleware, routes, and error handlers.
"""

from typing import Dict, AsyncGenerator
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from dragonspeak.config import get_settings
from dragonspeak.db.database import init_db
from dragonspeak.errors import (
    ConflictedError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    InvalidEntityError,
)
from dragonspeak.routers import transcripts
from dragonspeak.utils.logger import setup_logging, get_correlation_id, set_correlation_id

# Initialize settings and logging
settings = get_settings()
logger = setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Dragonspeak service", version="1.0.0")

    try:
        init_db()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise

    yield

    logger.info("Shutting down Dragonspeak service")
    transcripts.get_transcription_provider().close()


app = FastAPI(
    title="Dragonspeak Service",
    description="Campaign and session transcription backend for tabletop role-playing games",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next) -> Response:
    """Add correlation ID to all requests for tracing."""
    correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))

    logger.info("Request started",
               method=request.method,
               url=str(request.url),
               client_ip=request.client.host if request.client else "unknown")

    response = await call_next(request)

    response.headers["X-Correlation-ID"] = correlation_id

    logger.info("Request completed",
               method=request.method,
               url=str(request.url),
               status_code=response.status_code)

    return response


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "correlation_id": get_correlation_id()
            }
        }
    )


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    """Handle missing transcripts and blobs."""
    logger.warning("Entity not found", error=str(exc), url=str(request.url))
    return error_response(404, "NOT_FOUND", "Not Found")


@app.exception_handler(InvalidEntityError)
async def invalid_entity_handler(request: Request, exc: InvalidEntityError) -> JSONResponse:
    """Handle unsupported formats and malformed input."""
    logger.warning("Invalid request", error=str(exc), url=str(request.url))
    return error_response(422, "INVALID_ENTITY", str(exc))


@app.exception_handler(ConflictedError)
async def conflicted_handler(request: Request, exc: ConflictedError) -> JSONResponse:
    """Handle operations that are not valid for the job's current status."""
    logger.warning("Conflicting request", error=str(exc), url=str(request.url))
    return error_response(409, "CONFLICT", str(exc))


@app.exception_handler(EntityAlreadyExistsError)
async def already_exists_handler(request: Request, exc: EntityAlreadyExistsError) -> JSONResponse:
    logger.warning("Entity already exists", error=str(exc), url=str(request.url))
    return error_response(409, "ALREADY_EXISTS", "Already Exists")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error("Unhandled exception",
                error=str(exc),
                error_type=type(exc).__name__,
                url=str(request.url))
    return error_response(500, "INTERNAL_ERROR", "Internal Server Error")


app.include_router(transcripts.router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "dragonspeak-service",
        "version": "1.0.0"
    }


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "Dragonspeak Service",
        "version": "1.0.0",
        "description": "Campaign and session transcription backend for tabletop role-playing games",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dragonspeak.main:app",
        host="0.0.0.0",
        port=8080,
        log_level=settings.log_level.lower()
    )
