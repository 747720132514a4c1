"""
Study AI - FastAPI Application
Main application entry point with middleware and route configuration
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from study_ai.api.v1 import api_router
from study_ai.ai.core.gateway import close_gateway_client
from study_ai.core.config import settings
from study_ai.core.cors import cors_middleware
from study_ai.core.errors import (
    StudyAIError,
    request_validation_error_handler,
    study_ai_error_handler,
)
from study_ai.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging(settings.LOG_LEVEL)

    if settings.OTEL_ENABLED:
        try:
            from study_ai.ai.core.telemetry import init_telemetry
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

            init_telemetry()
            FastAPIInstrumentor.instrument_app(app)
            logger.info("[Startup] OpenTelemetry initialized")
        except Exception as e:
            logger.warning(f"[Startup] Telemetry initialization skipped: {e}")

    if not settings.AI_GATEWAY_API_KEY:
        logger.warning("[Startup] AI_GATEWAY_API_KEY is not set; study-ai requests will fail")

    yield

    # Shutdown
    await close_gateway_client()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Study assistant proxy to a hosted LLM gateway",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Permissive CORS on every response, OPTIONS answered inline
    app.middleware("http")(cors_middleware)

    app.add_exception_handler(StudyAIError, study_ai_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    @app.get(f"{settings.API_V1_PREFIX}/health", tags=["Health"])
    async def api_v1_health_check():
        """API V1 Health check."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "study_ai.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
