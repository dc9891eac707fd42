"""Main FastAPI application entry point.

This module serves as the primary entry point for the Closetlog application.
It handles all core application setup including:
- FastAPI application initialization and configuration
- Middleware setup for CORS, correlation ids, logging and security headers
- Database initialization for local SQLite runs
- Vision and image storage services shared through ``app.state``
- Route registration and API versioning
- Health check endpoint
"""

# Standard library imports
import time
from contextlib import asynccontextmanager

# FastAPI imports
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

# Internal imports
from app.core.config import get_settings
from app.core.logging import (
    CorrelationMiddleware,
    RequestLoggingMiddleware,
    get_logger,
    setup_logging
)
from app.core.security import security_middleware
from app.core.exceptions import AppException
from app.models.domain.common import ErrorResponse
from app.database.session import get_session_manager, init_db
from app.api.v1.router import api_router

# Service imports
from app.services.ai_processing import create_vision_service
from app.services.image_processing import create_image_service

# Configure logging
logger = get_logger(__name__)
settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle application startup and shutdown events.
    This context manager ensures proper resource management.
    """
    # Startup
    setup_logging()
    logger.info("Starting up application...")
    try:
        # Local SQLite databases are created on first start
        if settings.DB.is_sqlite:
            await init_db()
            logger.info("Database initialized successfully")

        # Initialize services
        app.state.vision_service = await create_vision_service()
        app.state.image_service = create_image_service()
        logger.info(
            "Services initialized successfully",
            vision=app.state.vision_service.status,
            images=app.state.image_service.status
        )

        yield  # Application runs here

    except Exception as e:
        logger.error("Startup failed", error=e)
        raise

    finally:
        logger.info("Shutting down application...")
        # Cleanup services
        if hasattr(app.state, "vision_service"):
            await app.state.vision_service.close()
        if hasattr(app.state, "image_service"):
            await app.state.image_service.close()
        await get_session_manager().dispose()
        logger.info("Cleanup completed")

def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    Handles all application setup including middleware, routes, and error handlers.
    """
    # Initialize FastAPI with custom configurations
    app = FastAPI(
        title="Closetlog API",
        description="Wardrobe tracking with outfit photo analysis",
        version=settings.APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if not settings.PROD else None,
        redoc_url="/api/redoc" if not settings.PROD else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.middleware("http")(security_middleware)

    # Register exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """Handle custom application exceptions"""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.detail).model_dump(exclude_none=True)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with clear messages"""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="Invalid request",
                details=jsonable_encoder(exc.errors())
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", error=exc, path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Internal server error").model_dump(exclude_none=True)
        )

    # Register routers
    app.include_router(
        api_router,
        prefix=settings.API_V1_PREFIX
    )

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint for monitoring systems.
        Checks critical service dependencies.
        """
        manager = get_session_manager()
        database_ok = await manager.healthcheck()
        services_status = {
            "database": "connected" if database_ok else "unavailable",
            "vision_service": app.state.vision_service.status if hasattr(app.state, 'vision_service') else "not_initialized",
            "image_service": app.state.image_service.status if hasattr(app.state, 'image_service') else "not_initialized"
        }

        if not database_ok:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "services": services_status}
            )
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": app.version,
            "services": services_status,
            "database_metrics": manager.get_metrics()
        }

    return app

# Create the application instance
app = create_application()

# Only run the server directly in development
if __name__ == "__main__":
    import uvicorn

    # Run the application with hot reload in development
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.PROD,
        log_level="debug" if not settings.PROD else "info"
    )
