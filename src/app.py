import json
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from src.infra.config.settings import settings
from src.infra.database import get_database_manager
from src.core.logger.logger import logger
from src.api.router import health, auth, scores, verification
from src.api.middleware.security.rate_limiter import RateLimitMiddleware
from src.api.middleware.logging.request_logging import RequestLoggingMiddleware
from src.core.exceptions.handler import ServiceError, GlobalErrorHandler


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="""
ArcadePoints API - scoring and email verification for the casual games portal.

## Services
- **Scores**: Play results, points aggregate, per-game progress and reward history
- **Email Verification**: One-time codes delivered by email
- **Auth**: Signed-in profile and sign-out

## Authentication
Writes require a JWT Bearer token. Reads return empty results for anonymous callers.
        """,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
        max_age=600,  # 10 minutes
    )

    # Request logging middleware (should be first to catch all requests)
    app.add_middleware(RequestLoggingMiddleware)

    # Rate limiting middleware
    app.add_middleware(RateLimitMiddleware)

    # Add centralized error handlers
    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    # Include routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(scores.router, prefix="/api/v1")
    app.include_router(verification.router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event():
        logger.info(json.dumps({
            "message": "Starting API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION
        }))

        database = get_database_manager()
        await database.connect()
        if settings.DB_AUTO_CREATE:
            await database.create_tables()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(json.dumps({
            "message": "Shutting down API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION
        }))
        await get_database_manager().close()

    return app
