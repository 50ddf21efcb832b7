from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, Request, status
from redis.asyncio import Redis

from src.api.controller.auth.dto.output_dto import HealthCheckResponseDto
from src.core.dependencies import get_database, get_redis_client
from src.core.logger.logger import logger
from src.infra.config.settings import settings
from src.infra.database import DatabaseManager

router = APIRouter(tags=["Health"])


async def check_database_health(database: DatabaseManager) -> Dict[str, str]:
    """Check database connection health."""
    try:
        await database.ping()
        return {"status": "healthy", "message": "Connected"}
    except Exception as e:
        return {"status": "unhealthy", "message": f"Connection failed: {str(e)}"}


async def check_redis_health(redis_client: Redis) -> Dict[str, str]:
    """Check Redis connection health."""
    try:
        await redis_client.ping()
        return {"status": "healthy", "message": "Connected"}
    except Exception as e:
        return {"status": "unhealthy", "message": f"Connection failed: {str(e)}"}


@router.get("/health", status_code=status.HTTP_200_OK, response_model=HealthCheckResponseDto)
async def health_check(
    request: Request,
    database: DatabaseManager = Depends(get_database),
    redis_client: Redis = Depends(get_redis_client)
):
    """
    Health check endpoint.
    The database is required; Redis only backs sign-out, so losing it degrades the service.
    """
    services = {
        "database": await check_database_health(database),
        "redis": await check_redis_health(redis_client),
    }

    if services["database"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif services["redis"]["status"] != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    if overall_status != "healthy":
        logger.warning(
            "Health check not healthy",
            extra={
                "status": overall_status,
                "request_id": request.headers.get("X-Request-ID", "N/A")
            }
        )

    return HealthCheckResponseDto(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        services=services
    )
