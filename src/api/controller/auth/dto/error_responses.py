"""
Standardized error response DTOs used outside the service error handler.
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional
from datetime import datetime, timezone
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes produced by middleware."""

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: ErrorCode = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[str] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp")

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class RateLimitErrorResponse(BaseModel):
    """Rate limit error response with retry information."""

    success: bool = False
    error: ErrorDetail = Field(..., description="Error details")
    retry_after: int = Field(..., description="Seconds to wait before retry")
    limit: int = Field(..., description="Rate limit threshold")
    remaining: int = Field(0, description="remaining requests")
    reset_time: datetime = Field(..., description="When the rate limit resets")

    @field_serializer('reset_time')
    def serialize_reset_time(self, reset_time: datetime) -> str:
        return reset_time.isoformat()
