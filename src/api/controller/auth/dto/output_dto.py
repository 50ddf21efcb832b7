"""
Output DTOs for authentication and health endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class UserProfileResponseDto(BaseModel):
    """DTO for the signed-in user's profile."""

    id: str = Field(..., description="Stable user id")
    email: Optional[str] = Field(None, description="Registered email address")
    name: Optional[str] = Field(None, description="Display name")
    email_verification_time: Optional[datetime] = Field(None, description="When the email was verified")
    is_anonymous: bool = Field(False, description="Anonymous (guest) account")


class LogoutResponseDto(BaseModel):
    """DTO for logout response."""

    success: bool = Field(True, description="Logout success status")
    message: str = Field(default="Successfully logged out", description="Logout message")
    logged_out_tokens: int = Field(0, description="Number of tokens blacklisted")


class HealthCheckResponseDto(BaseModel):
    """DTO for health check response."""

    status: str = Field(..., description="Overall service status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="API version")
    services: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Dependency statuses")
