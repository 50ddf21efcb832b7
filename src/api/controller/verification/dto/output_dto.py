"""
Output DTOs for email verification endpoints.
"""

from pydantic import BaseModel, Field


class SendCodeResponseDto(BaseModel):
    """DTO for a sent verification code. The code itself is never included."""

    success: bool = Field(True)
    email: str = Field(..., description="Address the code was sent to")
    expiresIn: int = Field(..., description="Code lifetime in seconds")


class VerifyCodeResponseDto(BaseModel):
    """DTO for a successful verification."""

    success: bool = Field(True)
    message: str = Field(default="Email verified")
