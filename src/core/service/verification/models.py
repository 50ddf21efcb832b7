"""Models for the email verification service."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.infra.config.settings import get_settings


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    WRONG_CODE = "wrong_code"
    EXHAUSTED = "exhausted"


class VerificationPolicy(BaseModel):
    """Lifetime and abuse limits for verification codes"""
    code_ttl_seconds: int = Field(default=600, gt=0)
    resend_cooldown_seconds: int = Field(default=30, ge=0)
    max_attempts: int = Field(default=5, gt=0)
    code_length: int = Field(default=6, ge=4, le=10)

    @classmethod
    def from_settings(cls) -> "VerificationPolicy":
        settings = get_settings()
        return cls(
            code_ttl_seconds=settings.VERIFICATION_CODE_TTL_SECONDS,
            resend_cooldown_seconds=settings.VERIFICATION_RESEND_COOLDOWN_SECONDS,
            max_attempts=settings.VERIFICATION_MAX_ATTEMPTS,
            code_length=settings.VERIFICATION_CODE_LENGTH,
        )


class IssuedCode(BaseModel):
    """Freshly issued code; only ever handed to the email sender"""
    email: str
    code: str
    expires_in: int


class VerificationResult(BaseModel):
    """What a verify attempt decided, before it is surfaced to the caller"""
    outcome: VerificationOutcome
    attempts_remaining: Optional[int] = None
