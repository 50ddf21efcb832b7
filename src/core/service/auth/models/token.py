from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """JWT access token payload issued by the identity provider"""
    sub: str = Field(..., description="Stable opaque user id")
    exp: datetime = Field(..., description="Token expiration timestamp")
    iat: Optional[datetime] = Field(None, description="Token issued at timestamp")
    jti: Optional[str] = Field(None, description="Unique token identifier for blacklisting")


class TokenBlacklist(BaseModel):
    """Model for blacklisted tokens"""
    jti: str
    exp: datetime
    blacklisted_at: datetime
    reason: Optional[str] = None
