"""
Caller identity and user profile as seen by this service
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CallerIdentity(BaseModel):
    """Resolved once per request and passed explicitly into every engine call"""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    token_jti: Optional[str] = None
    token_exp: Optional[datetime] = None


class UserProfile(BaseModel):
    """User record owned by the identity provider"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    email_verification_time: Optional[datetime] = None
    is_anonymous: bool = False
    created_at: Optional[datetime] = None
