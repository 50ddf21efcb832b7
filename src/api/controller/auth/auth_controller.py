"""
Authentication controller: caller profile and sign-out.

Sign-in and token issuance belong to the identity provider.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from src.api.controller.auth.dto.output_dto import LogoutResponseDto, UserProfileResponseDto
from src.core.dependencies import get_current_identity, get_identity_service, get_optional_identity
from src.core.logger.logger import get_logger
from src.core.service.auth.identity_service import IdentityService
from src.core.service.auth.models.user import CallerIdentity

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=Optional[UserProfileResponseDto])
async def logged_in_user(
    identity: Optional[CallerIdentity] = Depends(get_optional_identity),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Profile of the signed-in user, or null."""
    if identity is None:
        return None

    profile = await identity_service.get_profile(identity.user_id)
    if profile is None:
        return None

    return UserProfileResponseDto(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        email_verification_time=profile.email_verification_time,
        is_anonymous=profile.is_anonymous
    )


@router.post("/logout", response_model=LogoutResponseDto)
async def logout(
    identity: CallerIdentity = Depends(get_current_identity),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """
    Sign out by revoking the presented access token.

    Revoked tokens resolve to an anonymous caller until they expire.
    """
    revoked = await identity_service.revoke(identity, reason="Sign out")

    logger.info(
        "User signed out",
        extra={"user_id": identity.user_id, "token_revoked": revoked}
    )

    return LogoutResponseDto(logged_out_tokens=1 if revoked else 0)
