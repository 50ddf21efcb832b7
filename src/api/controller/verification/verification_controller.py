"""
Email verification controller.
"""

from fastapi import APIRouter, Depends

from src.api.controller.verification.dto.input_dto import VerifyCodeRequestDto
from src.api.controller.verification.dto.output_dto import SendCodeResponseDto, VerifyCodeResponseDto
from src.core.dependencies import get_current_identity, get_verification_mailer, get_verification_service
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.verification.verification_mailer import VerificationMailer
from src.core.service.verification.verification_service import EmailVerificationService

router = APIRouter(prefix="/email-verification", tags=["Email Verification"])


@router.post(
    "/send",
    response_model=SendCodeResponseDto,
    responses={
        401: {"description": "Not signed in"},
        429: {"description": "Resend cooldown not elapsed"},
        502: {"description": "Email provider failed"}
    }
)
async def send_code(
    identity: CallerIdentity = Depends(get_current_identity),
    mailer: VerificationMailer = Depends(get_verification_mailer)
):
    """
    Issue a new verification code and email it to the caller.

    Any earlier unconsumed code stops working.
    """
    issued = await mailer.send_verification_code(identity)
    return SendCodeResponseDto(email=issued.email, expiresIn=issued.expires_in)


@router.post(
    "/verify",
    response_model=VerifyCodeResponseDto,
    responses={
        400: {"description": "Missing, expired, exhausted or wrong code"},
        401: {"description": "Not signed in"}
    }
)
async def verify_code(
    request: VerifyCodeRequestDto,
    identity: CallerIdentity = Depends(get_current_identity),
    verification_service: EmailVerificationService = Depends(get_verification_service)
):
    """Check the submitted code and mark the caller's email as verified."""
    await verification_service.verify_code(identity, request.code)
    return VerifyCodeResponseDto()
