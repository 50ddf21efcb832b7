from html import escape
from typing import Optional

from src.core.exceptions.base import ServiceUnavailableError
from src.core.logger.logger import get_logger
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.email.resend_client import ResendEmailClient
from src.core.service.verification.models import IssuedCode
from src.core.service.verification.verification_service import EmailVerificationService

logger = get_logger(__name__)

SUBJECT = "Your email verification code"

BODY_TEMPLATE = """
<div style="font-family: ui-sans-serif, system-ui; line-height: 1.5">
  <p>Your verification code:</p>
  <p style="font-size: 24px; font-weight: 700; letter-spacing: 2px">{code}</p>
  <p style="color:#64748b">The code is valid for {minutes} minutes. If you did not request it, ignore this email.</p>
</div>
"""


def render_code_email(code: str, ttl_seconds: int) -> str:
    return BODY_TEMPLATE.format(code=escape(code), minutes=max(1, ttl_seconds // 60))


class VerificationMailer:
    """Issues a verification code and delivers it by email"""

    def __init__(
        self,
        verification_service: EmailVerificationService,
        email_client: Optional[ResendEmailClient] = None
    ):
        self.verification_service = verification_service
        self.email_client = email_client or ResendEmailClient()

    async def send_verification_code(self, identity: Optional[CallerIdentity]) -> IssuedCode:
        """
        Issue a code for the caller and email it.

        A delivery failure leaves the issued code in place; the caller can
        retry once the resend cooldown has passed.

        Raises:
            ServiceUnavailableError: Email delivery is not configured
            DependencyFailureError: Email provider failed
        """
        if not self.email_client.is_configured:
            logger.error("Email delivery is not configured (RESEND_API_KEY / EMAIL_FROM)")
            raise ServiceUnavailableError("Email delivery is not configured")

        issued = await self.verification_service.issue_code(identity)
        html = render_code_email(issued.code, issued.expires_in)
        await self.email_client.send(issued.email, SUBJECT, html)

        logger.info(
            "Verification code delivered",
            extra={"user_id": identity.user_id if identity else None}
        )
        return issued
