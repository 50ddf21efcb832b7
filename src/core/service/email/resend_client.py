"""
Resend transactional email client
"""

from typing import Optional

import httpx

from src.core.exceptions.base import DependencyFailureError
from src.core.http_client import create_temp_client
from src.core.logger.logger import get_logger
from src.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class ResendEmailClient:
    """Sends HTML email through the Resend HTTP API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender if sender is not None else settings.EMAIL_FROM
        self.api_url = api_url or settings.RESEND_API_URL
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.sender)

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send one email

        Args:
            to_address: Recipient address
            subject: Subject line
            html_body: HTML body

        Raises:
            DependencyFailureError: Resend rejected the request or was unreachable
        """
        body = {
            "from": self.sender,
            "to": to_address,
            "subject": subject,
            "html": html_body,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        client_kwargs = {"transport": self.transport} if self.transport else {}

        async with create_temp_client("email", **client_kwargs) as client:
            try:
                response = await client.post(self.api_url, json=body, headers=headers)
            except httpx.TimeoutException:
                logger.error("Email provider timeout", extra={"url": self.api_url})
                raise DependencyFailureError(details={"reason": "timeout"})
            except httpx.RequestError as e:
                logger.error(
                    "Email provider connection error",
                    extra={"url": self.api_url, "error": str(e)}
                )
                raise DependencyFailureError(details={"reason": "connection_error"})

        if response.status_code >= 400:
            logger.error(
                "Email provider returned error status",
                extra={
                    "status_code": response.status_code,
                    "response_text": response.text[:500]
                }
            )
            raise DependencyFailureError(details={"provider_status": response.status_code})

        logger.info(
            "Email sent",
            extra={"status_code": response.status_code}
        )
