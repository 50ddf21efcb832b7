from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.exceptions.base import DependencyFailureError, ResendCooldownError, ServiceUnavailableError
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.verification.models import IssuedCode
from src.core.service.verification.verification_mailer import (
    SUBJECT,
    VerificationMailer,
    render_code_email,
)

IDENTITY = CallerIdentity(user_id="user-123", email="player@example.com")


@pytest.fixture
def verification_service():
    service = MagicMock()
    service.issue_code = AsyncMock(
        return_value=IssuedCode(email="player@example.com", code="482913", expires_in=600)
    )
    return service


@pytest.fixture
def email_client():
    client = MagicMock()
    client.is_configured = True
    client.send = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_send_verification_code_emails_issued_code(verification_service, email_client):
    mailer = VerificationMailer(verification_service, email_client)

    issued = await mailer.send_verification_code(IDENTITY)

    assert issued.email == "player@example.com"
    verification_service.issue_code.assert_awaited_once_with(IDENTITY)
    email_client.send.assert_awaited_once()
    to_address, subject, html = email_client.send.await_args.args
    assert to_address == "player@example.com"
    assert subject == SUBJECT
    assert "482913" in html
    assert "10 minutes" in html


@pytest.mark.asyncio
async def test_unconfigured_delivery_issues_nothing(verification_service, email_client):
    """Should fail before a code is issued when email delivery is not configured"""
    email_client.is_configured = False
    mailer = VerificationMailer(verification_service, email_client)

    with pytest.raises(ServiceUnavailableError) as exc_info:
        await mailer.send_verification_code(IDENTITY)

    assert exc_info.value.status_code == 503
    verification_service.issue_code.assert_not_awaited()
    email_client.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_cooldown_error_skips_delivery(verification_service, email_client):
    verification_service.issue_code.side_effect = ResendCooldownError(12)
    mailer = VerificationMailer(verification_service, email_client)

    with pytest.raises(ResendCooldownError):
        await mailer.send_verification_code(IDENTITY)

    email_client.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_delivery_failure_propagates(verification_service, email_client):
    email_client.send.side_effect = DependencyFailureError()
    mailer = VerificationMailer(verification_service, email_client)

    with pytest.raises(DependencyFailureError) as exc_info:
        await mailer.send_verification_code(IDENTITY)

    assert exc_info.value.status_code == 502


def test_render_code_email_escapes_code():
    html = render_code_email("<b>1</b>", 600)

    assert "&lt;b&gt;1&lt;/b&gt;" in html
    assert "<b>1</b>" not in html
