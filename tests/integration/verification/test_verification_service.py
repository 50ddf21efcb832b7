import itertools
from unittest.mock import MagicMock

import pytest

from src.core.exceptions.base import (
    AttemptsExhaustedError,
    CodeExpiredError,
    CodeNotFoundError,
    EmailNotFoundError,
    ResendCooldownError,
    UnauthenticatedError,
    WrongCodeError,
)
from src.core.service.verification.models import VerificationPolicy
from src.core.service.verification.verification_service import EmailVerificationService
from src.infra.repository.user_repository import UserRepository


def sequential_codes():
    counter = itertools.count(123456)
    return lambda: str(next(counter))


@pytest.fixture
def verification_service(database, clock):
    return EmailVerificationService(
        database,
        policy=VerificationPolicy(),
        clock=clock,
        code_generator=sequential_codes(),
    )


async def load_profile(database, user_id):
    async def work(session):
        return await UserRepository(session).get_user(user_id)

    return await database.run_in_transaction(work)


@pytest.mark.asyncio
async def test_issue_code_returns_code_for_registered_email(verification_service, player):
    issued = await verification_service.issue_code(player)

    assert issued.email == "player@example.com"
    assert issued.code == "123456"
    assert issued.expires_in == 600


@pytest.mark.asyncio
async def test_issue_code_without_email_fails(verification_service, make_user):
    guest = await make_user("guest-user-0000000000001", email=None, is_anonymous=True)

    with pytest.raises(EmailNotFoundError) as exc_info:
        await verification_service.issue_code(guest)

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_resend_within_cooldown_is_rejected(clock, verification_service, player):
    """Should refuse a second code until the cooldown has elapsed"""
    await verification_service.issue_code(player)
    clock.advance(seconds=10)

    with pytest.raises(ResendCooldownError) as exc_info:
        await verification_service.issue_code(player)

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 20
    assert exc_info.value.headers["Retry-After"] == "20"


@pytest.mark.asyncio
async def test_resend_after_cooldown_replaces_code(clock, verification_service, player):
    """Should invalidate the earlier code when a new one is issued"""
    first = await verification_service.issue_code(player)
    clock.advance(seconds=31)

    second = await verification_service.issue_code(player)
    assert second.code != first.code

    with pytest.raises(WrongCodeError):
        await verification_service.verify_code(player, first.code)

    await verification_service.verify_code(player, second.code)


@pytest.mark.asyncio
async def test_verify_correct_code_marks_email_verified(database, clock, verification_service, player):
    issued = await verification_service.issue_code(player)
    clock.advance(minutes=2)

    await verification_service.verify_code(player, issued.code)

    profile = await load_profile(database, player.user_id)
    assert profile.email_verification_time == clock()


@pytest.mark.asyncio
async def test_verified_code_cannot_be_reused(verification_service, player):
    issued = await verification_service.issue_code(player)
    await verification_service.verify_code(player, issued.code)

    with pytest.raises(CodeNotFoundError):
        await verification_service.verify_code(player, issued.code)


@pytest.mark.asyncio
async def test_submitted_code_is_trimmed(verification_service, player):
    issued = await verification_service.issue_code(player)

    await verification_service.verify_code(player, f"  {issued.code}\n")


@pytest.mark.asyncio
async def test_verify_without_code_fails(verification_service, player):
    with pytest.raises(CodeNotFoundError) as exc_info:
        await verification_service.verify_code(player, "123456")

    assert exc_info.value.message == "Request a verification code first"


@pytest.mark.asyncio
async def test_expired_code_is_rejected_and_removed(clock, verification_service, player):
    """Should reject a code after ten minutes and delete it"""
    issued = await verification_service.issue_code(player)
    clock.advance(minutes=11)

    with pytest.raises(CodeExpiredError):
        await verification_service.verify_code(player, issued.code)

    with pytest.raises(CodeNotFoundError):
        await verification_service.verify_code(player, issued.code)


@pytest.mark.asyncio
async def test_code_valid_until_expiry(clock, verification_service, player):
    issued = await verification_service.issue_code(player)
    clock.advance(seconds=600)

    await verification_service.verify_code(player, issued.code)


@pytest.mark.asyncio
async def test_wrong_code_counts_attempts(verification_service, player):
    """Should report the remaining attempts after each mismatch"""
    await verification_service.issue_code(player)

    remaining = []
    for _ in range(4):
        with pytest.raises(WrongCodeError) as exc_info:
            await verification_service.verify_code(player, "000000")
        remaining.append(exc_info.value.attempts_remaining)

    assert remaining == [4, 3, 2, 1]
    assert exc_info.value.details == {"attempts_remaining": 1}


@pytest.mark.asyncio
async def test_fifth_wrong_attempt_exhausts_code(verification_service, player):
    """Should delete the code on the fifth failure so even the right code stops working"""
    issued = await verification_service.issue_code(player)

    for _ in range(4):
        with pytest.raises(WrongCodeError):
            await verification_service.verify_code(player, "000000")

    with pytest.raises(AttemptsExhaustedError):
        await verification_service.verify_code(player, "000000")

    with pytest.raises(CodeNotFoundError):
        await verification_service.verify_code(player, issued.code)


@pytest.mark.asyncio
async def test_reissue_resets_attempts(clock, verification_service, player):
    await verification_service.issue_code(player)
    for _ in range(3):
        with pytest.raises(WrongCodeError):
            await verification_service.verify_code(player, "000000")

    clock.advance(seconds=31)
    await verification_service.issue_code(player)

    with pytest.raises(WrongCodeError) as exc_info:
        await verification_service.verify_code(player, "000000")
    assert exc_info.value.attempts_remaining == 4


@pytest.mark.asyncio
async def test_codes_are_per_user(verification_service, player, make_user):
    other = await make_user("second-user-000000000001", "other@example.com")
    mine = await verification_service.issue_code(player)
    await verification_service.issue_code(other)

    with pytest.raises(WrongCodeError):
        await verification_service.verify_code(other, mine.code)

    await verification_service.verify_code(player, mine.code)


@pytest.mark.asyncio
async def test_operations_require_identity(verification_service):
    with pytest.raises(UnauthenticatedError):
        await verification_service.issue_code(None)

    with pytest.raises(UnauthenticatedError):
        await verification_service.verify_code(None, "123456")


def test_generated_codes_are_six_digits():
    service = EmailVerificationService(MagicMock(), policy=VerificationPolicy())

    for _ in range(200):
        code = service._generate_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"
