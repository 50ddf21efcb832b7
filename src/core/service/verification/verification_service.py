import math
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions.base import (
    AttemptsExhaustedError,
    CodeExpiredError,
    CodeNotFoundError,
    EmailNotFoundError,
    ResendCooldownError,
    UnauthenticatedError,
    WrongCodeError,
)
from src.core.logger.logger import get_logger
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.verification.models import (
    IssuedCode,
    VerificationOutcome,
    VerificationPolicy,
    VerificationResult,
)
from src.infra.database import DatabaseManager
from src.infra.models import as_utc
from src.infra.repository.user_repository import UserRepository
from src.infra.repository.verification_code_repository import VerificationCodeRepository

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailVerificationService:
    """Issues and checks single-use email verification codes (one slot per user)"""

    def __init__(
        self,
        database: DatabaseManager,
        policy: Optional[VerificationPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        code_generator: Optional[Callable[[], str]] = None
    ):
        self.database = database
        self.policy = policy or VerificationPolicy.from_settings()
        self.clock = clock or _utcnow
        self.code_generator = code_generator or self._generate_code

    def _generate_code(self) -> str:
        """Uniformly random numeric code without a leading zero"""
        lowest = 10 ** (self.policy.code_length - 1)
        return str(lowest + secrets.randbelow(9 * lowest))

    async def issue_code(self, identity: Optional[CallerIdentity]) -> IssuedCode:
        """
        Issue a fresh code for the caller, replacing any unconsumed one.

        Internal only: the returned code goes to the email sender, never to
        the browser.

        Raises:
            UnauthenticatedError: No caller identity
            EmailNotFoundError: Caller has no registered email
            ResendCooldownError: Previous code was sent less than the cooldown ago
        """
        if identity is None:
            raise UnauthenticatedError()
        user_id = identity.user_id

        async def work(session: AsyncSession) -> IssuedCode:
            email = await UserRepository(session).get_email(user_id)
            if not email:
                raise EmailNotFoundError()

            codes = VerificationCodeRepository(session)
            now = self.clock()
            existing = await codes.get_by_user(user_id)

            if existing is not None:
                elapsed = (now - as_utc(existing.last_sent_at)).total_seconds()
                if elapsed < self.policy.resend_cooldown_seconds:
                    retry_after = max(1, math.ceil(self.policy.resend_cooldown_seconds - elapsed))
                    logger.warning(
                        "Verification code resend within cooldown",
                        extra={"user_id": user_id, "retry_after": retry_after}
                    )
                    raise ResendCooldownError(retry_after)

            code = self.code_generator()
            await codes.upsert(
                user_id=user_id,
                code=code,
                expires_at=now + timedelta(seconds=self.policy.code_ttl_seconds),
                last_sent_at=now,
                existing=existing,
            )
            return IssuedCode(email=email, code=code, expires_in=self.policy.code_ttl_seconds)

        issued = await self.database.run_in_transaction(work)
        logger.info("Verification code issued", extra={"user_id": user_id})
        return issued

    async def verify_code(self, identity: Optional[CallerIdentity], code: str) -> None:
        """
        Check a submitted code and consume it on success.

        Expired and exhausted codes are deleted, and failed attempts counted,
        in the same transaction that decides the outcome; the matching error is
        raised only after that cleanup has been committed.

        Raises:
            UnauthenticatedError: No caller identity
            CodeNotFoundError: No live code for the caller
            CodeExpiredError: Code TTL elapsed (code deleted)
            AttemptsExhaustedError: Attempt cap reached (code deleted)
            WrongCodeError: Mismatch with attempts left
        """
        if identity is None:
            raise UnauthenticatedError()
        user_id = identity.user_id
        submitted = (code or "").strip()

        async def work(session: AsyncSession) -> VerificationResult:
            codes = VerificationCodeRepository(session)
            now = self.clock()
            row = await codes.get_by_user(user_id)

            if row is None:
                return VerificationResult(outcome=VerificationOutcome.NOT_FOUND)

            if now > as_utc(row.expires_at):
                await codes.delete(row)
                return VerificationResult(outcome=VerificationOutcome.EXPIRED)

            if not secrets.compare_digest(submitted.encode(), row.code.encode()):
                attempts = (row.attempts or 0) + 1
                if attempts >= self.policy.max_attempts:
                    await codes.delete(row)
                    return VerificationResult(outcome=VerificationOutcome.EXHAUSTED)
                await codes.record_failed_attempt(row, attempts)
                return VerificationResult(
                    outcome=VerificationOutcome.WRONG_CODE,
                    attempts_remaining=self.policy.max_attempts - attempts,
                )

            await UserRepository(session).mark_email_verified(user_id, now)
            await codes.delete(row)
            return VerificationResult(outcome=VerificationOutcome.VERIFIED)

        result = await self.database.run_in_transaction(work)
        log_extra = {"user_id": user_id, "outcome": result.outcome.value}

        if result.outcome == VerificationOutcome.VERIFIED:
            logger.info("Email verified", extra=log_extra)
            return
        logger.warning("Email verification failed", extra=log_extra)

        if result.outcome == VerificationOutcome.NOT_FOUND:
            raise CodeNotFoundError()
        if result.outcome == VerificationOutcome.EXPIRED:
            raise CodeExpiredError()
        if result.outcome == VerificationOutcome.EXHAUSTED:
            raise AttemptsExhaustedError()
        raise WrongCodeError(result.attempts_remaining)
