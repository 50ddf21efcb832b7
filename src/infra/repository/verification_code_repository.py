"""
Email verification code repository using SQLAlchemy ORM
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infra.models import EmailVerificationCodeModel


class VerificationCodeRepository:
    """Repository for the single verification code slot per user"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user(self, user_id: str) -> Optional[EmailVerificationCodeModel]:
        """Get the live code row for a user (locked for the transaction)"""
        stmt = (
            select(EmailVerificationCodeModel)
            .where(EmailVerificationCodeModel.user_id == user_id)
            .limit(1)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(
        self,
        user_id: str,
        code: str,
        expires_at: datetime,
        last_sent_at: datetime,
        existing: Optional[EmailVerificationCodeModel] = None
    ) -> EmailVerificationCodeModel:
        """Replace the user's code in place, or create the row if none exists"""
        row = existing or EmailVerificationCodeModel(user_id=user_id)
        row.code = code
        row.expires_at = expires_at
        row.attempts = 0
        row.last_sent_at = last_sent_at
        if existing is None:
            self.session.add(row)
        await self.session.flush()
        return row

    async def record_failed_attempt(self, row: EmailVerificationCodeModel, attempts: int) -> None:
        """Persist the failed attempt counter"""
        row.attempts = attempts
        await self.session.flush()

    async def delete(self, row: EmailVerificationCodeModel) -> None:
        """Delete the code row"""
        await self.session.delete(row)
        await self.session.flush()
