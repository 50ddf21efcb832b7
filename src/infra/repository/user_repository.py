"""
User repository using SQLAlchemy ORM
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.service.auth.models.user import UserProfile
from src.infra.models import UserModel, as_utc
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for the identity provider's user records.

    Runs inside the caller's transaction; never commits on its own.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _model_to_entity(self, model: UserModel) -> UserProfile:
        """Convert SQLAlchemy model to Pydantic entity"""
        return UserProfile(
            id=model.id,
            email=model.email,
            name=model.name,
            email_verification_time=as_utc(model.email_verification_time),
            is_anonymous=model.is_anonymous,
            created_at=as_utc(model.created_at)
        )

    async def get_user(self, user_id: str) -> Optional[UserProfile]:
        """
        Get user by id

        Args:
            user_id: Opaque user id issued by the identity provider

        Returns:
            UserProfile or None
        """
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self.session.execute(stmt)
        user_model = result.scalar_one_or_none()

        if not user_model:
            return None

        return self._model_to_entity(user_model)

    async def get_email(self, user_id: str) -> Optional[str]:
        """Get the registered email address for a user, if any"""
        stmt = select(UserModel.email).where(UserModel.id == user_id)
        result = await self.session.execute(stmt)
        email = result.scalar_one_or_none()
        return email or None

    async def mark_email_verified(self, user_id: str, verified_at: datetime) -> bool:
        """
        Stamp the user's email verification time

        Args:
            user_id: User id
            verified_at: Verification timestamp

        Returns:
            True if a user row was updated
        """
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(email_verification_time=verified_at)
        )
        result = await self.session.execute(stmt)

        logger.info(
            "User email marked as verified",
            extra={"user_id": user_id}
        )
        return result.rowcount > 0
