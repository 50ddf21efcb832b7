"""
Points history repository using SQLAlchemy ORM
"""

from datetime import datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infra.models import PointsHistoryModel


class PointsHistoryRepository:
    """Repository for the append-only reward ledger"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def has_reward(self, user_id: str, game_id: str, level: int, difficulty: str) -> bool:
        """
        Check whether a reward was already paid for the given key

        Older data may hold several rows per key, so this reads at most one row
        instead of assuming uniqueness.
        """
        stmt = (
            select(PointsHistoryModel.id)
            .where(
                PointsHistoryModel.user_id == user_id,
                PointsHistoryModel.game_id == game_id,
                PointsHistoryModel.level == level,
                PointsHistoryModel.difficulty == difficulty
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def append(
        self,
        user_id: str,
        game_id: str,
        level: int,
        difficulty: str,
        points_earned: int,
        earned_at: datetime
    ) -> PointsHistoryModel:
        """Append a ledger entry"""
        entry = PointsHistoryModel(
            user_id=user_id,
            game_id=game_id,
            level=level,
            difficulty=difficulty,
            points_earned=points_earned,
            earned_at=earned_at
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_recent(self, user_id: str, limit: int) -> List[PointsHistoryModel]:
        """Most recent entries for a user, newest first"""
        stmt = (
            select(PointsHistoryModel)
            .where(PointsHistoryModel.user_id == user_id)
            .order_by(PointsHistoryModel.earned_at.desc(), PointsHistoryModel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
