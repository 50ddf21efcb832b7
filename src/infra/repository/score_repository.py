"""
Score aggregate and game progress repositories using SQLAlchemy ORM
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infra.models import GameProgressModel, UserScoreModel


class ScoreRepository:
    """Repository for per-user score aggregates"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user(self, user_id: str, for_update: bool = False) -> Optional[UserScoreModel]:
        """
        Get the aggregate row for a user

        Args:
            user_id: User id
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            UserScoreModel or None
        """
        stmt = select(UserScoreModel).where(UserScoreModel.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        user_id: str,
        total_points: int,
        games_played: int,
        games_won: int,
        referral_code: str,
        coins: int = 0
    ) -> UserScoreModel:
        """Insert a new aggregate row; flushes so unique index races surface here"""
        score = UserScoreModel(
            user_id=user_id,
            total_points=total_points,
            coins=coins,
            games_played=games_played,
            games_won=games_won,
            referral_code=referral_code
        )
        self.session.add(score)
        await self.session.flush()
        return score


class GameProgressRepository:
    """Repository for per-user, per-game progression"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str, game_id: str) -> Optional[GameProgressModel]:
        """Get progress for a (user, game) pair"""
        stmt = select(GameProgressModel).where(
            GameProgressModel.user_id == user_id,
            GameProgressModel.game_id == game_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, progress: GameProgressModel) -> GameProgressModel:
        """Insert a new progress row"""
        self.session.add(progress)
        await self.session.flush()
        return progress
