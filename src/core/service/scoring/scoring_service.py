from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions.base import UnauthenticatedError
from src.core.logger.logger import get_logger
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.scoring.models import (
    AggregateView,
    Difficulty,
    HistoryEntryView,
    PlayResult,
    ProgressUpdate,
    ProgressView,
    ScoreUpdate,
    ScoringConfig,
    apply_update,
    derive_referral_code,
)
from src.infra.database import DatabaseManager
from src.infra.models import GameProgressModel, as_utc
from src.infra.repository.points_history_repository import PointsHistoryRepository
from src.infra.repository.score_repository import GameProgressRepository, ScoreRepository

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScoringService:
    """Decides play rewards and applies score, progress and ledger writes atomically"""

    def __init__(
        self,
        database: DatabaseManager,
        config: Optional[ScoringConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.database = database
        self.config = config or ScoringConfig.from_settings()
        self.clock = clock or _utcnow

    @staticmethod
    def _require_identity(identity: Optional[CallerIdentity]) -> CallerIdentity:
        if identity is None:
            raise UnauthenticatedError()
        return identity

    async def record_play_result(
        self,
        identity: Optional[CallerIdentity],
        game_id: str,
        level: int,
        difficulty: Difficulty,
        won: bool
    ) -> PlayResult:
        """
        Record a finished play session and pay its reward at most once.

        A win pays `(base + level) * multiplier` only when the level has not
        been cleared yet and no ledger entry exists for the same
        (user, game, level, difficulty). The aggregate, the progress row and the
        ledger entry are written in one transaction.

        Args:
            identity: Authenticated caller
            game_id: Minigame identifier
            level: Level that was just attempted
            difficulty: Difficulty the level was played at
            won: Whether the session was won

        Returns:
            PlayResult with the points earned and the caller's new total

        Raises:
            UnauthenticatedError: No caller identity
        """
        user_id = self._require_identity(identity).user_id
        difficulty = Difficulty(difficulty)

        async def work(session: AsyncSession) -> PlayResult:
            scores = ScoreRepository(session)
            progress_repo = GameProgressRepository(session)
            history = PointsHistoryRepository(session)
            now = self.clock()

            existing_score = await scores.get_by_user(user_id, for_update=True)
            existing_progress = await progress_repo.get(user_id, game_id)

            already_completed_level = (
                existing_progress is not None and level < existing_progress.level
            )
            candidate_points = self.config.candidate_points(level, difficulty)

            should_reward = won and not already_completed_level
            if should_reward and await history.has_reward(user_id, game_id, level, difficulty.value):
                should_reward = False

            points_earned = candidate_points if should_reward else 0

            # Aggregate
            if existing_score is not None:
                total_points = existing_score.total_points + points_earned
                score_update = ScoreUpdate(
                    games_played=existing_score.games_played + 1,
                    games_won=existing_score.games_won + 1 if won else None,
                    total_points=total_points if points_earned > 0 else None,
                )
                apply_update(existing_score, score_update)
            else:
                total_points = points_earned
                await scores.create(
                    user_id=user_id,
                    total_points=total_points,
                    games_played=1,
                    games_won=1 if won else 0,
                    referral_code=derive_referral_code(user_id),
                )

            # Progress
            if existing_progress is not None:
                progress_update = ProgressUpdate()
                if won and level >= existing_progress.level:
                    progress_update.level = level + 1
                    progress_update.completed_at = now
                if points_earned > existing_progress.best_score:
                    progress_update.best_score = points_earned
                apply_update(existing_progress, progress_update)
            else:
                await progress_repo.create(GameProgressModel(
                    user_id=user_id,
                    game_id=game_id,
                    level=level + 1 if won else level,
                    best_score=points_earned,
                    completed_at=now if won else None,
                ))

            # Ledger
            if points_earned > 0:
                await history.append(
                    user_id=user_id,
                    game_id=game_id,
                    level=level,
                    difficulty=difficulty.value,
                    points_earned=points_earned,
                    earned_at=now,
                )

            await session.flush()
            return PlayResult(points_earned=points_earned, total_points=total_points)

        result = await self.database.run_in_transaction(work)

        if result.points_earned > 0:
            logger.info(
                "Points awarded",
                extra={
                    "user_id": user_id,
                    "game_id": game_id,
                    "game_level": level,
                    "difficulty": difficulty.value,
                    "points_earned": result.points_earned,
                    "total_points": result.total_points
                }
            )
        elif won:
            logger.info(
                "Reward suppressed for already credited result",
                extra={
                    "user_id": user_id,
                    "game_id": game_id,
                    "game_level": level,
                    "difficulty": difficulty.value
                }
            )
        else:
            logger.debug(
                "Lost session recorded",
                extra={"user_id": user_id, "game_id": game_id, "game_level": level}
            )

        return result

    async def get_aggregate(self, identity: Optional[CallerIdentity]) -> AggregateView:
        """Caller's aggregate, or a zero-valued default; never creates a row"""
        user_id = self._require_identity(identity).user_id

        async def work(session: AsyncSession) -> AggregateView:
            score = await ScoreRepository(session).get_by_user(user_id)
            if score is None:
                return AggregateView(referral_code=derive_referral_code(user_id))
            return AggregateView(
                total_points=score.total_points,
                coins=score.coins or 0,
                games_played=score.games_played,
                games_won=score.games_won,
                referral_code=score.referral_code or derive_referral_code(score.user_id),
            )

        return await self.database.run_in_transaction(work)

    async def get_progress(self, identity: Optional[CallerIdentity], game_id: str) -> ProgressView:
        """Caller's progress for a game, defaulting to level 1 with no best score"""
        user_id = self._require_identity(identity).user_id

        async def work(session: AsyncSession) -> ProgressView:
            progress = await GameProgressRepository(session).get(user_id, game_id)
            if progress is None:
                return ProgressView()
            return ProgressView(level=progress.level, best_score=progress.best_score)

        return await self.database.run_in_transaction(work)

    async def get_history(self, identity: Optional[CallerIdentity], limit: int = 10) -> List[HistoryEntryView]:
        """Caller's most recent ledger entries, newest first"""
        user_id = self._require_identity(identity).user_id

        async def work(session: AsyncSession) -> List[HistoryEntryView]:
            rows = await PointsHistoryRepository(session).list_recent(user_id, limit)
            return [
                HistoryEntryView(
                    game_id=row.game_id,
                    level=row.level,
                    difficulty=row.difficulty,
                    points_earned=row.points_earned,
                    earned_at=as_utc(row.earned_at),
                )
                for row in rows
            ]

        return await self.database.run_in_transaction(work)
