"""
Scoring controller: play results, score aggregate, progress and reward history.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from src.api.controller.scores.dto.input_dto import PlayResultRequestDto
from src.api.controller.scores.dto.output_dto import (
    HistoryEntryResponseDto,
    PlayResultResponseDto,
    ProgressResponseDto,
    ScoreResponseDto,
)
from src.core.dependencies import get_current_identity, get_optional_identity, get_scoring_service
from src.core.logger.logger import get_logger
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.scoring.scoring_service import ScoringService
from src.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/scores", tags=["Scores"])


def _summarize(points_earned: int, won: bool) -> str:
    if points_earned > 0:
        return f"Points awarded: {points_earned}"
    if won:
        return "This result was already counted, no points awarded"
    return "Result recorded"


@router.post(
    "/play",
    response_model=PlayResultResponseDto,
    responses={401: {"description": "Not signed in"}}
)
async def record_play_result(
    request: PlayResultRequestDto,
    identity: CallerIdentity = Depends(get_current_identity),
    scoring_service: ScoringService = Depends(get_scoring_service)
):
    """
    Record a finished minigame session.

    Points are paid once per (game, level, difficulty) and only for levels the
    player has not cleared yet.
    """
    if request.pointsOverride is not None:
        logger.debug(
            "Ignoring client points override",
            extra={"user_id": identity.user_id, "game_id": request.gameId}
        )

    result = await scoring_service.record_play_result(
        identity,
        game_id=request.gameId,
        level=request.level,
        difficulty=request.difficulty,
        won=request.won
    )

    return PlayResultResponseDto(
        pointsEarned=result.points_earned,
        totalPoints=result.total_points,
        message=_summarize(result.points_earned, request.won)
    )


@router.get("/me", response_model=Optional[ScoreResponseDto])
async def get_score(
    identity: Optional[CallerIdentity] = Depends(get_optional_identity),
    scoring_service: ScoringService = Depends(get_scoring_service)
):
    """Caller's points, coins and game counters; null when not signed in."""
    if identity is None:
        return None

    aggregate = await scoring_service.get_aggregate(identity)
    return ScoreResponseDto(
        totalPoints=aggregate.total_points,
        coins=aggregate.coins,
        gamesPlayed=aggregate.games_played,
        gamesWon=aggregate.games_won,
        referralCode=aggregate.referral_code
    )


@router.get("/progress/{game_id}", response_model=Optional[ProgressResponseDto])
async def get_progress(
    game_id: str,
    identity: Optional[CallerIdentity] = Depends(get_optional_identity),
    scoring_service: ScoringService = Depends(get_scoring_service)
):
    """Caller's progression in one game; null when not signed in."""
    if identity is None:
        return None

    progress = await scoring_service.get_progress(identity, game_id)
    return ProgressResponseDto(level=progress.level, bestScore=progress.best_score)


@router.get("/history", response_model=List[HistoryEntryResponseDto])
async def get_history(
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
    identity: Optional[CallerIdentity] = Depends(get_optional_identity),
    scoring_service: ScoringService = Depends(get_scoring_service)
):
    """Caller's most recent rewards, newest first; empty when not signed in."""
    if identity is None:
        return []

    entries = await scoring_service.get_history(identity, limit=limit)
    return [
        HistoryEntryResponseDto(
            gameId=entry.game_id,
            level=entry.level,
            difficulty=entry.difficulty,
            pointsEarned=entry.points_earned,
            earnedAt=entry.earned_at
        )
        for entry in entries
    ]
