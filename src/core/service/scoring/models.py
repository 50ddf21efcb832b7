"""Models for the scoring service."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from src.infra.config.settings import get_settings


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ScoringConfig(BaseModel):
    """Reward formula constants owned by a scoring service instance"""
    base_points_per_level: int = Field(default=10, ge=0)
    difficulty_multipliers: Dict[Difficulty, int] = Field(
        default_factory=lambda: {
            Difficulty.EASY: 1,
            Difficulty.MEDIUM: 2,
            Difficulty.HARD: 3,
        }
    )

    @classmethod
    def from_settings(cls) -> "ScoringConfig":
        settings = get_settings()
        return cls(
            base_points_per_level=settings.SCORING_BASE_POINTS_PER_LEVEL,
            difficulty_multipliers=settings.SCORING_DIFFICULTY_MULTIPLIERS,
        )

    def candidate_points(self, level: int, difficulty: Difficulty) -> int:
        """Points a first win of `level` at `difficulty` is worth"""
        return (self.base_points_per_level + level) * self.difficulty_multipliers[Difficulty(difficulty)]


class PlayResult(BaseModel):
    """Outcome of one recorded play session"""
    points_earned: int
    total_points: int


class AggregateView(BaseModel):
    total_points: int = 0
    coins: int = 0
    games_played: int = 0
    games_won: int = 0
    referral_code: str


class ProgressView(BaseModel):
    level: int = 1
    best_score: int = 0


class HistoryEntryView(BaseModel):
    game_id: str
    level: int
    difficulty: str
    points_earned: int
    earned_at: datetime


class ScoreUpdate(BaseModel):
    """Partial update of a score aggregate; unset fields are left untouched"""
    total_points: Optional[int] = None
    games_played: Optional[int] = None
    games_won: Optional[int] = None


class ProgressUpdate(BaseModel):
    """Partial update of game progress; unset fields are left untouched"""
    level: Optional[int] = None
    best_score: Optional[int] = None
    completed_at: Optional[datetime] = None


def apply_update(target: Any, update: BaseModel) -> Dict[str, Any]:
    """
    Merge a partial update into an ORM row.

    A field is written only when the update carries a value for it; every
    other column keeps its stored value.

    Returns:
        The fields that were written
    """
    changes = update.model_dump(exclude_none=True)
    for field, value in changes.items():
        setattr(target, field, value)
    return changes


def derive_referral_code(user_id: str) -> str:
    """Stable referral code: last 12 characters of the user id, upper-cased"""
    return user_id[-12:].upper()
