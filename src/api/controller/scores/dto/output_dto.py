"""
Output DTOs for scoring API endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class PlayResultResponseDto(BaseModel):
    """DTO for the outcome of a recorded session."""

    pointsEarned: int = Field(..., description="Points paid for this session (0 if none)")
    totalPoints: int = Field(..., description="Caller's total after this session")
    message: str = Field(..., description="Short human-readable summary")


class ScoreResponseDto(BaseModel):
    """DTO for the caller's score aggregate."""

    totalPoints: int
    coins: int
    gamesPlayed: int
    gamesWon: int
    referralCode: str


class ProgressResponseDto(BaseModel):
    """DTO for per-game progression."""

    level: int = Field(..., description="Next level to attempt")
    bestScore: int = Field(..., description="Highest points earned in a single session")


class HistoryEntryResponseDto(BaseModel):
    """DTO for one reward ledger entry."""

    gameId: str
    level: int
    difficulty: str
    pointsEarned: int
    earnedAt: datetime
