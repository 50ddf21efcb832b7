"""
Input DTOs for scoring API endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.core.service.scoring.models import Difficulty


class PlayResultRequestDto(BaseModel):
    """DTO for a finished minigame session."""

    gameId: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Minigame identifier, e.g. 'sudoku' or 'memory-cards'"
    )
    level: int = Field(..., ge=1, description="Level that was just attempted")
    difficulty: Difficulty = Field(Difficulty.EASY, description="easy, medium or hard")
    won: bool = Field(..., description="Whether the session was won")
    pointsOverride: Optional[int] = Field(
        None,
        description="Client-side score hint; accepted for compatibility, the reward is computed server-side"
    )

    @field_validator('gameId')
    @classmethod
    def validate_game_id(cls, v):
        if not v or not v.strip():
            raise ValueError('Game ID cannot be empty')
        return v.strip()

    model_config = {
        "json_schema_extra": {
            "example": {
                "gameId": "sudoku",
                "level": 3,
                "difficulty": "medium",
                "won": True
            }
        }
    }
