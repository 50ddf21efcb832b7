"""
SQLAlchemy ORM models for database tables
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Column, String, Integer, DateTime, Boolean, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to timestamps read back from backends that drop the offset (SQLite)"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class UserModel(Base):
    """SQLAlchemy ORM model for users table (owned by the identity provider)"""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=True)
    name = Column(String(255), nullable=True)
    email_verification_time = Column(DateTime(timezone=True), nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index('idx_users_email', 'email'),
    )

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"


class UserScoreModel(Base):
    """SQLAlchemy ORM model for user_scores table"""

    __tablename__ = "user_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    coins = Column(Integer, default=0, nullable=False)
    games_played = Column(Integer, default=0, nullable=False)
    games_won = Column(Integer, default=0, nullable=False)
    referral_code = Column(String(32), nullable=True)
    referred_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_user_scores_user', 'user_id', unique=True),
        Index('idx_user_scores_referral_code', 'referral_code'),
    )

    def __repr__(self):
        return f"<UserScore(user_id='{self.user_id}', total_points={self.total_points})>"


class GameProgressModel(Base):
    """SQLAlchemy ORM model for game_progress table"""

    __tablename__ = "game_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    game_id = Column(String(64), nullable=False)
    level = Column(Integer, default=1, nullable=False)
    best_score = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_game_progress_user_game', 'user_id', 'game_id', unique=True),
    )

    def __repr__(self):
        return f"<GameProgress(user_id='{self.user_id}', game_id='{self.game_id}', level={self.level})>"


class PointsHistoryModel(Base):
    """SQLAlchemy ORM model for points_history table (append-only ledger)"""

    __tablename__ = "points_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    game_id = Column(String(64), nullable=False)
    level = Column(Integer, nullable=False)
    difficulty = Column(String(16), nullable=False)
    points_earned = Column(Integer, nullable=False)
    earned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Reward key index is not unique: older rows may repeat a key
    __table_args__ = (
        Index('idx_points_history_user', 'user_id'),
        Index('idx_points_history_reward_key', 'user_id', 'game_id', 'level', 'difficulty'),
    )

    def __repr__(self):
        return (
            f"<PointsHistory(user_id='{self.user_id}', game_id='{self.game_id}', "
            f"level={self.level}, difficulty='{self.difficulty}', points={self.points_earned})>"
        )


class EmailVerificationCodeModel(Base):
    """SQLAlchemy ORM model for email_verification_codes table"""

    __tablename__ = "email_verification_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    last_sent_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_email_verification_codes_user', 'user_id', unique=True),
    )

    def __repr__(self):
        return f"<EmailVerificationCode(user_id='{self.user_id}', attempts={self.attempts})>"
