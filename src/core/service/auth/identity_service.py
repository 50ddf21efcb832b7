from datetime import datetime, timezone
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logger.logger import get_logger
from src.core.service.auth.cache.token_store import TokenStore
from src.core.service.auth.models.token import TokenPayload
from src.core.service.auth.models.user import CallerIdentity, UserProfile
from src.infra.config.settings import get_settings
from src.infra.database import DatabaseManager
from src.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)
settings = get_settings()


class IdentityService:
    """Resolves the caller behind a bearer token issued by the identity provider"""

    def __init__(self, database: DatabaseManager, token_store: Optional[TokenStore] = None):
        self.database = database
        self.token_store = token_store
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Verify a JWT and return its payload

        Returns:
            TokenPayload, or None when the token is expired or invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]}
            )
            return TokenPayload(**payload)

        except ExpiredSignatureError:
            logger.info("Token expired")
            return None

        except (InvalidTokenError, PydanticValidationError) as e:
            logger.warning(
                "Invalid token",
                extra={"error": str(e)}
            )
            return None

    async def resolve(self, token: Optional[str]) -> Optional[CallerIdentity]:
        """
        Resolve the caller for a request

        A missing, invalid, expired or revoked token, or a token for an unknown
        user, resolves to None.
        """
        if not token:
            return None

        payload = self.decode_token(token)
        if payload is None:
            return None

        if payload.jti and self.token_store and await self.token_store.is_blacklisted(payload.jti):
            return None

        profile = await self.get_profile(payload.sub)
        if profile is None:
            logger.warning("Token for unknown user", extra={"user_id": payload.sub})
            return None

        return CallerIdentity(
            user_id=profile.id,
            email=profile.email,
            token_jti=payload.jti,
            token_exp=payload.exp
        )

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Load the user record for an id"""
        async def work(session: AsyncSession) -> Optional[UserProfile]:
            return await UserRepository(session).get_user(user_id)

        return await self.database.run_in_transaction(work)

    async def revoke(self, identity: CallerIdentity, reason: Optional[str] = None) -> bool:
        """
        Revoke the token the caller authenticated with

        Returns:
            True if the token was added to the blacklist
        """
        if not identity.token_jti or self.token_store is None:
            return False

        exp = identity.token_exp or datetime.now(timezone.utc)
        if exp.tzinfo is None:
            exp = exp.replace(tzinfo=timezone.utc)

        await self.token_store.add_to_blacklist(
            jti=identity.token_jti,
            exp=exp,
            reason=reason
        )
        return True
