import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from redis.asyncio import Redis

from src.core.logger.logger import get_logger
from src.core.service.auth.models.token import TokenBlacklist
from src.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class TokenStore:
    """Redis-based store for revoked (signed out) access tokens"""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self.key_prefix = "blacklist:token:"
        self.margin_minutes = settings.TOKEN_BLACKLIST_EXPIRE_MARGIN_MINUTES

    def _get_key(self, jti: str) -> str:
        return f"{self.key_prefix}{jti}"

    async def add_to_blacklist(
        self,
        jti: str,
        exp: datetime,
        reason: Optional[str] = None
    ) -> None:
        """
        Add a token to the blacklist
        The entry is automatically removed after the token expires (plus margin)
        """
        now = datetime.now(timezone.utc)
        ttl_seconds = int((exp - now + timedelta(minutes=self.margin_minutes)).total_seconds())

        # Don't blacklist if token is already expired
        if ttl_seconds <= 0:
            logger.info(
                "Skipping blacklist for expired token",
                extra={"jti": jti}
            )
            return

        entry = TokenBlacklist(jti=jti, exp=exp, blacklisted_at=now, reason=reason)

        try:
            await self.redis.setex(
                self._get_key(jti),
                ttl_seconds,
                json.dumps(entry.model_dump(mode="json"))
            )
        except Exception as e:
            logger.error(
                "Failed to blacklist token",
                extra={
                    "jti": jti,
                    "error": str(e)
                }
            )
            raise

        logger.info(
            "Token blacklisted",
            extra={
                "jti": jti,
                "expires_in": ttl_seconds,
                "reason": reason
            }
        )

    async def is_blacklisted(self, jti: str) -> bool:
        """Check if a token is blacklisted"""
        try:
            exists = await self.redis.exists(self._get_key(jti))

            if exists:
                logger.info(
                    "Blacklisted token access attempt",
                    extra={"jti": jti}
                )

            return bool(exists)

        except Exception as e:
            # Fail-open when Redis is unreachable
            logger.warning(
                "Failed to check token blacklist, allowing token",
                extra={
                    "jti": jti,
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            return False
