"""
FastAPI dependency injection functions.
The caller identity is resolved once here and passed explicitly into the engines.
"""

from typing import Optional
from fastapi import Depends
from redis.asyncio import Redis

from src.api.middleware.authentication.jwt_bearer import OptionalHTTPBearer
from src.core.exceptions.base import UnauthenticatedError
from src.core.service.auth.cache.token_store import TokenStore
from src.core.service.auth.identity_service import IdentityService
from src.core.service.auth.models.user import CallerIdentity
from src.core.service.email.resend_client import ResendEmailClient
from src.core.service.scoring.scoring_service import ScoringService
from src.core.service.verification.verification_mailer import VerificationMailer
from src.core.service.verification.verification_service import EmailVerificationService
from src.infra.config.redis import get_redis
from src.infra.database import DatabaseManager, get_database_manager

bearer_scheme = OptionalHTTPBearer()


async def get_database() -> DatabaseManager:
    """Get the shared database manager."""
    return get_database_manager()


async def get_redis_client() -> Redis:
    """Get Redis client dependency."""
    return await get_redis()


async def get_token_store(redis_client: Redis = Depends(get_redis_client)) -> TokenStore:
    """Get token store with Redis dependency."""
    return TokenStore(redis_client)


async def get_identity_service(
    database: DatabaseManager = Depends(get_database),
    token_store: TokenStore = Depends(get_token_store)
) -> IdentityService:
    """Get identity service with database and token store dependencies."""
    return IdentityService(database, token_store)


async def get_optional_identity(
    token: Optional[str] = Depends(bearer_scheme),
    identity_service: IdentityService = Depends(get_identity_service)
) -> Optional[CallerIdentity]:
    """Resolve the caller, or None for anonymous requests."""
    return await identity_service.resolve(token)


async def get_current_identity(
    identity: Optional[CallerIdentity] = Depends(get_optional_identity)
) -> CallerIdentity:
    """Resolve the caller or reject the request as unauthenticated."""
    if identity is None:
        raise UnauthenticatedError()
    return identity


async def get_scoring_service(database: DatabaseManager = Depends(get_database)) -> ScoringService:
    """Get scoring service with database dependency."""
    return ScoringService(database)


async def get_verification_service(
    database: DatabaseManager = Depends(get_database)
) -> EmailVerificationService:
    """Get email verification service with database dependency."""
    return EmailVerificationService(database)


async def get_email_client() -> ResendEmailClient:
    """Get the email delivery client."""
    return ResendEmailClient()


async def get_verification_mailer(
    verification_service: EmailVerificationService = Depends(get_verification_service),
    email_client: ResendEmailClient = Depends(get_email_client)
) -> VerificationMailer:
    """Get verification mailer with verification service and email client dependencies."""
    return VerificationMailer(verification_service, email_client)
