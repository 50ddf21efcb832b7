import jwt
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from src.core.service.auth.identity_service import IdentityService
from src.core.service.auth.models.user import CallerIdentity
from src.infra.config.settings import get_settings

settings = get_settings()


def make_token(sub: str, expires_in: timedelta = timedelta(minutes=30), **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": sub, "iat": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def token_store():
    store = MagicMock()
    store.is_blacklisted = AsyncMock(return_value=False)
    store.add_to_blacklist = AsyncMock()
    return store


@pytest.fixture
def identity_service(database, token_store):
    return IdentityService(database, token_store)


@pytest.mark.asyncio
async def test_resolve_valid_token(identity_service, player):
    """Should resolve the user behind a valid token"""
    identity = await identity_service.resolve(make_token(player.user_id, jti="token-1"))

    assert identity.user_id == player.user_id
    assert identity.email == "player@example.com"
    assert identity.token_jti == "token-1"
    assert identity.token_exp is not None


@pytest.mark.asyncio
async def test_resolve_missing_token(identity_service):
    assert await identity_service.resolve(None) is None
    assert await identity_service.resolve("") is None


@pytest.mark.asyncio
async def test_resolve_expired_token(identity_service, player):
    token = make_token(player.user_id, expires_in=timedelta(minutes=-5))

    assert await identity_service.resolve(token) is None


@pytest.mark.asyncio
async def test_resolve_token_with_wrong_signature(identity_service, player):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": player.user_id, "exp": now + timedelta(minutes=5)},
        "some-other-secret",
        algorithm=settings.JWT_ALGORITHM
    )

    assert await identity_service.resolve(token) is None


@pytest.mark.asyncio
async def test_resolve_token_without_subject(identity_service):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"exp": now + timedelta(minutes=5)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )

    assert await identity_service.resolve(token) is None


@pytest.mark.asyncio
async def test_resolve_unknown_user(identity_service):
    assert await identity_service.resolve(make_token("deleted-user")) is None


@pytest.mark.asyncio
async def test_resolve_blacklisted_token(identity_service, token_store, player):
    """Should treat a signed-out token as anonymous"""
    token_store.is_blacklisted.return_value = True

    assert await identity_service.resolve(make_token(player.user_id, jti="revoked")) is None
    token_store.is_blacklisted.assert_awaited_once_with("revoked")


@pytest.mark.asyncio
async def test_get_profile(identity_service, make_user):
    await make_user("guest-user-0000000000001", email=None, name="Guest", is_anonymous=True)

    profile = await identity_service.get_profile("guest-user-0000000000001")

    assert profile.name == "Guest"
    assert profile.email is None
    assert profile.is_anonymous is True
    assert profile.email_verification_time is None


@pytest.mark.asyncio
async def test_revoke_blacklists_token(identity_service, token_store):
    exp = datetime.now(timezone.utc) + timedelta(minutes=10)
    identity = CallerIdentity(user_id="user-1", token_jti="token-1", token_exp=exp)

    assert await identity_service.revoke(identity, reason="Sign out") is True
    token_store.add_to_blacklist.assert_awaited_once_with(jti="token-1", exp=exp, reason="Sign out")


@pytest.mark.asyncio
async def test_revoke_without_jti(identity_service, token_store):
    assert await identity_service.revoke(CallerIdentity(user_id="user-1")) is False
    token_store.add_to_blacklist.assert_not_awaited()
