"""FastAPI dependencies wiring configuration into the core components."""

import logging
import secrets
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.config import get_settings
from api.database import get_session
from auth.accounts import AccountService
from auth.gate import AuthGate
from auth.tokens import SessionTokenEngine
from core.errors import SpotifyNotConfigured, SpotifyNotLinked
from integrations.spotify import SpotifyAccountsClient
from linking import OAuthLinker
from models import Account, SpotifyUser
from ordering import ListService, PositionEngine, RatingService

logger = logging.getLogger(__name__)


@lru_cache
def get_token_engine() -> SessionTokenEngine:
    """Process-wide token engine; its secret lives as long as the process."""
    settings = get_settings()
    secret = settings.token_secret
    if not secret:
        logger.warning("TOKEN_SECRET is not set, sessions will not survive a restart")
        secret = secrets.token_urlsafe(48)
    return SessionTokenEngine(secret, timedelta(days=settings.token_lifetime_days))


def get_auth_gate(engine: SessionTokenEngine = Depends(get_token_engine)) -> AuthGate:
    return AuthGate(engine)


def get_spotify_client() -> SpotifyAccountsClient:
    settings = get_settings()
    if not settings.spotify_client_id:
        raise SpotifyNotConfigured()
    return SpotifyAccountsClient(
        client_id=settings.spotify_client_id,
        redirect_uri=settings.spotify_redirect_uri,
        scopes=settings.spotify_scopes,
        auth_url=settings.spotify_auth_url,
        token_url=settings.spotify_token_url,
        api_url=settings.spotify_api_url,
        timeout=settings.spotify_timeout_seconds,
    )


# =============================================================================
# IDENTITY
# =============================================================================

async def get_current_account_id(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> str:
    """Authenticate the request and remember who made it."""
    account_id = gate.authenticate(request.headers.get("Authorization"))
    request.state.account_id = account_id
    return account_id


def get_account_service(
    session: AsyncSession = Depends(get_session),
    engine: SessionTokenEngine = Depends(get_token_engine),
) -> AccountService:
    settings = get_settings()
    return AccountService(
        session,
        engine,
        username_min_length=settings.username_min_length,
        password_min_length=settings.password_min_length,
    )


async def get_current_account(
    account_id: str = Depends(get_current_account_id),
    accounts: AccountService = Depends(get_account_service),
) -> Account:
    return await accounts.get(account_id)


async def get_linked_spotify_user(
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> SpotifyUser:
    """The Spotify identity every list and rating operation runs as."""
    if account.spotify_user_id is None:
        raise SpotifyNotLinked()
    spotify_user = await session.get(SpotifyUser, account.spotify_user_id)
    if spotify_user is None:
        raise SpotifyNotLinked()
    return spotify_user


# =============================================================================
# SERVICES
# =============================================================================

def get_linker(
    session: AsyncSession = Depends(get_session),
    client: SpotifyAccountsClient = Depends(get_spotify_client),
) -> OAuthLinker:
    settings = get_settings()
    return OAuthLinker(
        session,
        client,
        attempt_ttl=timedelta(minutes=settings.link_attempt_ttl_minutes),
    )


def get_position_engine(session: AsyncSession = Depends(get_session)) -> PositionEngine:
    return PositionEngine(session)


def get_list_service(session: AsyncSession = Depends(get_session)) -> ListService:
    return ListService(session)


def get_rating_service(session: AsyncSession = Depends(get_session)) -> RatingService:
    return RatingService(session)
