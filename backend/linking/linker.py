"""OAuth PKCE linking of an account to its Spotify identity.

Flow states::

    IDLE -> AWAITING_REDIRECT -> EXCHANGING_CODE -> FETCHING_PROFILE
         -> (RETRYING_WITH_REFRESH -> FETCHING_PROFILE) -> LINKED | FAILED

The profile fetch may be retried exactly once, after trading the refresh
token for a new access token. Any failure is terminal for the attempt and
the client has to start over from ``begin_link``.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    AlreadyLinked,
    InvalidToken,
    LinkFailed,
    MissingVerifier,
    ReauthRequired,
    SpotifyNotLinked,
    TokenExchangeFailed,
)
from integrations.spotify import ProviderError, SpotifyAccountsClient, SpotifyProfile
from linking.pkce import code_challenge, generate_code_verifier
from models import Account, LinkAttempt, SpotifyUser
from models.base import utcnow

logger = logging.getLogger(__name__)

PROFILE_RETRY_BUDGET = 1

# Refresh grant rejections that mean the stored token is dead
REJECTED_GRANT_STATUSES = {400, 401}


class LinkState(str, Enum):
    """States of one link attempt."""

    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_CODE = "exchanging_code"
    FETCHING_PROFILE = "fetching_profile"
    RETRYING_WITH_REFRESH = "retrying_with_refresh"
    LINKED = "linked"
    FAILED = "failed"


TRANSITIONS: dict[LinkState, set[LinkState]] = {
    LinkState.IDLE: {LinkState.AWAITING_REDIRECT},
    LinkState.AWAITING_REDIRECT: {LinkState.EXCHANGING_CODE, LinkState.FAILED},
    LinkState.EXCHANGING_CODE: {LinkState.FETCHING_PROFILE, LinkState.FAILED},
    LinkState.FETCHING_PROFILE: {
        LinkState.RETRYING_WITH_REFRESH,
        LinkState.LINKED,
        LinkState.FAILED,
    },
    LinkState.RETRYING_WITH_REFRESH: {LinkState.FETCHING_PROFILE, LinkState.FAILED},
    LinkState.LINKED: set(),
    LinkState.FAILED: set(),
}


@dataclass
class LinkFlow:
    """Tracks one attempt through the link state machine."""

    account_id: str
    state: LinkState = LinkState.IDLE
    retries_left: int = PROFILE_RETRY_BUDGET
    history: list[LinkState] = field(default_factory=list)

    def advance(self, new_state: LinkState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal link transition {self.state.value} -> {new_state.value}")
        self.history.append(self.state)
        self.state = new_state
        logger.debug("Link flow for account %s: %s", self.account_id, new_state.value)

    def fail(self) -> None:
        if self.state not in (LinkState.LINKED, LinkState.FAILED):
            self.advance(LinkState.FAILED)

    def consume_retry(self) -> bool:
        """Spend one unit of the retry budget, if any is left."""
        if self.retries_left <= 0:
            return False
        self.retries_left -= 1
        return True


@dataclass
class LinkStart:
    """What the client needs to send the browser to Spotify."""

    authorize_url: str
    state: str
    expires_in: int


@dataclass
class LinkStatus:
    """Whether an account is linked, and to whom."""

    connected: bool
    spotify_user: Optional[SpotifyUser] = None

    @property
    def last_refreshed_at(self) -> Optional[datetime]:
        return self.spotify_user.last_refreshed_at if self.spotify_user else None


@dataclass
class UpstreamToken:
    """A freshly minted Spotify access token."""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"


class OAuthLinker:
    """Runs the PKCE handshake and owns the stored refresh credential."""

    def __init__(
        self,
        session: AsyncSession,
        client: SpotifyAccountsClient,
        attempt_ttl: timedelta = timedelta(minutes=10),
    ) -> None:
        self.session = session
        self.client = client
        self.attempt_ttl = attempt_ttl

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def _account(self, account_id: str) -> Account:
        account = await self.session.get(Account, account_id)
        if account is None:
            raise InvalidToken()
        return account

    async def _linked_user(self, account: Account) -> Optional[SpotifyUser]:
        if account.spotify_user_id is None:
            return None
        return await self.session.get(SpotifyUser, account.spotify_user_id)

    # -------------------------------------------------------------------------
    # Handshake
    # -------------------------------------------------------------------------

    async def begin_link(self, account_id: str) -> LinkStart:
        """Store a fresh verifier server-side and build the consent URL."""
        await self._account(account_id)
        now = utcnow()

        # Drop this account's stale attempts
        await self.session.execute(
            delete(LinkAttempt).where(
                LinkAttempt.account_id == account_id,
                LinkAttempt.expires_at < now,
            )
            .execution_options(synchronize_session=False)
        )

        flow = LinkFlow(account_id=account_id)
        verifier = generate_code_verifier()
        state = secrets.token_urlsafe(32)
        self.session.add(
            LinkAttempt(
                id=state,
                account_id=account_id,
                code_verifier=verifier,
                expires_at=now + self.attempt_ttl,
            )
        )
        await self.session.flush()
        flow.advance(LinkState.AWAITING_REDIRECT)

        return LinkStart(
            authorize_url=self.client.authorize_url(code_challenge(verifier), state),
            state=state,
            expires_in=int(self.attempt_ttl.total_seconds()),
        )

    async def _consume_verifier(self, account_id: str, state: Optional[str]) -> str:
        """Pop the stored verifier; an attempt can be completed only once."""
        attempt = await self.session.get(LinkAttempt, state) if state else None
        if attempt is None or attempt.account_id != account_id:
            raise MissingVerifier()

        verifier = attempt.code_verifier
        expired = attempt.is_expired()
        await self.session.delete(attempt)
        # Commit now so a failed exchange cannot be replayed
        await self.session.commit()

        if expired:
            raise MissingVerifier("Spotify link attempt expired. Start linking again.")
        return verifier

    async def complete_link(
        self,
        account_id: str,
        code: str,
        state: Optional[str],
    ) -> SpotifyUser:
        """Finish the handshake and link the Spotify identity to the account."""
        flow = LinkFlow(account_id=account_id, state=LinkState.AWAITING_REDIRECT)
        try:
            verifier = await self._consume_verifier(account_id, state)

            flow.advance(LinkState.EXCHANGING_CODE)
            try:
                grant = await self.client.exchange_code(code, verifier)
            except ProviderError as e:
                raise TokenExchangeFailed(f"Spotify token exchange failed: {e}") from e

            profile, refresh_token = await self._fetch_profile(
                flow, grant.access_token, grant.refresh_token
            )
            spotify_user = await self._persist_link(
                account_id, profile, refresh_token, grant.scope
            )
        except Exception:
            flow.fail()
            logger.info(
                "Spotify link failed for account %s after %s",
                account_id,
                " -> ".join(s.value for s in flow.history),
            )
            raise

        flow.advance(LinkState.LINKED)
        logger.info("Account %s linked to Spotify user %s", account_id, spotify_user.spotify_id)
        return spotify_user

    async def _fetch_profile(
        self,
        flow: LinkFlow,
        access_token: str,
        refresh_token: Optional[str],
    ) -> tuple[SpotifyProfile, Optional[str]]:
        """Fetch ``/me``, spending at most one refresh-and-retry.

        Returns the profile and the newest refresh token seen.
        """
        while True:
            flow.advance(LinkState.FETCHING_PROFILE)
            try:
                return await self.client.get_profile(access_token), refresh_token
            except ProviderError as e:
                if not refresh_token or not flow.consume_retry():
                    raise LinkFailed(f"Could not fetch Spotify profile: {e}") from e
                logger.info(
                    "Profile fetch failed for account %s (%s), refreshing once",
                    flow.account_id,
                    e.status_code,
                )

            flow.advance(LinkState.RETRYING_WITH_REFRESH)
            try:
                refreshed = await self.client.refresh(refresh_token)
            except ProviderError as e:
                raise LinkFailed(f"Could not refresh Spotify token: {e}") from e

            access_token = refreshed.access_token
            if refreshed.refresh_token:
                refresh_token = refreshed.refresh_token

    async def _persist_link(
        self,
        account_id: str,
        profile: SpotifyProfile,
        refresh_token: Optional[str],
        scopes: Optional[str],
    ) -> SpotifyUser:
        """Upsert the Spotify identity and attach it to the account."""
        account = await self._account(account_id)

        stmt = select(SpotifyUser).where(SpotifyUser.spotify_id == profile.id)
        result = await self.session.execute(stmt)
        spotify_user = result.scalar_one_or_none()

        if spotify_user is not None:
            owner_stmt = select(Account.id).where(Account.spotify_user_id == spotify_user.id)
            owner_id = (await self.session.execute(owner_stmt)).scalar_one_or_none()
            if owner_id is not None and owner_id != account.id:
                raise AlreadyLinked()
            spotify_user.display_name = profile.display_name
            spotify_user.email = profile.email
        else:
            spotify_user = SpotifyUser(
                spotify_id=profile.id,
                display_name=profile.display_name,
                email=profile.email,
            )
            self.session.add(spotify_user)

        # Never overwrite a stored refresh token with nothing
        if refresh_token:
            spotify_user.refresh_token = refresh_token
        if scopes:
            spotify_user.scopes = scopes

        try:
            await self.session.flush()
            account.spotify_user_id = spotify_user.id
            await self.session.flush()
        except IntegrityError as e:
            raise AlreadyLinked() from e

        return spotify_user

    # -------------------------------------------------------------------------
    # Linked identity
    # -------------------------------------------------------------------------

    async def link_status(self, account_id: str) -> LinkStatus:
        account = await self._account(account_id)
        spotify_user = await self._linked_user(account)
        return LinkStatus(connected=spotify_user is not None, spotify_user=spotify_user)

    async def unlink(self, account_id: str) -> bool:
        """Detach the Spotify identity from the account.

        Lists and ratings belong to the identity and come back on relink.
        Returns whether the account was linked.
        """
        account = await self._account(account_id)
        was_linked = account.spotify_user_id is not None
        account.spotify_user_id = None
        await self.session.flush()
        if was_linked:
            logger.info("Account %s unlinked from Spotify", account_id)
        return was_linked

    async def get_upstream_access_token(self, account_id: str) -> UpstreamToken:
        """Mint a new Spotify access token from the stored refresh token.

        Always goes to Spotify; nothing is cached. Concurrent calls for one
        account race and the last rotated refresh token wins.
        """
        account = await self._account(account_id)
        spotify_user = await self._linked_user(account)
        if spotify_user is None:
            raise SpotifyNotLinked()
        if not spotify_user.refresh_token:
            raise ReauthRequired()

        try:
            grant = await self.client.refresh(spotify_user.refresh_token)
        except ProviderError as e:
            if e.status_code in REJECTED_GRANT_STATUSES:
                logger.info("Refresh grant rejected for account %s", account_id)
                raise ReauthRequired() from e
            raise TokenExchangeFailed(f"Spotify token refresh failed: {e}") from e

        if grant.refresh_token and grant.refresh_token != spotify_user.refresh_token:
            spotify_user.refresh_token = grant.refresh_token
            logger.info("Rotated Spotify refresh token for account %s", account_id)
        spotify_user.last_refreshed_at = utcnow()
        await self.session.flush()

        return UpstreamToken(
            access_token=grant.access_token,
            expires_in=grant.expires_in,
            token_type=grant.token_type,
        )

