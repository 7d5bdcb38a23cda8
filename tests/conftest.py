"""
Shared fixtures: in-memory database, fake Spotify, seeded accounts
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SPOTIFY_CLIENT_ID", "test-client-id")
os.environ.setdefault("TOKEN_SECRET", "test-token-secret")

from typing import Optional
from urllib.parse import parse_qsl

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.passwords import hash_password
from integrations.spotify import SpotifyAccountsClient
from models import Account, Base, SpotifyUser, UserList

TEST_SECRET = "test-token-secret"


class FakeSpotify:
    """Scripted stand-in for the Spotify accounts service and /me."""

    def __init__(self):
        self.code_responses: list[tuple[int, dict]] = []
        self.refresh_responses: list[tuple[int, dict]] = []
        self.profile_responses: list[tuple[int, dict]] = []
        self.calls: list[tuple[str, dict]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/token":
            form = dict(parse_qsl(request.content.decode()))
            grant_type = form["grant_type"]
            self.calls.append((grant_type, form))
            queue = (
                self.code_responses
                if grant_type == "authorization_code"
                else self.refresh_responses
            )
        elif request.url.path == "/v1/me":
            self.calls.append(("profile", {"authorization": request.headers["Authorization"]}))
            queue = self.profile_responses
        else:
            return httpx.Response(404, json={"error": "not found"})

        if not queue:
            return httpx.Response(500, json={"error": "unscripted call"})
        status, body = queue.pop(0)
        return httpx.Response(status, json=body)

    def count(self, kind: str) -> int:
        return sum(1 for name, _ in self.calls if name == kind)

    def client(self) -> SpotifyAccountsClient:
        return SpotifyAccountsClient(
            client_id="test-client-id",
            redirect_uri="http://localhost:5173/callback",
            scopes=["user-read-private", "user-read-email"],
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def spotify():
    return FakeSpotify()


async def make_account(
    session,
    username: str = "listener",
    password: str = "correct horse",
    spotify_id: Optional[str] = None,
    refresh_token: Optional[str] = None,
) -> Account:
    """Create an account, optionally already linked to a Spotify user."""
    account = Account(username=username, password_hash=hash_password(password))
    session.add(account)
    if spotify_id is not None:
        spotify_user = SpotifyUser(
            spotify_id=spotify_id,
            display_name=f"{spotify_id} name",
            refresh_token=refresh_token,
        )
        session.add(spotify_user)
        await session.flush()
        account.spotify_user_id = spotify_user.id
    await session.flush()
    return account


async def make_list(session, owner_id: str, name: str = "Favourites") -> UserList:
    user_list = UserList(owner_id=owner_id, name=name)
    session.add(user_list)
    await session.flush()
    return user_list
