"""
End-to-end tests through the HTTP surface
"""

import httpx
import pytest
from sqlalchemy.exc import OperationalError

import api.deps
import api.main
from api.config import Settings
from api.database import get_session
from api.deps import get_spotify_client, get_token_engine
from api.main import app
from auth.tokens import SessionTokenEngine

from conftest import TEST_SECRET

PROFILE = {"id": "spotify-user-1", "display_name": "Listener One", "email": "one@example.com"}


@pytest.fixture
async def client(session_factory, spotify):
    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_token_engine] = lambda: SessionTokenEngine(TEST_SECRET)
    app.dependency_overrides[get_spotify_client] = spotify.client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client, username="listener", password="correct horse") -> dict:
    response = await client.post(
        "/api/auth/register", json={"username": username, "password": password}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def link(client, spotify, headers, profile=PROFILE) -> dict:
    start = await client.post("/api/spotify/link", headers=headers)
    assert start.status_code == 200, start.text
    spotify.code_responses.append((200, {"access_token": "access-1", "refresh_token": "refresh-1"}))
    spotify.profile_responses.append((200, profile))

    response = await client.post(
        "/api/spotify/link/complete",
        headers=headers,
        json={"code": "auth-code", "state": start.json()["state"]},
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestAccounts:
    async def test_register_login_me(self, client):
        headers = await register(client, username="  listener  ")

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["username"] == "listener"
        assert me.json()["spotify_user_id"] is None

        login = await client.post(
            "/api/auth/login", json={"username": "listener", "password": "correct horse"}
        )
        assert login.status_code == 200
        assert login.json()["account"]["id"] == me.json()["id"]

    async def test_duplicate_username(self, client):
        await register(client)

        response = await client.post(
            "/api/auth/register", json={"username": "listener", "password": "another one"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "username_taken"

    async def test_weak_password(self, client):
        response = await client.post(
            "/api/auth/register", json={"username": "listener", "password": "short"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "weak_password"

    async def test_wrong_password(self, client):
        await register(client)

        response = await client.post(
            "/api/auth/login", json={"username": "listener", "password": "wrong horse"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    async def test_missing_token(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "missing_token"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_tampered_token(self, client):
        headers = await register(client)
        token = headers["Authorization"]
        tampered = {"Authorization": token[:-1] + ("A" if token[-1] != "A" else "B")}

        response = await client.get("/api/auth/me", headers=tampered)

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"


class TestSpotifyLink:
    async def test_link_status_token_unlink(self, client, spotify):
        headers = await register(client)

        linked = await link(client, spotify, headers)
        assert linked["spotify_id"] == "spotify-user-1"

        status = await client.get("/api/spotify/status", headers=headers)
        assert status.json()["connected"] is True
        assert status.json()["user"]["display_name"] == "Listener One"

        spotify.refresh_responses.append((200, {"access_token": "fresh", "expires_in": 3600}))
        token = await client.get("/api/spotify/token", headers=headers)
        assert token.status_code == 200
        assert token.json()["access_token"] == "fresh"

        unlink = await client.post("/api/spotify/unlink", headers=headers)
        assert unlink.json()["was_linked"] is True
        status = await client.get("/api/spotify/status", headers=headers)
        assert status.json()["connected"] is False

    async def test_state_cannot_be_replayed(self, client, spotify):
        headers = await register(client)
        start = await client.post("/api/spotify/link", headers=headers)
        state = start.json()["state"]
        spotify.code_responses.append((400, {"error": "invalid_grant"}))

        first = await client.post(
            "/api/spotify/link/complete", headers=headers, json={"code": "c", "state": state}
        )
        second = await client.post(
            "/api/spotify/link/complete", headers=headers, json={"code": "c", "state": state}
        )

        assert first.status_code == 502
        assert first.json()["error"] == "token_exchange_failed"
        assert second.status_code == 400
        assert second.json()["error"] == "missing_verifier"

    async def test_identity_already_linked(self, client, spotify):
        first = await register(client, username="first")
        second = await register(client, username="second")
        await link(client, spotify, first)

        start = await client.post("/api/spotify/link", headers=second)
        spotify.code_responses.append((200, {"access_token": "a", "refresh_token": "r"}))
        spotify.profile_responses.append((200, PROFILE))
        response = await client.post(
            "/api/spotify/link/complete",
            headers=second,
            json={"code": "c", "state": start.json()["state"]},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "already_linked"


class TestLists:
    @pytest.fixture
    async def headers(self, client, spotify):
        headers = await register(client)
        await link(client, spotify, headers)
        return headers

    async def add(self, client, headers, list_id, album_id) -> dict:
        response = await client.post(
            f"/api/lists/{list_id}/items",
            headers=headers,
            json={"item_id": album_id, "item_name": f"Album {album_id}"},
        )
        assert response.status_code == 201, response.text
        return response.json()

    async def test_requires_linked_spotify(self, client):
        headers = await register(client)

        response = await client.get("/api/lists", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "spotify_not_linked"

    async def test_list_lifecycle(self, client, headers):
        created = await client.post("/api/lists", headers=headers, json={"name": "Crates"})
        assert created.status_code == 201
        list_id = created.json()["id"]

        a = await self.add(client, headers, list_id, "A")
        b = await self.add(client, headers, list_id, "B")
        c = await self.add(client, headers, list_id, "C")
        assert [a["position"], b["position"], c["position"]] == [1, 2, 3]

        reordered = await client.patch(
            f"/api/lists/{list_id}/items/reorder",
            headers=headers,
            json={"ordered_item_ids": [c["id"], a["id"], b["id"]]},
        )
        assert reordered.status_code == 200
        assert [i["item_id"] for i in reordered.json()["items"]] == ["C", "A", "B"]

        moved = await client.post(
            f"/api/lists/{list_id}/items/{b['id']}/move",
            headers=headers,
            json={"direction": "up"},
        )
        assert [(i["item_id"], i["position"]) for i in moved.json()["items"]] == [
            ("C", 1),
            ("B", 2),
            ("A", 3),
        ]

        removed = await client.delete(f"/api/lists/{list_id}/items/{c['id']}", headers=headers)
        assert removed.status_code == 204

        detail = await client.get(f"/api/lists/{list_id}", headers=headers)
        assert [(i["item_id"], i["position"]) for i in detail.json()["items"]] == [
            ("B", 2),
            ("A", 3),
        ]

        renamed = await client.patch(f"/api/lists/{list_id}", headers=headers, json={"name": "Digs"})
        assert renamed.json()["name"] == "Digs"

        deleted = await client.delete(f"/api/lists/{list_id}", headers=headers)
        assert deleted.status_code == 204
        missing = await client.get(f"/api/lists/{list_id}", headers=headers)
        assert missing.status_code == 404

    async def test_re_adding_an_item_answers_200(self, client, headers):
        list_id = (await client.post("/api/lists", headers=headers, json={"name": "L"})).json()["id"]
        first = await self.add(client, headers, list_id, "A")

        response = await client.post(
            f"/api/lists/{list_id}/items",
            headers=headers,
            json={"item_id": "A", "item_name": "Album A (Remastered)"},
        )

        assert response.status_code == 200
        assert response.json()["id"] == first["id"]
        assert response.json()["position"] == 1
        assert response.json()["item_name"] == "Album A (Remastered)"

    @pytest.mark.parametrize("name", ["   ", "\t"])
    async def test_blank_list_name(self, client, headers, name):
        created = await client.post("/api/lists", headers=headers, json={"name": name})
        assert created.status_code == 400
        assert created.json()["error"] == "invalid_list_name"

        list_id = (await client.post("/api/lists", headers=headers, json={"name": "L"})).json()["id"]
        renamed = await client.patch(f"/api/lists/{list_id}", headers=headers, json={"name": name})
        assert renamed.status_code == 400
        assert renamed.json()["error"] == "invalid_list_name"

    async def test_duplicate_reorder_ids(self, client, headers):
        list_id = (await client.post("/api/lists", headers=headers, json={"name": "L"})).json()["id"]
        a = await self.add(client, headers, list_id, "A")

        response = await client.patch(
            f"/api/lists/{list_id}/items/reorder",
            headers=headers,
            json={"ordered_item_ids": [a["id"], a["id"]]},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_reorder"

    async def test_other_users_list_is_forbidden(self, client, spotify, headers):
        list_id = (await client.post("/api/lists", headers=headers, json={"name": "L"})).json()["id"]
        other = await register(client, username="other")
        await link(client, spotify, other, profile={**PROFILE, "id": "spotify-user-2"})

        response = await client.get(f"/api/lists/{list_id}", headers=other)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"


class TestRatings:
    @pytest.fixture
    async def headers(self, client, spotify):
        headers = await register(client)
        await link(client, spotify, headers)
        return headers

    async def test_rate_and_rerate(self, client, headers):
        await client.post("/api/ratings", headers=headers, json={"album_id": "X", "rating": 4})
        response = await client.post("/api/ratings", headers=headers, json={"album_id": "X", "rating": 8})
        assert response.status_code == 200

        ratings = await client.get("/api/ratings", headers=headers)
        assert [(r["album_id"], r["rating"]) for r in ratings.json()] == [("X", 8)]

    @pytest.mark.parametrize("value", [0, 11])
    async def test_out_of_range(self, client, headers, value):
        response = await client.post(
            "/api/ratings", headers=headers, json={"album_id": "X", "rating": value}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_rating"

    @pytest.mark.parametrize("value", ["7", 7.5, True])
    async def test_non_integer_is_rejected(self, client, headers, value):
        response = await client.post(
            "/api/ratings", headers=headers, json={"album_id": "X", "rating": value}
        )

        assert response.status_code == 422


class TestHealth:
    async def test_healthy(self, client, db_engine, monkeypatch):
        monkeypatch.setattr(api.main, "get_engine", lambda: db_engine)

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_database_down(self, client, monkeypatch):
        def broken_engine():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(api.main, "get_engine", broken_engine)

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json() == {"error": "database_unavailable", "detail": "Database unavailable"}


class TestConfiguration:
    async def test_missing_spotify_client_id(self, client, monkeypatch):
        headers = await register(client)
        app.dependency_overrides.pop(get_spotify_client)
        monkeypatch.setattr(api.deps, "get_settings", lambda: Settings(spotify_client_id=None))

        response = await client.post("/api/spotify/link", headers=headers)

        assert response.status_code == 500
        assert response.json()["error"] == "spotify_not_configured"
