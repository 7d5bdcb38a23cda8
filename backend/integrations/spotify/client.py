"""Spotify OAuth (Authorization Code with PKCE) client."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx


class ProviderError(Exception):
    """Spotify answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass
class TokenGrant:
    """Tokens returned by the Spotify token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600
    token_type: str = "Bearer"
    scope: Optional[str] = None


@dataclass
class SpotifyProfile:
    """The subset of ``GET /me`` we keep."""

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class SpotifyAccountsClient:
    """Talks to the Spotify accounts service and the ``/me`` endpoint.

    This is a public PKCE client: no client secret is sent, the code
    verifier proves possession instead.
    """

    AUTH_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"
    API_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: Optional[list[str]] = None,
        auth_url: str = AUTH_URL,
        token_url: str = TOKEN_URL,
        api_url: str = API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            client_id: Spotify application client ID.
            redirect_uri: Registered redirect URI of the frontend callback.
            scopes: Scopes requested during authorization.
            auth_url: Authorization endpoint.
            token_url: Token endpoint.
            api_url: Web API base URL.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.scopes = scopes or []
        self.auth_url = auth_url
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def authorize_url(self, code_challenge: str, state: str) -> str:
        """Build the URL the browser is sent to for consent."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "code_challenge_method": "S256",
            "code_challenge": code_challenge,
            "scope": " ".join(self.scopes),
            "state": state,
            "show_dialog": "true",  # Always show auth dialog
        }
        return f"{self.auth_url}?{urlencode(params)}"

    async def _token_request(self, data: dict) -> TokenGrant:
        data = {**data, "client_id": self.client_id}
        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_url,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    data=data,
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Token endpoint unreachable: {e}") from e

        if response.status_code != 200:
            raise ProviderError(_error_message(response), response.status_code)

        body = _json_body(response)
        if not body.get("access_token"):
            raise ProviderError("Token response has no access_token", response.status_code)

        return TokenGrant(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token") or None,
            expires_in=int(body.get("expires_in", 3600)),
            token_type=body.get("token_type", "Bearer"),
            scope=body.get("scope"),
        )

    async def exchange_code(self, code: str, code_verifier: str) -> TokenGrant:
        """Exchange an authorization code for tokens."""
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        })

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new access token."""
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    async def get_profile(self, access_token: str) -> SpotifyProfile:
        """Fetch the current user's profile."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.api_url}/me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Profile endpoint unreachable: {e}") from e

        if response.status_code != 200:
            raise ProviderError(_error_message(response), response.status_code)

        body = _json_body(response)
        if not body.get("id"):
            raise ProviderError("Profile response has no id", response.status_code)

        return SpotifyProfile(
            id=body["id"],
            display_name=body.get("display_name"),
            email=body.get("email"),
        )


def _error_message(response: httpx.Response) -> str:
    """Best-effort human message from a Spotify error body."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or f"HTTP {response.status_code}"
    if isinstance(error, str):
        return body.get("error_description") or error
    return f"HTTP {response.status_code}"


def _json_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError as e:
        raise ProviderError("Response is not JSON", response.status_code) from e
    if not isinstance(body, dict):
        raise ProviderError("Unexpected response shape", response.status_code)
    return body
