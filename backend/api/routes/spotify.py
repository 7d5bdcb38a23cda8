"""Spotify account linking routes."""

from fastapi import APIRouter, Depends

from api.deps import get_current_account_id, get_linker
from api.schemas import (
    LinkComplete,
    LinkStartResponse,
    LinkStatusResponse,
    SpotifyUserResponse,
    UpstreamTokenResponse,
)
from linking import OAuthLinker

router = APIRouter(prefix="/spotify", tags=["spotify"])


@router.post("/link", response_model=LinkStartResponse)
async def begin_link(
    account_id: str = Depends(get_current_account_id),
    linker: OAuthLinker = Depends(get_linker),
) -> LinkStartResponse:
    """Start linking; the client sends the browser to ``authorize_url``."""
    start = await linker.begin_link(account_id)
    return LinkStartResponse(
        authorize_url=start.authorize_url,
        state=start.state,
        expires_in=start.expires_in,
    )


@router.post("/link/complete", response_model=SpotifyUserResponse)
async def complete_link(
    payload: LinkComplete,
    account_id: str = Depends(get_current_account_id),
    linker: OAuthLinker = Depends(get_linker),
) -> SpotifyUserResponse:
    """Finish linking with the ``code`` and ``state`` Spotify redirected back with."""
    spotify_user = await linker.complete_link(account_id, payload.code, payload.state)
    return SpotifyUserResponse.model_validate(spotify_user)


@router.get("/status", response_model=LinkStatusResponse)
async def link_status(
    account_id: str = Depends(get_current_account_id),
    linker: OAuthLinker = Depends(get_linker),
) -> LinkStatusResponse:
    """Get current Spotify connection status."""
    status = await linker.link_status(account_id)
    if not status.connected:
        return LinkStatusResponse(connected=False)

    return LinkStatusResponse(
        connected=True,
        user=SpotifyUserResponse.model_validate(status.spotify_user),
        last_refreshed_at=status.last_refreshed_at,
    )


@router.post("/unlink")
async def unlink(
    account_id: str = Depends(get_current_account_id),
    linker: OAuthLinker = Depends(get_linker),
) -> dict:
    """Disconnect Spotify; lists and ratings stay with the Spotify identity."""
    was_linked = await linker.unlink(account_id)
    return {"message": "Spotify disconnected", "was_linked": was_linked}


@router.get("/token", response_model=UpstreamTokenResponse)
async def upstream_token(
    account_id: str = Depends(get_current_account_id),
    linker: OAuthLinker = Depends(get_linker),
) -> UpstreamTokenResponse:
    """Mint a fresh Spotify access token for direct Web API calls."""
    token = await linker.get_upstream_access_token(account_id)
    return UpstreamTokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
    )
