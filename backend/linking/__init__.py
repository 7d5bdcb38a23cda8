"""Linking application accounts to Spotify via OAuth PKCE."""

from linking.linker import (
    LinkFlow,
    LinkStart,
    LinkState,
    LinkStatus,
    OAuthLinker,
    UpstreamToken,
)

__all__ = ["LinkFlow", "LinkStart", "LinkState", "LinkStatus", "OAuthLinker", "UpstreamToken"]
