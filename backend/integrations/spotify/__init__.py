"""Spotify accounts service client."""

from integrations.spotify.client import (
    ProviderError,
    SpotifyAccountsClient,
    SpotifyProfile,
    TokenGrant,
)

__all__ = ["ProviderError", "SpotifyAccountsClient", "SpotifyProfile", "TokenGrant"]
