"""Linked Spotify identities and pending PKCE link attempts."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDMixin, utcnow


class SpotifyUser(Base, UUIDMixin, TimestampMixin):
    """The Spotify account an application account is linked to."""

    __tablename__ = "spotify_users"

    spotify_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Rotates over time (encrypted in production)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scopes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_refreshed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<SpotifyUser(spotify_id={self.spotify_id}, name='{self.display_name}')>"


class LinkAttempt(Base, TimestampMixin):
    """Server-side PKCE verifier for one in-flight link attempt.

    The primary key doubles as the OAuth ``state`` parameter, so the
    verifier survives the browser round trip without ever reaching the
    client.
    """

    __tablename__ = "link_attempts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code_verifier: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the attempt can no longer be completed."""
        now = now or utcnow()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=now.tzinfo)
        return now >= expires_at

    def __repr__(self) -> str:
        return f"<LinkAttempt(account_id={self.account_id}, expires_at={self.expires_at})>"

