"""Application accounts and their Spotify link."""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDMixin


class Account(Base, UUIDMixin, TimestampMixin):
    """An application login identity."""

    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)  # salt:derivedKeyHex

    # Unique, so one Spotify identity belongs to at most one account
    spotify_user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("spotify_users.id", ondelete="SET NULL"), nullable=True, unique=True
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username='{self.username}')>"

