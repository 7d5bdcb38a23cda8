"""User lists, their ordered items, and album ratings."""

from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDMixin


class ItemType(str, Enum):
    """Kinds of Spotify objects a list can hold."""

    ALBUM = "album"
    TRACK = "track"
    ARTIST = "artist"


class UserList(Base, UUIDMixin, TimestampMixin):
    """A user-owned ordered list."""

    __tablename__ = "lists"

    owner_id: Mapped[str] = mapped_column(
        ForeignKey("spotify_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    items: Mapped[list["ListItem"]] = relationship(
        "ListItem",
        back_populates="user_list",
        cascade="all, delete-orphan",
        order_by="ListItem.position",
    )

    def __repr__(self) -> str:
        return f"<UserList(id={self.id}, name='{self.name}')>"


class ListItem(Base, UUIDMixin, TimestampMixin):
    """An entry inside a list with its position."""

    __tablename__ = "list_items"
    __table_args__ = (
        UniqueConstraint("list_id", "item_type", "item_id", name="uq_list_items_list_item"),
        CheckConstraint("position > 0", name="ck_list_items_position_positive"),
    )

    list_id: Mapped[str] = mapped_column(
        ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)  # ItemType value
    item_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Spotify id
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Display metadata
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    item_subtitle: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    user_list: Mapped["UserList"] = relationship("UserList", back_populates="items")

    def __repr__(self) -> str:
        return f"<ListItem(list_id={self.list_id}, item={self.item_type}:{self.item_id}, pos={self.position})>"


class Rating(Base, UUIDMixin, TimestampMixin):
    """A 1-10 rating of an album."""

    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("owner_id", "album_id", name="uq_ratings_owner_album"),
        CheckConstraint("rating BETWEEN 1 AND 10", name="ck_ratings_range"),
    )

    owner_id: Mapped[str] = mapped_column(
        ForeignKey("spotify_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    album_id: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Rating(album_id={self.album_id}, rating={self.rating})>"
