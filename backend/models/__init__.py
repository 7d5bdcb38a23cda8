"""SQLAlchemy models for CrateDigger."""

from models.base import Base
from models.account import Account
from models.spotify import LinkAttempt, SpotifyUser
from models.collection import ItemType, ListItem, Rating, UserList

__all__ = [
    "Base",
    "Account",
    "SpotifyUser",
    "LinkAttempt",
    "ItemType",
    "UserList",
    "ListItem",
    "Rating",
]
