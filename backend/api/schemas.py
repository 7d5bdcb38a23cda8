"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import ItemType
from ordering.engine import Direction


# Base schemas
class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    detail: str


# Account schemas
class Credentials(BaseModel):
    """Username and password for register/login."""

    username: str = Field(max_length=255)
    password: str = Field(max_length=1024)


class AccountResponse(BaseSchema):
    """Schema for account response."""

    id: str
    username: str
    spotify_user_id: Optional[str] = None
    created_at: datetime


class AuthResponse(BaseModel):
    """Session token plus the account it was issued for."""

    token: str
    account: AccountResponse


# Spotify link schemas
class LinkStartResponse(BaseModel):
    """Where to send the browser to grant access."""

    authorize_url: str
    state: str
    expires_in: int


class LinkComplete(BaseModel):
    """Query parameters Spotify handed back to the frontend callback."""

    code: str
    state: str


class SpotifyUserResponse(BaseSchema):
    """Schema for a linked Spotify identity."""

    id: str
    spotify_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class LinkStatusResponse(BaseModel):
    """Current Spotify link status."""

    connected: bool
    user: Optional[SpotifyUserResponse] = None
    last_refreshed_at: Optional[datetime] = None


class UpstreamTokenResponse(BaseModel):
    """A Spotify access token for direct Web API calls."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int


# List schemas
class ListCreate(BaseModel):
    """Schema for creating a list."""

    name: str = Field(min_length=1, max_length=255)


class ListUpdate(BaseModel):
    """Schema for renaming a list."""

    name: str = Field(min_length=1, max_length=255)


class ListItemCreate(BaseModel):
    """Schema for adding an item to a list."""

    item_type: ItemType = ItemType.ALBUM
    item_id: str = Field(min_length=1, max_length=255)
    item_name: str = Field(min_length=1, max_length=500)
    item_subtitle: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, max_length=1000)


class ListItemResponse(BaseSchema):
    """Schema for list item response."""

    id: str
    list_id: str
    item_type: ItemType
    item_id: str
    item_name: str
    item_subtitle: Optional[str] = None
    image_url: Optional[str] = None
    position: int
    created_at: datetime


class ListResponse(BaseSchema):
    """Schema for list response."""

    id: str
    owner_id: str
    name: str
    created_at: datetime
    updated_at: datetime


class ListDetailResponse(ListResponse):
    """List with its items in position order."""

    items: list[ListItemResponse] = Field(default_factory=list)


class ReorderRequest(BaseModel):
    """New order of item ids, first id gets position 1."""

    ordered_item_ids: list[str]


class MoveRequest(BaseModel):
    """Move one item a single step."""

    direction: Direction


class ListItemsResponse(BaseModel):
    """Items of a list after a reorder."""

    list_id: str
    items: list[ListItemResponse]


# Rating schemas
class RatingCreate(BaseModel):
    """Schema for rating an album."""

    album_id: str = Field(min_length=1, max_length=255)
    rating: int = Field(strict=True)


class RatingResponse(BaseSchema):
    """Schema for rating response."""

    id: str
    album_id: str
    rating: int
    created_at: datetime
    updated_at: datetime
