"""API route modules."""

from api.routes.auth import router as auth_router
from api.routes.spotify import router as spotify_router
from api.routes.lists import router as lists_router
from api.routes.ratings import router as ratings_router

__all__ = [
    "auth_router",
    "spotify_router",
    "lists_router",
    "ratings_router",
]
