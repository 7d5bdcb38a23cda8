"""Album rating routes."""

from fastapi import APIRouter, Depends

from api.deps import get_linked_spotify_user, get_rating_service
from api.schemas import RatingCreate, RatingResponse
from models import SpotifyUser
from ordering import RatingService

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.get("", response_model=list[RatingResponse])
async def list_ratings(
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    ratings: RatingService = Depends(get_rating_service),
) -> list[RatingResponse]:
    """Ratings of the linked user, newest first."""
    return [RatingResponse.model_validate(r) for r in await ratings.all(owner.id)]


@router.post("", response_model=RatingResponse)
async def rate_album(
    rating_data: RatingCreate,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    ratings: RatingService = Depends(get_rating_service),
) -> RatingResponse:
    """Rate an album from 1 to 10, replacing any earlier rating."""
    rating = await ratings.rate(owner.id, rating_data.album_id, rating_data.rating)
    return RatingResponse.model_validate(rating)
