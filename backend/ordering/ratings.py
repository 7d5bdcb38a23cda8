"""Album ratings, one per album per linked Spotify user."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidRating
from models import Rating

MIN_RATING = 1
MAX_RATING = 10


class RatingService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def rate(self, owner_id: str, album_id: str, rating: int) -> Rating:
        """Insert or replace the rating of an album."""
        if isinstance(rating, bool) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRating()

        stmt = select(Rating).where(Rating.owner_id == owner_id, Rating.album_id == album_id)
        result = await self.session.execute(stmt)
        existing = result.scalar_one_or_none()

        if existing is not None:
            existing.rating = rating
        else:
            existing = Rating(owner_id=owner_id, album_id=album_id, rating=rating)
            self.session.add(existing)

        await self.session.flush()
        return existing

    async def all(self, owner_id: str) -> list[Rating]:
        stmt = (
            select(Rating)
            .where(Rating.owner_id == owner_id)
            .order_by(Rating.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
