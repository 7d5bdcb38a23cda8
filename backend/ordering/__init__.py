"""Ordered user lists and album ratings."""

from ordering.engine import Direction, ItemKey, ItemMetadata, PositionEngine
from ordering.lists import ListService
from ordering.ratings import RatingService

__all__ = [
    "Direction",
    "ItemKey",
    "ItemMetadata",
    "PositionEngine",
    "ListService",
    "RatingService",
]
