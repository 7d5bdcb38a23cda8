"""Position-based ordering of list items.

``add`` and ``reorder`` leave a list's positions as distinct positive
integers, and ``reorder`` renumbers to exactly ``1..N``. ``remove`` may
leave gaps until the next reorder.

There is no optimistic locking: two writers reordering the same list
concurrently both succeed and the later commit wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden, InvalidReorder, NotFound, WriteFailed
from models import ItemType, ListItem, UserList
from models.base import utcnow

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class ItemKey:
    """Identifies an item within a list."""

    item_type: ItemType
    item_id: str


@dataclass
class ItemMetadata:
    """Display fields stored alongside an item."""

    item_name: str
    item_subtitle: Optional[str] = None
    image_url: Optional[str] = None


async def get_owned_list(session: AsyncSession, owner_id: str, list_id: str) -> UserList:
    """Load a list, checking it belongs to ``owner_id``."""
    user_list = await session.get(UserList, list_id)
    if user_list is None:
        raise NotFound("List not found")
    if user_list.owner_id != owner_id:
        raise Forbidden()
    return user_list


class PositionEngine:
    """Maintains item positions inside one owner's lists."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _sorted_items(self, list_id: str) -> list[ListItem]:
        stmt = (
            select(ListItem)
            .where(ListItem.list_id == list_id)
            .order_by(ListItem.position, ListItem.created_at, ListItem.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def items(self, owner_id: str, list_id: str) -> list[ListItem]:
        """Items of a list in position order."""
        await get_owned_list(self.session, owner_id, list_id)
        return await self._sorted_items(list_id)

    async def add(
        self,
        owner_id: str,
        list_id: str,
        key: ItemKey,
        metadata: ItemMetadata,
    ) -> ListItem:
        """Append an item, or refresh the metadata of one already present.

        An existing item keeps its position; adding is never a move.
        """
        item, _ = await self.upsert(owner_id, list_id, key, metadata)
        return item

    async def upsert(
        self,
        owner_id: str,
        list_id: str,
        key: ItemKey,
        metadata: ItemMetadata,
    ) -> tuple[ListItem, bool]:
        """Like ``add``, also telling whether the item was newly created."""
        user_list = await get_owned_list(self.session, owner_id, list_id)

        stmt = select(ListItem).where(
            ListItem.list_id == list_id,
            ListItem.item_type == key.item_type.value,
            ListItem.item_id == key.item_id,
        )
        result = await self.session.execute(stmt)
        item = result.scalar_one_or_none()
        created = item is None

        try:
            async with self.session.begin_nested():
                if item is not None:
                    item.item_name = metadata.item_name
                    item.item_subtitle = metadata.item_subtitle
                    item.image_url = metadata.image_url
                else:
                    max_pos_stmt = select(func.max(ListItem.position)).where(
                        ListItem.list_id == list_id
                    )
                    max_pos = (await self.session.execute(max_pos_stmt)).scalar() or 0
                    item = ListItem(
                        list_id=list_id,
                        item_type=key.item_type.value,
                        item_id=key.item_id,
                        position=max_pos + 1,
                        item_name=metadata.item_name,
                        item_subtitle=metadata.item_subtitle,
                        image_url=metadata.image_url,
                    )
                    self.session.add(item)
                    user_list.updated_at = utcnow()
        except SQLAlchemyError as e:
            logger.warning("Adding %s:%s to list %s failed: %s", key.item_type.value, key.item_id, list_id, e)
            raise WriteFailed() from e

        return item, created

    async def reorder(
        self,
        owner_id: str,
        list_id: str,
        ordered_item_ids: list[str],
    ) -> list[ListItem]:
        """Renumber items so ``ordered_item_ids[i]`` ends at position ``i + 1``.

        Items of the list that are not mentioned keep their relative order
        and are placed after the supplied ones. Either every position is
        written or none is.
        """
        user_list = await get_owned_list(self.session, owner_id, list_id)

        if len(set(ordered_item_ids)) != len(ordered_item_ids):
            raise InvalidReorder()

        items = await self._sorted_items(list_id)
        by_id = {item.id: item for item in items}
        unknown = [item_id for item_id in ordered_item_ids if item_id not in by_id]
        if unknown:
            raise NotFound(f"Items not in list: {', '.join(unknown)}")

        supplied = set(ordered_item_ids)
        final_order = [by_id[item_id] for item_id in ordered_item_ids]
        final_order += [item for item in items if item.id not in supplied]

        try:
            async with self.session.begin_nested():
                for position, item in enumerate(final_order, start=1):
                    item.position = position
                user_list.updated_at = utcnow()
        except SQLAlchemyError as e:
            logger.warning("Reordering list %s rolled back: %s", list_id, e)
            raise WriteFailed() from e

        return final_order

    async def move(
        self,
        owner_id: str,
        list_id: str,
        item_id: str,
        direction: Direction,
    ) -> list[ListItem]:
        """Swap an item with its neighbour, then reorder the whole list."""
        await get_owned_list(self.session, owner_id, list_id)
        items = await self._sorted_items(list_id)

        index = next((i for i, item in enumerate(items) if item.id == item_id), None)
        if index is None:
            raise NotFound("Item not in list")

        target = index - 1 if direction == Direction.UP else index + 1
        if target < 0 or target >= len(items):
            return items

        ordered_ids = [item.id for item in items]
        ordered_ids[index], ordered_ids[target] = ordered_ids[target], ordered_ids[index]
        return await self.reorder(owner_id, list_id, ordered_ids)

    async def remove(self, owner_id: str, list_id: str, item_id: str) -> None:
        """Delete an item; the others keep their positions."""
        await get_owned_list(self.session, owner_id, list_id)

        stmt = select(ListItem).where(ListItem.id == item_id, ListItem.list_id == list_id)
        result = await self.session.execute(stmt)
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFound("Item not in list")

        await self.session.delete(item)
        await self.session.flush()
