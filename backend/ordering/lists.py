"""Create, rename and delete user lists."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import InvalidListName, NotFound
from models import UserList
from ordering.engine import get_owned_list


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InvalidListName()
    return name


class ListService:
    """CRUD for the lists owned by one linked Spotify user."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, owner_id: str, name: str) -> UserList:
        user_list = UserList(owner_id=owner_id, name=_clean_name(name))
        self.session.add(user_list)
        await self.session.flush()
        return user_list

    async def all_with_items(self, owner_id: str) -> list[UserList]:
        """Lists newest-activity first, items in position order."""
        stmt = (
            select(UserList)
            .where(UserList.owner_id == owner_id)
            .options(selectinload(UserList.items))
            .order_by(UserList.updated_at.desc(), UserList.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_with_items(self, owner_id: str, list_id: str) -> UserList:
        await get_owned_list(self.session, owner_id, list_id)
        stmt = (
            select(UserList)
            .where(UserList.id == list_id)
            .options(selectinload(UserList.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        user_list = result.scalar_one_or_none()
        if user_list is None:
            raise NotFound("List not found")
        return user_list

    async def rename(self, owner_id: str, list_id: str, name: str) -> UserList:
        name = _clean_name(name)
        user_list = await get_owned_list(self.session, owner_id, list_id)
        user_list.name = name
        await self.session.flush()
        return user_list

    async def delete(self, owner_id: str, list_id: str) -> None:
        user_list = await self.get_with_items(owner_id, list_id)
        await self.session.delete(user_list)
        await self.session.flush()
