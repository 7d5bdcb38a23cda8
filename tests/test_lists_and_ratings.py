"""
Tests for list CRUD and album ratings
"""

import pytest

from core.errors import Forbidden, InvalidListName, InvalidRating, NotFound
from models import ItemType
from ordering import ItemKey, ItemMetadata, ListService, PositionEngine, RatingService

from conftest import make_account, make_list


@pytest.fixture
async def owner(session):
    account = await make_account(session, spotify_id="spotify-owner")
    return account.spotify_user_id


class TestListService:
    async def test_create_and_fetch_with_ordered_items(self, session, owner):
        lists = ListService(session)
        engine = PositionEngine(session)
        user_list = await lists.create(owner, "  Summer  ")
        first = await engine.add(owner, user_list.id, ItemKey(ItemType.ALBUM, "A"), ItemMetadata("A"))
        second = await engine.add(owner, user_list.id, ItemKey(ItemType.ALBUM, "B"), ItemMetadata("B"))
        await engine.reorder(owner, user_list.id, [second.id, first.id])

        fetched = await lists.get_with_items(owner, user_list.id)

        assert fetched.name == "Summer"
        assert [item.item_id for item in fetched.items] == ["B", "A"]

    async def test_all_with_items_only_returns_own_lists(self, session, owner):
        stranger = await make_account(session, username="stranger", spotify_id="spotify-stranger")
        await make_list(session, owner, "Mine")
        await make_list(session, stranger.spotify_user_id, "Theirs")

        lists = await ListService(session).all_with_items(owner)

        assert [l.name for l in lists] == ["Mine"]

    async def test_rename_requires_ownership(self, session, owner):
        stranger = await make_account(session, username="stranger", spotify_id="spotify-stranger")
        user_list = await make_list(session, owner)

        with pytest.raises(Forbidden):
            await ListService(session).rename(stranger.spotify_user_id, user_list.id, "Hijacked")

    async def test_blank_names_are_rejected(self, session, owner):
        lists = ListService(session)
        user_list = await lists.create(owner, "Keep")

        with pytest.raises(InvalidListName):
            await lists.create(owner, "   ")
        with pytest.raises(InvalidListName):
            await lists.rename(owner, user_list.id, " \t ")

        assert user_list.name == "Keep"

    async def test_delete(self, session, owner):
        lists = ListService(session)
        user_list = await make_list(session, owner)
        await PositionEngine(session).add(
            owner, user_list.id, ItemKey(ItemType.ARTIST, "X"), ItemMetadata("X")
        )

        await lists.delete(owner, user_list.id)

        with pytest.raises(NotFound):
            await lists.get_with_items(owner, user_list.id)


class TestRatingService:
    async def test_upsert_replaces_rating(self, session, owner):
        ratings = RatingService(session)

        first = await ratings.rate(owner, "album-1", 7)
        second = await ratings.rate(owner, "album-1", 9)

        assert first.id == second.id
        assert [(r.album_id, r.rating) for r in await ratings.all(owner)] == [("album-1", 9)]

    @pytest.mark.parametrize("value", [0, 11, -3, True])
    async def test_out_of_range(self, session, owner, value):
        ratings = RatingService(session)

        with pytest.raises(InvalidRating):
            await ratings.rate(owner, "album-1", value)
        assert await ratings.all(owner) == []
