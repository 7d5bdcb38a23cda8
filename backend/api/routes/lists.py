"""List and list item routes."""

from fastapi import APIRouter, Depends, Response

from api.deps import get_linked_spotify_user, get_list_service, get_position_engine
from api.schemas import (
    ListCreate,
    ListDetailResponse,
    ListItemCreate,
    ListItemResponse,
    ListItemsResponse,
    ListResponse,
    ListUpdate,
    MoveRequest,
    ReorderRequest,
)
from models import SpotifyUser
from ordering import ItemKey, ItemMetadata, ListService, PositionEngine

router = APIRouter(prefix="/lists", tags=["lists"])


@router.get("", response_model=list[ListDetailResponse])
async def list_lists(
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    lists: ListService = Depends(get_list_service),
) -> list[ListDetailResponse]:
    """All lists of the linked user with their items in order."""
    return [ListDetailResponse.model_validate(l) for l in await lists.all_with_items(owner.id)]


@router.post("", response_model=ListResponse, status_code=201)
async def create_list(
    list_data: ListCreate,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    lists: ListService = Depends(get_list_service),
) -> ListResponse:
    """Create a new list."""
    return ListResponse.model_validate(await lists.create(owner.id, list_data.name))


@router.get("/{list_id}", response_model=ListDetailResponse)
async def get_list(
    list_id: str,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    lists: ListService = Depends(get_list_service),
) -> ListDetailResponse:
    """Get a list with its items."""
    return ListDetailResponse.model_validate(await lists.get_with_items(owner.id, list_id))


@router.patch("/{list_id}", response_model=ListResponse)
async def rename_list(
    list_id: str,
    list_data: ListUpdate,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    lists: ListService = Depends(get_list_service),
) -> ListResponse:
    """Rename a list."""
    return ListResponse.model_validate(await lists.rename(owner.id, list_id, list_data.name))


@router.delete("/{list_id}", status_code=204)
async def delete_list(
    list_id: str,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    lists: ListService = Depends(get_list_service),
) -> None:
    """Delete a list and its items."""
    await lists.delete(owner.id, list_id)


# List items management
@router.post("/{list_id}/items", response_model=ListItemResponse, status_code=201)
async def add_item(
    list_id: str,
    item_data: ListItemCreate,
    response: Response,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    engine: PositionEngine = Depends(get_position_engine),
) -> ListItemResponse:
    """Append an item (201), or update its metadata if it is already in the list (200)."""
    item, created = await engine.upsert(
        owner.id,
        list_id,
        ItemKey(item_type=item_data.item_type, item_id=item_data.item_id),
        ItemMetadata(
            item_name=item_data.item_name,
            item_subtitle=item_data.item_subtitle,
            image_url=item_data.image_url,
        ),
    )
    if not created:
        response.status_code = 200
    return ListItemResponse.model_validate(item)


@router.patch("/{list_id}/items/reorder", response_model=ListItemsResponse)
async def reorder_items(
    list_id: str,
    payload: ReorderRequest,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    engine: PositionEngine = Depends(get_position_engine),
) -> ListItemsResponse:
    """Reorder items by providing the new order of item IDs."""
    items = await engine.reorder(owner.id, list_id, payload.ordered_item_ids)
    return ListItemsResponse(
        list_id=list_id,
        items=[ListItemResponse.model_validate(i) for i in items],
    )


@router.post("/{list_id}/items/{item_id}/move", response_model=ListItemsResponse)
async def move_item(
    list_id: str,
    item_id: str,
    payload: MoveRequest,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    engine: PositionEngine = Depends(get_position_engine),
) -> ListItemsResponse:
    """Move an item one step up or down."""
    items = await engine.move(owner.id, list_id, item_id, payload.direction)
    return ListItemsResponse(
        list_id=list_id,
        items=[ListItemResponse.model_validate(i) for i in items],
    )


@router.delete("/{list_id}/items/{item_id}", status_code=204)
async def remove_item(
    list_id: str,
    item_id: str,
    owner: SpotifyUser = Depends(get_linked_spotify_user),
    engine: PositionEngine = Depends(get_position_engine),
) -> None:
    """Remove an item from a list."""
    await engine.remove(owner.id, list_id, item_id)
