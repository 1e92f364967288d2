from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from roomboard.core.modules.filter.models import RoomFilters, SortMode
from roomboard.core.modules.listing.models import PageRequest
from roomboard.core.modules.room.models import MoveType, Room, RoomCreate, RoomRow, RoomStatus, RoomUpdate
from roomboard.core.pagination import CursorPage
from roomboard.web.deps import AppDep, AuthTokenDep, ConfigDep, OptionalAuthTokenDep
from roomboard.web.openapi import error_responses

router: APIRouter = APIRouter(tags=["rooms"])


@router.get(
    "/rooms",
    summary="List rooms",
    description=(
        "One page of rooms. Pass `next_cursor` of the previous response as `cursor` to get the "
        "following page; a cursor from a different sort order restarts from the first page. "
        "Columns returned depend on the caller's role."
    ),
    operation_id="listRooms",
    response_model=CursorPage[RoomRow],
    responses=error_responses((400, "Invalid filters")),
)
async def list_rooms(
    app: AppDep,
    auth_token: OptionalAuthTokenDep,
    config: ConfigDep,
    cursor: Annotated[str | None, Query(description="Opaque cursor from a previous page")] = None,
    limit: Annotated[int | None, Query(ge=1, le=100, description="Page size")] = None,
    sort: Annotated[SortMode, Query(description="Sort order")] = SortMode.UPDATED_DESC,
    search: Annotated[str | None, Query(description="Free-text search")] = None,
    min_price: Annotated[int | None, Query(ge=0)] = None,
    max_price: Annotated[int | None, Query(ge=0)] = None,
    districts: Annotated[list[str] | None, Query(description="District labels")] = None,
    room_types: Annotated[list[str] | None, Query(description="Room type labels")] = None,
    move: Annotated[MoveType | None, Query()] = None,
    status: Annotated[RoomStatus | None, Query()] = None,
) -> CursorPage[RoomRow]:
    filters = RoomFilters(
        search=search,
        min_price=min_price,
        max_price=max_price,
        districts=districts,
        room_types=room_types,
        move=move,
        status=status,
    )
    request = PageRequest(limit=limit or config.page_size, cursor=cursor, filters=filters, sort_mode=sort)
    return await app.list_rooms(auth_token, request)


@router.get(
    "/rooms/{room_id}",
    summary="Get room",
    description="Single room with the columns visible to the caller's role.",
    operation_id="getRoom",
    response_model=RoomRow,
    responses=error_responses((404, "Room not found")),
)
async def get_room(room_id: UUID, app: AppDep, auth_token: OptionalAuthTokenDep) -> RoomRow:
    return await app.get_room(auth_token, room_id)


@router.post(
    "/rooms",
    summary="Create room",
    description="Create a room listing. Administrators and staff only.",
    operation_id="createRoom",
    status_code=201,
    responses=error_responses((400, "Invalid room data"), 401, 403),
)
async def create_room(data: RoomCreate, app: AppDep, auth_token: AuthTokenDep) -> Room:
    return await app.create_room(auth_token, data)


@router.patch(
    "/rooms/{room_id}",
    summary="Update room",
    description="Partially update a room listing. Administrators and staff only.",
    operation_id="updateRoom",
    responses=error_responses((400, "Invalid room data"), 401, 403, (404, "Room not found")),
)
async def update_room(room_id: UUID, data: RoomUpdate, app: AppDep, auth_token: AuthTokenDep) -> Room:
    return await app.update_room(auth_token, room_id, data)


@router.delete(
    "/rooms/{room_id}",
    summary="Delete room",
    description="Delete a room listing. Tier-1 administrators only.",
    operation_id="deleteRoom",
    status_code=204,
    responses=error_responses(401, 403, (404, "Room not found")),
)
async def delete_room(room_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_room(auth_token, room_id)
