from typing import Any
from uuid import UUID

import pydantic
import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from roomboard.core.core import Service
from roomboard.core.modules.filter.aliases import DISTRICT_OPTIONS, ROOM_TYPE_OPTIONS, load_filter_aliases
from roomboard.core.modules.filter.models import FilterAliases, FilterOptions, SortMode
from roomboard.core.modules.filter.query_builder import (
    build_filter_conditions,
    build_price_keyset,
    build_sort,
    build_updated_keyset,
    combine_conditions,
)
from roomboard.core.modules.listing.models import CompositeCursor, RoomQuery, RoomQueryResult, ScalarCursor
from roomboard.core.modules.room.models import (
    PublicRoomRow,
    Room,
    RoomCreate,
    RoomStatus,
    RoomUpdate,
    mongo_projection,
    project_row,
)
from roomboard.core.modules.user.models import RoleTier
from roomboard.errors import NotFoundError, ValidationError
from roomboard.utils import now

logger = structlog.get_logger(__name__)

# Columns a partial update may change but never set to null
REQUIRED_ROOM_FIELDS = ("room_code", "price", "status", "amenities", "gallery_urls")


def cursor_from_doc(doc: dict[str, Any], sort_mode: SortMode) -> CompositeCursor | ScalarCursor:
    """Cursor pointing at a stored row in the given sort order."""
    if sort_mode.is_price:
        return ScalarCursor(id=doc["_id"])
    return CompositeCursor(id=doc["_id"], updated_at=doc["updated_at"], created_at=doc["created_at"])


class RoomService(Service):
    """Room storage and the row-filtering query service used by the listing engine."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("rooms")
        self.aliases = FilterAliases()

    async def on_start(self) -> None:
        """Create keyset indexes and load filter alias tables."""
        await self._collection.create_index([("updated_at", -1), ("created_at", -1), ("_id", -1)])
        await self._collection.create_index([("price", 1), ("_id", 1)])
        await self._collection.create_index([("room_code", 1)], unique=True)
        await self._collection.create_index([("district", 1)])
        await self._collection.create_index([("room_type", 1)])
        self.aliases = load_filter_aliases(self.core.config.filter_aliases_path)

    async def query_rooms(self, query: RoomQuery) -> RoomQueryResult:
        """Fetch one keyset page.

        Rows are projected to the caller's tier. The next cursor is taken from
        the last row only when the page is full.
        """
        conditions = build_filter_conditions(query.filters, query.role_tier)
        match = combine_conditions(conditions)

        keyset = await self._build_keyset(query)
        full_query = combine_conditions([*conditions, keyset]) if keyset else match

        projection = mongo_projection(query.role_tier)
        for field in ("updated_at", "created_at", "price"):
            projection[field] = 1

        cursor = self._collection.find(full_query, projection).sort(build_sort(query.sort_mode)).limit(query.limit)
        docs = await cursor.to_list()
        total = await self._collection.count_documents(match)

        rows = [project_row(doc, query.role_tier) for doc in docs]
        next_cursor = cursor_from_doc(docs[-1], query.sort_mode) if len(docs) == query.limit else None

        logger.debug(
            "query_rooms",
            role_tier=query.role_tier,
            sort_mode=query.sort_mode,
            query=full_query,
            limit=query.limit,
            returned=len(rows),
            total=total,
        )
        return RoomQueryResult(rows=rows, next_cursor=next_cursor, total=total)

    async def _build_keyset(self, query: RoomQuery) -> dict[str, Any] | None:
        if query.cursor_id is None:
            return None

        if query.sort_mode.is_price:
            anchor = await self._collection.find_one({"_id": query.cursor_id}, {"price": 1})
            if anchor is None:
                logger.warning("cursor_anchor_missing", cursor_id=query.cursor_id, sort_mode=query.sort_mode)
                return None
            return build_price_keyset(query.cursor_id, anchor["price"], query.sort_mode == SortMode.PRICE_DESC)

        if query.cursor_updated_at is None or query.cursor_created_at is None:
            return None
        return build_updated_keyset(query.cursor_id, query.cursor_updated_at, query.cursor_created_at)

    async def get_room(self, room_id: UUID) -> Room:
        doc = await self._collection.find_one({"_id": room_id})
        if doc is None:
            raise NotFoundError(f"Room not found: {room_id}")
        return Room.model_validate(doc)

    async def get_room_row(self, room_id: UUID, role_tier: RoleTier) -> PublicRoomRow:
        """Single room projected for a tier; hidden rooms do not exist for public callers."""
        doc = await self._collection.find_one({"_id": room_id}, mongo_projection(role_tier))
        if doc is None or (role_tier == RoleTier.PUBLIC and doc.get("status") == RoomStatus.HIDDEN):
            raise NotFoundError(f"Room not found: {room_id}")
        return project_row(doc, role_tier)

    async def get_filter_options(self) -> FilterOptions:
        """Districts and room types present in visible rooms, canonical labels first."""
        visible = {"status": {"$ne": RoomStatus.HIDDEN.value}}
        districts = await self._collection.distinct("district", visible)
        room_types = await self._collection.distinct("room_type", visible)
        return FilterOptions(
            districts=_merge_labels(DISTRICT_OPTIONS, districts, self.aliases.districts),
            room_types=_merge_labels(ROOM_TYPE_OPTIONS, room_types, self.aliases.room_types),
        )

    async def create_room(self, data: RoomCreate) -> Room:
        if await self._collection.find_one({"room_code": data.room_code}, {"_id": 1}):
            raise ValidationError(f"Room code '{data.room_code}' already exists")
        timestamp = now()
        room = Room(**data.model_dump(), created_at=timestamp, updated_at=timestamp)
        try:
            await self._collection.insert_one(room.to_mongo())
        except DuplicateKeyError as e:
            # Another create took the code between the check and the insert
            raise ValidationError(f"Room code '{data.room_code}' already exists") from e
        logger.info("room_created", room_id=room.id, room_code=room.room_code)
        return room

    async def update_room(self, room_id: UUID, data: RoomUpdate) -> Room:
        """Partial update; bumps updated_at so the room moves to the front of `updated_desc`.

        The merged record is validated as a whole before anything is written,
        so required columns cannot be cleared with an explicit null.
        """
        changes = data.model_dump(exclude_unset=True)
        cleared = sorted(name for name in REQUIRED_ROOM_FIELDS if name in changes and changes[name] is None)
        if cleared:
            raise ValidationError(f"Cannot clear required room fields: {', '.join(cleared)}")

        current = await self.get_room(room_id)
        if "room_code" in changes and changes["room_code"] != current.room_code:
            clash_filter = {"room_code": changes["room_code"], "_id": {"$ne": room_id}}
            if await self._collection.find_one(clash_filter, {"_id": 1}):
                raise ValidationError(f"Room code '{changes['room_code']}' already exists")

        try:
            room = Room.model_validate({**current.model_dump(), **changes, "updated_at": now()})
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid room data: {e.errors()[0]['msg']}") from e

        stored = room.to_mongo()
        update = {name: stored[name] for name in [*changes, "updated_at"]}
        try:
            result = await self._collection.update_one({"_id": room_id}, {"$set": update})
        except DuplicateKeyError as e:
            raise ValidationError(f"Room code '{room.room_code}' already exists") from e
        if result.matched_count == 0:
            raise NotFoundError(f"Room not found: {room_id}")
        logger.info("room_updated", room_id=room_id, fields=sorted(changes))
        return room

    async def delete_room(self, room_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": room_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"Room not found: {room_id}")
        logger.info("room_deleted", room_id=room_id)


def _merge_labels(canonical: tuple[str, ...], stored: list[Any], aliases: dict[str, list[str]]) -> list[str]:
    """Canonical labels followed by stored values that are neither a label nor a known alias."""
    known = set(canonical)
    for values in aliases.values():
        known.update(values)
    extra = sorted({value for value in stored if isinstance(value, str) and value and value not in known})
    return [*canonical, *extra]
