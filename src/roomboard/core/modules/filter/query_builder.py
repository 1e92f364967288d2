"""Pure functions for building MongoDB room queries from listing filters."""

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from roomboard.core.modules.filter.models import RoomFilters, SortMode
from roomboard.core.modules.room.models import RoomStatus
from roomboard.core.modules.user.models import RoleTier

# Columns matched by free-text search
SEARCH_FIELDS = ("room_code", "address", "ward", "district", "room_type", "description")


def build_sort(sort_mode: SortMode) -> list[tuple[str, int]]:
    """Total order for each sort mode; `_id` is always the final tie-breaker."""
    if sort_mode == SortMode.PRICE_ASC:
        return [("price", 1), ("_id", 1)]
    if sort_mode == SortMode.PRICE_DESC:
        return [("price", -1), ("_id", -1)]
    return [("updated_at", -1), ("created_at", -1), ("_id", -1)]


def build_search_condition(search: str) -> dict[str, Any]:
    """Case-insensitive substring match over SEARCH_FIELDS, regex metacharacters escaped."""
    pattern = re.escape(search)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS]}


def build_filter_conditions(filters: RoomFilters, role_tier: RoleTier) -> list[dict[str, Any]]:
    """Conditions for normalized (and alias-expanded) filters plus tier visibility."""
    conditions: list[dict[str, Any]] = []

    status_condition: dict[str, Any] = {}
    if filters.status is not None:
        status_condition["$eq"] = filters.status.value
    if role_tier == RoleTier.PUBLIC:
        status_condition["$ne"] = RoomStatus.HIDDEN.value
    if status_condition:
        conditions.append({"status": status_condition})

    price_condition: dict[str, Any] = {}
    if filters.min_price is not None:
        price_condition["$gte"] = filters.min_price
    if filters.max_price is not None:
        price_condition["$lte"] = filters.max_price
    if price_condition:
        conditions.append({"price": price_condition})

    if filters.districts:
        conditions.append({"district": {"$in": filters.districts}})
    if filters.room_types:
        conditions.append({"room_type": {"$in": filters.room_types}})
    if filters.move is not None:
        conditions.append({"move": filters.move.value})
    if filters.search:
        conditions.append(build_search_condition(filters.search))

    return conditions


def build_updated_keyset(cursor_id: UUID, updated_at: datetime, created_at: datetime) -> dict[str, Any]:
    """Rows strictly after the cursor in (updated_at desc, created_at desc, _id desc) order."""
    return {
        "$or": [
            {"updated_at": {"$lt": updated_at}},
            {"updated_at": updated_at, "created_at": {"$lt": created_at}},
            {"updated_at": updated_at, "created_at": created_at, "_id": {"$lt": cursor_id}},
        ]
    }


def build_price_keyset(cursor_id: UUID, price: int, descending: bool) -> dict[str, Any]:
    """Rows strictly after the anchor (price, _id) in the requested direction."""
    op = "$lt" if descending else "$gt"
    return {"$or": [{"price": {op: price}}, {"price": price, "_id": {op: cursor_id}}]}


def combine_conditions(conditions: list[dict[str, Any]]) -> dict[str, Any]:
    if not conditions:
        return {}
    if len(conditions) == 1:
        return conditions[0]
    return {"$and": conditions}
