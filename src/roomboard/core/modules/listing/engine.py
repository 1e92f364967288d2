"""Cursor pagination over the room query service."""

from typing import Protocol

import structlog

from roomboard.core.modules.filter.aliases import DEFAULT_FILTER_ALIASES, expand_filters, normalize_filters
from roomboard.core.modules.filter.models import FilterAliases
from roomboard.core.modules.listing.cursor import decode_cursor
from roomboard.core.modules.listing.models import CompositeCursor, PageRequest, RoomPage, RoomQuery, RoomQueryResult

logger = structlog.get_logger(__name__)


class RoomQueryService(Protocol):
    """Row-filtering query service.

    Authoritative for role visibility, column redaction, tie-breaking and
    the next cursor.
    """

    async def query_rooms(self, query: RoomQuery) -> RoomQueryResult: ...


def build_room_query(request: PageRequest, aliases: FilterAliases = DEFAULT_FILTER_ALIASES) -> RoomQuery:
    """Translate a page request into the query service call.

    Filters are normalized and alias-expanded; the cursor is decoded for the
    request's sort mode and dropped when it does not match it.
    """
    filters = expand_filters(normalize_filters(request.filters), aliases)
    cursor = decode_cursor(request.cursor, request.sort_mode)

    query = RoomQuery(
        role_tier=request.role_tier,
        limit=request.limit,
        filters=filters,
        sort_mode=request.sort_mode,
    )
    if cursor is not None:
        query.cursor_id = cursor.id
        if isinstance(cursor, CompositeCursor):
            query.cursor_updated_at = cursor.updated_at
            query.cursor_created_at = cursor.created_at
    elif request.cursor is not None:
        logger.info("cursor_reset", sort_mode=request.sort_mode)
    return query


async def fetch_rooms_page(
    service: RoomQueryService, request: PageRequest, aliases: FilterAliases = DEFAULT_FILTER_ALIASES
) -> RoomPage:
    """Fetch exactly one page of rooms with a single query service call."""
    query = build_room_query(request, aliases)
    result = await service.query_rooms(query)

    # The service decides the next cursor; an undersized page always ends the scan.
    next_cursor = result.next_cursor if len(result.rows) >= request.limit else None

    logger.debug(
        "rooms_page",
        role_tier=query.role_tier,
        sort_mode=query.sort_mode,
        limit=query.limit,
        has_cursor=query.cursor_id is not None,
        returned=len(result.rows),
        has_next=next_cursor is not None,
    )
    return RoomPage(rows=result.rows, next_cursor=next_cursor, total=result.total)
