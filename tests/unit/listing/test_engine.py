"""Tests for the page fetch engine over the room query service."""

from datetime import timedelta
from uuid import UUID

from roomboard.core.modules.filter.aliases import DEFAULT_FILTER_ALIASES
from roomboard.core.modules.filter.models import RoomFilters, SortMode
from roomboard.core.modules.listing.cursor import encode_cursor
from roomboard.core.modules.listing.engine import build_room_query, fetch_rooms_page
from roomboard.core.modules.listing.models import CompositeCursor, PageRequest, RoomQueryResult, ScalarCursor
from roomboard.core.modules.room.models import AdminL1RoomRow, PublicRoomRow, RoomStatus
from roomboard.core.modules.user.models import RoleTier

ROOM_ID = UUID("12345678-1234-5678-1234-567812345678")


def _ids(page) -> list[UUID]:
    return [row.id for row in page.rows]


class TestBuildRoomQuery:
    """Tests for build_room_query function."""

    def test_filters_normalized_and_expanded(self):
        request = PageRequest(filters=RoomFilters(search="x", districts=[" Quận 10 "], room_types=["2 Phòng ngủ"]))
        query = build_room_query(request, DEFAULT_FILTER_ALIASES)
        assert query.filters.search is None
        assert query.filters.districts == ["Quận 10", "10"]
        assert query.filters.room_types == ["2 Phòng ngủ", "2PN"]

    def test_without_cursor_all_cursor_fields_are_none(self):
        query = build_room_query(PageRequest())
        assert (query.cursor_id, query.cursor_updated_at, query.cursor_created_at) == (None, None, None)

    def test_composite_cursor_fills_all_cursor_fields(self, room_factory):
        doc = room_factory(1)
        cursor = CompositeCursor(id=doc["_id"], updated_at=doc["updated_at"], created_at=doc["created_at"])
        query = build_room_query(PageRequest(cursor=encode_cursor(cursor)))
        assert query.cursor_id == doc["_id"]
        assert query.cursor_updated_at == doc["updated_at"]
        assert query.cursor_created_at == doc["created_at"]

    def test_scalar_cursor_leaves_composite_fields_empty(self):
        query = build_room_query(PageRequest(cursor=ScalarCursor(id=ROOM_ID), sort_mode=SortMode.PRICE_ASC))
        assert query.cursor_id == ROOM_ID
        assert query.cursor_updated_at is None
        assert query.cursor_created_at is None

    def test_composite_cursor_under_price_sort_is_dropped(self, room_factory):
        doc = room_factory(1)
        cursor = CompositeCursor(id=doc["_id"], updated_at=doc["updated_at"], created_at=doc["created_at"])
        query = build_room_query(PageRequest(cursor=encode_cursor(cursor), sort_mode=SortMode.PRICE_ASC))
        assert query.cursor_id is None

    def test_role_tier_forwarded(self):
        assert build_room_query(PageRequest(role_tier=RoleTier.ADMIN_L2)).role_tier == RoleTier.ADMIN_L2


class TestFetchRoomsPage:
    """Tests for fetch_rooms_page function."""

    async def test_forty_five_rows_in_pages_of_twenty(self, query_service):
        page0 = await fetch_rooms_page(query_service, PageRequest(limit=20))
        assert len(page0.rows) == 20
        assert isinstance(page0.next_cursor, CompositeCursor)

        page1 = await fetch_rooms_page(query_service, PageRequest(limit=20, cursor=encode_cursor(page0.next_cursor)))
        assert len(page1.rows) == 20
        assert not set(_ids(page0)) & set(_ids(page1))

        page2 = await fetch_rooms_page(query_service, PageRequest(limit=20, cursor=encode_cursor(page1.next_cursor)))
        assert len(page2.rows) == 5
        assert page2.next_cursor is None

        assert len(set(_ids(page0) + _ids(page1) + _ids(page2))) == 45

    async def test_one_query_service_call_per_page(self, query_service):
        await fetch_rooms_page(query_service, PageRequest(limit=20))
        assert len(query_service.queries) == 1

    async def test_updated_desc_order(self, query_service, room_docs):
        page = await fetch_rooms_page(query_service, PageRequest(limit=3))
        newest = sorted(room_docs, key=lambda d: d["updated_at"], reverse=True)[:3]
        assert _ids(page) == [doc["_id"] for doc in newest]

    async def test_price_sorts_walk_all_rows(self, query_service):
        for sort_mode in (SortMode.PRICE_ASC, SortMode.PRICE_DESC):
            seen: list[UUID] = []
            prices: list[int] = []
            cursor = None
            while True:
                page = await fetch_rooms_page(query_service, PageRequest(limit=20, cursor=cursor, sort_mode=sort_mode))
                seen.extend(_ids(page))
                prices.extend(row.price for row in page.rows)
                if page.next_cursor is None:
                    break
                assert isinstance(page.next_cursor, ScalarCursor)
                cursor = encode_cursor(page.next_cursor)
            assert len(seen) == len(set(seen)) == 45
            assert prices == sorted(prices, reverse=sort_mode == SortMode.PRICE_DESC)

    async def test_no_duplicates_or_skips_when_rows_appended(self, query_service, room_docs, room_factory):
        page0 = await fetch_rooms_page(query_service, PageRequest(limit=20))

        # Rows added after page 0 sort before it and must not appear later
        newest = max(doc["updated_at"] for doc in room_docs)
        for offset in range(1, 4):
            query_service.docs.append(room_factory(100 + offset, updated_at=newest + timedelta(minutes=offset)))

        page1 = await fetch_rooms_page(query_service, PageRequest(limit=20, cursor=encode_cursor(page0.next_cursor)))
        page2 = await fetch_rooms_page(query_service, PageRequest(limit=20, cursor=encode_cursor(page1.next_cursor)))

        later = _ids(page1) + _ids(page2)
        assert not set(_ids(page0)) & set(later)
        assert set(_ids(page0)) | set(later) == {doc["_id"] for doc in room_docs}

    async def test_composite_cursor_under_price_sort_restarts(self, query_service):
        page0 = await fetch_rooms_page(query_service, PageRequest(limit=20))
        restarted = await fetch_rooms_page(
            query_service, PageRequest(limit=20, cursor=encode_cursor(page0.next_cursor), sort_mode=SortMode.PRICE_ASC)
        )
        first_price_page = await fetch_rooms_page(query_service, PageRequest(limit=20, sort_mode=SortMode.PRICE_ASC))
        assert _ids(restarted) == _ids(first_price_page)

    async def test_public_tier_gets_public_rows(self, query_service, room_factory):
        query_service.docs.append(room_factory(200, status=RoomStatus.HIDDEN.value))
        page = await fetch_rooms_page(query_service, PageRequest(limit=100))
        assert len(page.rows) == 45
        assert all(type(row) is PublicRoomRow for row in page.rows)

    async def test_admin_tier_gets_full_rows(self, query_service):
        page = await fetch_rooms_page(query_service, PageRequest(limit=5, role_tier=RoleTier.ADMIN_L1))
        assert all(isinstance(row, AdminL1RoomRow) and row.link_zalo for row in page.rows)

    async def test_short_page_ends_scan_even_with_service_cursor(self):
        class SloppyService:
            async def query_rooms(self, query):
                return RoomQueryResult(rows=[], next_cursor=ScalarCursor(id=ROOM_ID))

        page = await fetch_rooms_page(SloppyService(), PageRequest(limit=20))
        assert page.next_cursor is None

    async def test_total_is_passed_through(self, query_service):
        page = await fetch_rooms_page(query_service, PageRequest(limit=20))
        assert page.total == 45
