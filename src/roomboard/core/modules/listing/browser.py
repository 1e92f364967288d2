"""Stateful page cache for one listing session.

`RoomBrowser` keeps the pages fetched so far under the current filter, sort
and role signature, together with the cursor table used to reach them. A
request generation counter discards responses that complete after a newer
request was issued; there is no cancellation, a stale response is simply
not applied.

All state changes happen between awaits on a single event loop, so a reset
(cache clear plus generation bump) is atomic with respect to in-flight
fetches.
"""

from collections.abc import Awaitable, Callable

import structlog

from roomboard.core.modules.filter.aliases import normalize_filters
from roomboard.core.modules.filter.models import RoomFilters, SortMode
from roomboard.core.modules.listing.models import (
    DEFAULT_PAGE_SIZE,
    CompositeCursor,
    PageRequest,
    RoomPage,
    ScalarCursor,
)
from roomboard.core.modules.room.models import RoomRow
from roomboard.core.modules.user.models import RoleTier

logger = structlog.get_logger(__name__)

PageFetcher = Callable[[PageRequest], Awaitable[RoomPage]]


class RoomBrowser:
    """Forward-only cursor pagination with a page cache and stale-response protection."""

    def __init__(
        self,
        fetch: PageFetcher,
        limit: int = DEFAULT_PAGE_SIZE,
        filters: RoomFilters | None = None,
        sort_mode: SortMode = SortMode.UPDATED_DESC,
        role_tier: RoleTier = RoleTier.PUBLIC,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be positive")
        self._fetch = fetch
        self.limit = limit
        self.filters = normalize_filters(filters or RoomFilters())
        self.sort_mode = sort_mode
        self.role_tier = role_tier

        self.pages: dict[int, list[RoomRow]] = {}
        self.cursors: list[CompositeCursor | ScalarCursor | None] = [None]
        self.page_index = 0
        self.has_next = True
        self.loading = False
        self.error: str | None = None
        self.generation = 0

    @property
    def signature(self) -> str:
        """Cache key: pages are only valid for the signature they were fetched under."""
        return "|".join([self.filters.model_dump_json(), self.sort_mode.value, self.role_tier.value])

    @property
    def current_rows(self) -> list[RoomRow]:
        return self.pages.get(self.page_index, [])

    def _reset(self) -> None:
        self.generation += 1
        self.pages = {}
        self.cursors = [None]
        self.page_index = 0
        self.has_next = True
        self.loading = False
        self.error = None

    async def fetch_page(self, index: int) -> bool:
        """Ensure page `index` is cached; returns True when it is available afterwards.

        Cache hits do not touch the network. A failure of the current request
        sets `error` and leaves pages, cursors and `has_next` unchanged.
        """
        if index in self.pages:
            return True
        if index < 0 or index >= len(self.cursors):
            raise ValueError(f"Page {index} is not reachable: no cursor for it yet")
        if index > 0 and self.cursors[index] is None:
            # Previous page ended the scan
            return False

        self.generation += 1
        generation = self.generation
        request = PageRequest(
            limit=self.limit,
            cursor=self.cursors[index],
            filters=self.filters,
            sort_mode=self.sort_mode,
            role_tier=self.role_tier,
        )
        self.loading = True
        self.error = None

        try:
            page = await self._fetch(request)
        except Exception as e:
            if generation != self.generation:
                logger.debug("stale_page_error_ignored", index=index, generation=generation)
                return False
            logger.warning("page_fetch_failed", index=index, generation=generation, error=str(e), exc_info=True)
            self.error = str(e) or "Fetch failed"
            self.loading = False
            return False

        if generation != self.generation:
            logger.debug("stale_page_discarded", index=index, generation=generation, current=self.generation)
            return False

        self.pages[index] = page.rows
        del self.cursors[index + 1 :]
        self.cursors.append(page.next_cursor)
        self.has_next = page.next_cursor is not None and len(page.rows) == self.limit
        self.loading = False
        return True

    async def update(
        self,
        filters: RoomFilters | None = None,
        sort_mode: SortMode | None = None,
        role_tier: RoleTier | None = None,
    ) -> bool:
        """Apply new filter/sort/role settings; any change resets pagination and loads page 0.

        Returns True when the signature changed.
        """
        previous = self.signature
        if filters is not None:
            self.filters = normalize_filters(filters)
        if sort_mode is not None:
            self.sort_mode = sort_mode
        if role_tier is not None:
            self.role_tier = role_tier
        if self.signature == previous:
            return False

        self._reset()
        await self.fetch_page(0)
        return True

    async def refresh(self) -> None:
        """Drop the cache and reload page 0 under the current settings."""
        self._reset()
        await self.fetch_page(0)

    async def go_next(self) -> None:
        if self.loading or not self.has_next:
            return
        next_index = self.page_index + 1
        if next_index in self.pages:
            self.page_index = next_index
            return
        if await self.fetch_page(next_index):
            self.page_index = next_index

    def go_prev(self) -> None:
        """Step back one page; earlier pages are always cached."""
        if self.loading:
            return
        self.page_index = max(0, self.page_index - 1)
