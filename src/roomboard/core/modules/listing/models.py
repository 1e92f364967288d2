"""Cursor shapes and the page request/response types of the listing engine."""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from roomboard.core.modules.filter.models import RoomFilters, SortMode
from roomboard.core.modules.room.models import RoomRow
from roomboard.core.modules.user.models import RoleTier

DEFAULT_PAGE_SIZE = 20


class CompositeCursor(BaseModel):
    """Position in the `updated_desc` order; `updated_at` alone is not unique."""

    kind: Literal["composite"] = "composite"
    id: UUID
    updated_at: datetime
    created_at: datetime


class ScalarCursor(BaseModel):
    """Position in a price order; the query service pairs the id with the row's price."""

    kind: Literal["scalar"] = "scalar"
    id: UUID


Cursor = Annotated[CompositeCursor | ScalarCursor, Field(discriminator="kind")]


class PageRequest(BaseModel):
    """One page request as issued by a listing client."""

    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1)
    cursor: str | CompositeCursor | ScalarCursor | None = None  # Opaque token or an already decoded cursor
    filters: RoomFilters = Field(default_factory=RoomFilters)
    sort_mode: SortMode = SortMode.UPDATED_DESC
    role_tier: RoleTier = RoleTier.PUBLIC


class RoomQuery(BaseModel):
    """Single call to the row-filtering query service.

    Both the scalar and the composite cursor fields are always present;
    the ones the sort mode does not use are None.
    """

    role_tier: RoleTier
    limit: int = Field(..., ge=1)
    filters: RoomFilters
    sort_mode: SortMode
    cursor_id: UUID | None = None
    cursor_updated_at: datetime | None = None
    cursor_created_at: datetime | None = None


class RoomQueryResult(BaseModel):
    """Query service response; `next_cursor` is authoritative."""

    rows: list[RoomRow]
    next_cursor: CompositeCursor | ScalarCursor | None = None
    total: int | None = None  # Best-effort count of all matching rows


class RoomPage(BaseModel):
    """One page of rooms plus the cursor for the following page."""

    rows: list[RoomRow]
    next_cursor: CompositeCursor | ScalarCursor | None = None
    total: int | None = None
