"""Listing filters and sort modes."""

from enum import StrEnum

from pydantic import BaseModel, Field

from roomboard.core.modules.room.models import MoveType, RoomStatus

# Shorter search terms are treated as "no search"
SEARCH_MIN_LENGTH = 2


class SortMode(StrEnum):
    UPDATED_DESC = "updated_desc"  # Most recently updated first, keyset (updated_at, created_at, id)
    PRICE_ASC = "price_asc"  # Cheapest first, keyset (price, id)
    PRICE_DESC = "price_desc"  # Most expensive first, keyset (price, id)

    @property
    def is_price(self) -> bool:
        return self in (SortMode.PRICE_ASC, SortMode.PRICE_DESC)


class RoomFilters(BaseModel):
    """Listing filters as selected by the visitor.

    `normalize_filters` produces the canonical form that is sent to the
    query service and used as the page cache signature.
    """

    search: str | None = Field(None, description="Free-text search, ignored when shorter than 2 characters")
    min_price: int | None = Field(None, ge=0, description="Inclusive lower price bound")
    max_price: int | None = Field(None, ge=0, description="Inclusive upper price bound")
    districts: list[str] | None = Field(None, description="District labels, any of")
    room_types: list[str] | None = Field(None, description="Room type labels, any of")
    move: MoveType | None = Field(None, description="Accessibility: elevator or stairs")
    status: RoomStatus | None = Field(None, description="Room status")


class FilterAliases(BaseModel):
    """Legacy raw values stored for each canonical filter label.

    Older rows carry values such as "10" for "Quận 10" or "2PN" for
    "2 Phòng ngủ"; queries must match the union of label and aliases.
    """

    districts: dict[str, list[str]] = Field(default_factory=dict)
    room_types: dict[str, list[str]] = Field(default_factory=dict)


class FilterOptions(BaseModel):
    """Filter choices offered to the listing UI."""

    districts: list[str] = Field(..., description="District labels")
    room_types: list[str] = Field(..., description="Room type labels")


class ListingBootstrap(BaseModel):
    """Initial state for a listing client: caller's tier and available filter choices."""

    admin_level: int = Field(..., description="0 = visitor or regular user, 1 = administrator, 2 = staff")
    role_tier: str = Field(..., description="Visibility tier used for listing queries")
    filters: FilterOptions = Field(..., description="Filter choices")
