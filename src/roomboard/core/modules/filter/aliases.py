"""Canonical filter labels, their legacy raw values, and filter normalization."""

import re
from collections.abc import Iterable
from pathlib import Path

import structlog

from roomboard.core.modules.filter.models import SEARCH_MIN_LENGTH, FilterAliases, RoomFilters
from roomboard.errors import ValidationError

logger = structlog.get_logger(__name__)

DISTRICT_OPTIONS: tuple[str, ...] = (
    "Quận 1",
    "Quận 3",
    "Bình Thạnh",
    "Tân Bình",
    "Phú Nhuận",
    "Gò Vấp",
    "Quận 5",
    "Quận 10",
    "Quận 7",
    "Quận 4",
    "Quận 2",
    "Quận 6",
    "Quận 8",
    "Quận 11",
    "Quận 12",
    "Thủ Đức",
    "Bình Tân",
    "Nhà Bè",
)

ROOM_TYPE_OPTIONS: tuple[str, ...] = (
    "Studio",
    "1 Phòng ngủ",
    "2 Phòng ngủ",
    "Duplex",
    "Tách bếp",
    "3 Phòng ngủ",
    "4 Phòng ngủ",
)

_NUMBERED_DISTRICT_RE = re.compile(r"^Quận (\d+)$")
_BEDROOM_RE = re.compile(r"^(\d+) Phòng ngủ$")


def _default_aliases() -> FilterAliases:
    districts: dict[str, list[str]] = {}
    for label in DISTRICT_OPTIONS:
        match = _NUMBERED_DISTRICT_RE.match(label)
        if match:
            districts[label] = [match.group(1)]

    room_types: dict[str, list[str]] = {}
    for label in ROOM_TYPE_OPTIONS:
        match = _BEDROOM_RE.match(label)
        if match:
            room_types[label] = [f"{match.group(1)}PN"]

    return FilterAliases(districts=districts, room_types=room_types)


DEFAULT_FILTER_ALIASES = _default_aliases()


def load_filter_aliases(path: str | None) -> FilterAliases:
    """Load alias tables from a JSON file, or the built-in tables when no path is configured."""
    if not path:
        return DEFAULT_FILTER_ALIASES
    aliases = FilterAliases.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info("filter_aliases_loaded", path=path, districts=len(aliases.districts), room_types=len(aliases.room_types))
    return aliases


def expand_filter_values(selected: Iterable[str] | None, aliases: dict[str, list[str]]) -> list[str] | None:
    """Union of each selected label with its legacy raw values.

    Order follows first appearance, duplicates are dropped. Labels without
    aliases pass through unchanged. Returns None for an empty selection.
    """
    if not selected:
        return None
    result: list[str] = []
    seen: set[str] = set()
    for label in selected:
        for value in (label, *aliases.get(label, ())):
            if value not in seen:
                seen.add(value)
                result.append(value)
    return result or None


def _clean_labels(values: list[str] | None) -> list[str] | None:
    if not values:
        return None
    cleaned: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned or None


def normalize_filters(filters: RoomFilters) -> RoomFilters:
    """Trim strings, drop empty selections, and apply the search floor."""
    search = (filters.search or "").strip()
    if filters.min_price is not None and filters.max_price is not None and filters.min_price > filters.max_price:
        raise ValidationError(f"min_price ({filters.min_price}) cannot exceed max_price ({filters.max_price})")
    return RoomFilters(
        search=search if len(search) >= SEARCH_MIN_LENGTH else None,
        min_price=filters.min_price,
        max_price=filters.max_price,
        districts=_clean_labels(filters.districts),
        room_types=_clean_labels(filters.room_types),
        move=filters.move,
        status=filters.status,
    )


def expand_filters(filters: RoomFilters, aliases: FilterAliases) -> RoomFilters:
    """Replace district and room-type selections with their legacy-compatible unions."""
    return filters.model_copy(
        update={
            "districts": expand_filter_values(filters.districts, aliases.districts),
            "room_types": expand_filter_values(filters.room_types, aliases.room_types),
        }
    )
