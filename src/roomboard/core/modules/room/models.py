"""Room records and their per-tier row projections."""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from roomboard.core.db import MongoModel
from roomboard.core.modules.user.models import RoleTier
from roomboard.utils import now


class RoomStatus(StrEnum):
    VACANT = "Trống"
    RENTED = "Đã thuê"
    HIDDEN = "Ẩn"  # Never returned to public callers


class MoveType(StrEnum):
    """How tenants reach the room."""

    ELEVATOR = "elevator"
    STAIRS = "stairs"


class RoomAmenities(BaseModel):
    shared_washer: bool | None = None
    private_washer: bool | None = None
    shared_dryer: bool | None = None
    private_dryer: bool | None = None
    has_parking: bool | None = None
    has_basement: bool | None = None


class Room(MongoModel):
    """Room listing stored in the rooms collection.

    Indexed for keyset scans on (updated_at, created_at, _id) and (price, _id).
    """

    room_code: str
    price: int = Field(..., ge=0)  # VND per month
    room_type: str | None = None
    district: str | None = None
    ward: str | None = None
    address: str | None = None
    house_number: str | None = None
    status: RoomStatus = RoomStatus.VACANT
    move: MoveType | None = None
    amenities: RoomAmenities = Field(default_factory=RoomAmenities)
    description: str | None = None
    chinh_sach: str | None = None  # Rental policy text
    room_detail: str | None = None
    link_zalo: str | None = None
    gallery_urls: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Room":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class PublicRoomRow(BaseModel):
    """Listing row visible to anonymous visitors and regular users."""

    tier: Literal["public"] = "public"
    id: UUID
    room_code: str
    room_type: str | None = None
    address: str | None = None
    ward: str | None = None
    district: str | None = None
    price: int
    status: RoomStatus
    gallery_urls: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    room_detail: str | None = None


class AdminL2RoomRow(PublicRoomRow):
    """Staff view: internal columns without the contact link."""

    tier: Literal["admin_l2"] = "admin_l2"  # type: ignore[assignment]
    house_number: str | None = None
    description: str | None = None
    chinh_sach: str | None = None


class AdminL1RoomRow(AdminL2RoomRow):
    """Administrator view with every listing column."""

    tier: Literal["admin_l1"] = "admin_l1"  # type: ignore[assignment]
    link_zalo: str | None = None


RoomRow = Annotated[PublicRoomRow | AdminL2RoomRow | AdminL1RoomRow, Field(discriminator="tier")]

ROW_MODELS: dict[RoleTier, type[PublicRoomRow]] = {
    RoleTier.PUBLIC: PublicRoomRow,
    RoleTier.ADMIN_L2: AdminL2RoomRow,
    RoleTier.ADMIN_L1: AdminL1RoomRow,
}


def row_fields(tier: RoleTier) -> list[str]:
    """Stored column names visible to a tier (`id` maps to `_id`)."""
    return [name for name in ROW_MODELS[tier].model_fields if name != "tier"]


def mongo_projection(tier: RoleTier) -> dict[str, int]:
    """MongoDB projection that only fetches the columns a tier may see."""
    projection = {name: 1 for name in row_fields(tier) if name != "id"}
    projection["_id"] = 1
    return projection


def project_row(doc: dict[str, Any], tier: RoleTier) -> PublicRoomRow:
    """Build the tier's row model from a stored document, dropping columns the tier may not see."""
    model = ROW_MODELS[tier]
    data = {name: doc.get(name) for name in row_fields(tier) if name != "id"}
    data["id"] = doc["_id"] if "_id" in doc else doc["id"]
    if data.get("gallery_urls") is None:
        data["gallery_urls"] = []
    return model.model_validate(data)


class RoomCreate(BaseModel):
    """Fields accepted when an administrator creates a room."""

    room_code: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)
    room_type: str | None = None
    district: str | None = None
    ward: str | None = None
    address: str | None = None
    house_number: str | None = None
    status: RoomStatus = RoomStatus.VACANT
    move: MoveType | None = None
    amenities: RoomAmenities = Field(default_factory=RoomAmenities)
    description: str | None = None
    chinh_sach: str | None = None
    room_detail: str | None = None
    link_zalo: str | None = None
    gallery_urls: list[str] = Field(default_factory=list)


class RoomUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""

    room_code: str | None = Field(None, min_length=1)
    price: int | None = Field(None, ge=0)
    room_type: str | None = None
    district: str | None = None
    ward: str | None = None
    address: str | None = None
    house_number: str | None = None
    status: RoomStatus | None = None
    move: MoveType | None = None
    amenities: RoomAmenities | None = None
    description: str | None = None
    chinh_sach: str | None = None
    room_detail: str | None = None
    link_zalo: str | None = None
    gallery_urls: list[str] | None = None
