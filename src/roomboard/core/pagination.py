from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    """Cursor-paginated result wrapper for list endpoints."""

    items: list[T] = Field(..., description="Items in the current page")
    next_cursor: str | None = Field(..., description="Opaque cursor for the next page, null at the end")
    limit: int = Field(..., description="Maximum items per page", ge=1)
    total: int | None = Field(None, description="Best-effort count of all matching items", ge=0)

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
