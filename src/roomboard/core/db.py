from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pymongo.asynchronous.cursor import AsyncCursor


class MongoModel(BaseModel):
    """Document stored with a UUID `_id`, exposed as `id` in the API."""

    id: UUID = Field(alias="_id", serialization_alias="id", default_factory=uuid4)

    model_config = ConfigDict(populate_by_name=True, json_schema_serialization_defaults_required=True)

    def to_mongo(self) -> dict[str, Any]:
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document

    @classmethod
    async def from_cursor(cls, cursor: AsyncCursor[dict[str, Any]]) -> list[Self]:
        return [cls.model_validate(document) async for document in cursor]
