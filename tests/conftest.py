"""Shared pytest fixtures and in-memory fakes of the external stores."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import pytest

from roomboard.core.modules.device.models import DeviceSession, RegisterStatus
from roomboard.core.modules.filter.models import SortMode
from roomboard.core.modules.listing.models import CompositeCursor, RoomQuery, RoomQueryResult, ScalarCursor
from roomboard.core.modules.room.models import RoomStatus, project_row
from roomboard.core.modules.user.models import AdminLevel, RoleTier, User
from roomboard.errors import DeviceStoreError, TokenHashConflictError

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


def make_room_doc(index: int, **overrides: Any) -> dict[str, Any]:
    """Stored room document; higher index means more recently updated."""
    created_at = BASE_TIME + timedelta(minutes=index)
    doc: dict[str, Any] = {
        "_id": uuid4(),
        "room_code": f"R{index:03d}",
        "price": 3_000_000 + (index % 7) * 500_000,
        "room_type": "Studio",
        "district": "Quận 1",
        "status": RoomStatus.VACANT.value,
        "gallery_urls": [],
        "created_at": created_at,
        "updated_at": created_at + timedelta(hours=1),
        "house_number": f"{index}A",
        "link_zalo": f"https://zalo.me/{index}",
    }
    doc.update(overrides)
    return doc


class FakeRoomQueryService:
    """In-memory query service with the same ordering and keyset rules as the MongoDB one."""

    def __init__(self, docs: list[dict[str, Any]] | None = None) -> None:
        self.docs = list(docs or [])
        self.queries: list[RoomQuery] = []

    def _visible(self, query: RoomQuery) -> list[dict[str, Any]]:
        docs = self.docs
        if query.role_tier == RoleTier.PUBLIC:
            docs = [doc for doc in docs if doc["status"] != RoomStatus.HIDDEN.value]
        if query.filters.districts:
            docs = [doc for doc in docs if doc.get("district") in query.filters.districts]
        return docs

    async def query_rooms(self, query: RoomQuery) -> RoomQueryResult:
        self.queries.append(query)
        docs = self._visible(query)

        if query.sort_mode == SortMode.UPDATED_DESC:
            docs = sorted(docs, key=lambda d: (d["updated_at"], d["created_at"], d["_id"]), reverse=True)
            if query.cursor_id is not None and query.cursor_updated_at and query.cursor_created_at:
                anchor = (query.cursor_updated_at, query.cursor_created_at, query.cursor_id)
                docs = [d for d in docs if (d["updated_at"], d["created_at"], d["_id"]) < anchor]
        else:
            descending = query.sort_mode == SortMode.PRICE_DESC
            docs = sorted(docs, key=lambda d: (d["price"], d["_id"]), reverse=descending)
            if query.cursor_id is not None:
                anchor_doc = next((d for d in self.docs if d["_id"] == query.cursor_id), None)
                if anchor_doc is not None:
                    anchor = (anchor_doc["price"], anchor_doc["_id"])
                    if descending:
                        docs = [d for d in docs if (d["price"], d["_id"]) < anchor]
                    else:
                        docs = [d for d in docs if (d["price"], d["_id"]) > anchor]

        page = docs[: query.limit]
        next_cursor: CompositeCursor | ScalarCursor | None = None
        if len(page) == query.limit:
            last = page[-1]
            if query.sort_mode.is_price:
                next_cursor = ScalarCursor(id=last["_id"])
            else:
                next_cursor = CompositeCursor(id=last["_id"], updated_at=last["updated_at"], created_at=last["created_at"])

        rows = [project_row(doc, query.role_tier) for doc in page]
        return RoomQueryResult(rows=rows, next_cursor=next_cursor, total=len(docs) if query.cursor_id is None else None)


class InMemoryDeviceStore:
    """Device session store keeping each user's devices in a list.

    Failure switches let tests simulate store faults and token hash conflicts.
    """

    def __init__(self) -> None:
        self.devices: dict[UUID, list[DeviceSession]] = {}
        self.fail_validate = False
        self.fail_register = False
        self.fail_revoke = False
        self.pending_conflicts = 0  # Upcoming register calls that report a hash conflict
        self.forget_registrations = False  # Report OK without storing the device
        self.validate_calls: list[str] = []
        self.register_calls: list[dict[str, Any]] = []
        self.register_results: list[RegisterStatus] = []
        self.revoked: list[str] = []

    def add_device(self, user_id: UUID, device_id: str, token_hash: str, created_at: datetime | None = None) -> None:
        session = DeviceSession(device_id=device_id, token_hash=token_hash)
        if created_at is not None:
            session.created_at = created_at
        self.devices.setdefault(user_id, []).append(session)

    def live_count(self, user_id: UUID) -> int:
        return len(self.devices.get(user_id, []))

    async def validate(self, user_id: UUID, token_hash: str) -> bool:
        self.validate_calls.append(token_hash)
        if self.fail_validate:
            raise DeviceStoreError("store unreachable")
        for session in self.devices.get(user_id, []):
            if session.token_hash == token_hash:
                session.last_seen_at = datetime.now(UTC)
                return True
        return False

    async def register(
        self, user_id: UUID, device_id: str, token_hash: str, max_devices: int, evict_oldest: bool
    ) -> RegisterStatus:
        self.register_calls.append(
            {"user_id": user_id, "device_id": device_id, "token_hash": token_hash, "evict_oldest": evict_oldest}
        )
        if self.fail_register:
            raise DeviceStoreError("store unreachable")
        if self.pending_conflicts > 0:
            self.pending_conflicts -= 1
            raise TokenHashConflictError("Device token hash already registered")
        if any(s.token_hash == token_hash for sessions in self.devices.values() for s in sessions):
            raise TokenHashConflictError("Device token hash already registered")

        sessions = self.devices.setdefault(user_id, [])
        if len(sessions) >= max_devices:
            if not evict_oldest:
                self.register_results.append(RegisterStatus.LIMIT_REACHED)
                return RegisterStatus.LIMIT_REACHED
            sessions.sort(key=lambda s: s.created_at)
            del sessions[: len(sessions) - max_devices + 1]

        if not self.forget_registrations:
            sessions.append(DeviceSession(device_id=device_id, token_hash=token_hash))
        self.register_results.append(RegisterStatus.OK)
        return RegisterStatus.OK

    async def revoke(self, token_hash: str) -> None:
        if self.fail_revoke:
            raise DeviceStoreError("store unreachable")
        self.revoked.append(token_hash)
        for sessions in self.devices.values():
            sessions[:] = [s for s in sessions if s.token_hash != token_hash]

    async def list_sessions(self, user_id: UUID) -> list[DeviceSession]:
        return list(self.devices.get(user_id, []))


@pytest.fixture
def room_docs():
    """45 visible rooms with distinct update times."""
    return [make_room_doc(i) for i in range(45)]


@pytest.fixture
def query_service(room_docs):
    return FakeRoomQueryService(room_docs)


@pytest.fixture
def device_store():
    return InMemoryDeviceStore()


@pytest.fixture
def mock_user():
    """Create a regular user for testing."""
    return User(
        id=UUID("87654321-4321-8765-4321-876543218765"),
        username="testuser",
        password_hash="$2b$12$hashed_password_here",
    )


@pytest.fixture
def mock_admin():
    return User(
        id=UUID("12345678-1234-5678-1234-567812345678"),
        username="admin",
        password_hash="$2b$12$hashed_password_here",
        admin_level=AdminLevel.L1,
    )


@pytest.fixture
def room_factory():
    return make_room_doc


class FakeCollection:
    """Dict-backed stand-in for an async MongoDB collection, equality filters only."""

    def __init__(self) -> None:
        self.documents: list[dict[str, Any]] = []
        self.indexes: list[tuple[Any, dict[str, Any]]] = []

    @staticmethod
    def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in query.items())

    async def create_index(self, keys: Any, **kwargs: Any) -> None:
        self.indexes.append((keys, kwargs))

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self.documents.append(dict(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        return next((dict(d) for d in self.documents if self._matches(d, query)), None)

    async def _iterate(self, query: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        for document in list(self.documents):
            if self._matches(document, query):
                yield dict(document)

    def find(self, query: dict[str, Any] | None = None) -> AsyncIterator[dict[str, Any]]:
        return self._iterate(query or {})

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> None:
        for document in self.documents:
            if self._matches(document, query):
                document.update(update.get("$set", {}))
                return

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        for document in self.documents:
            if self._matches(document, query):
                self.documents.remove(document)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        kept = [d for d in self.documents if not self._matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def fake_db():
    return FakeDatabase()


class ScriptedCursor:
    def __init__(self, collection: "ScriptedCollection") -> None:
        self._collection = collection

    def sort(self, spec: list[tuple[str, int]]) -> "ScriptedCursor":
        self._collection.sort_spec = spec
        return self

    def limit(self, count: int) -> "ScriptedCursor":
        self._collection.limit_value = count
        return self

    async def to_list(self) -> list[dict[str, Any]]:
        docs = self._collection.find_docs
        limit = self._collection.limit_value
        return list(docs[:limit] if limit else docs)


class ScriptedCollection:
    """Async collection stub that records every call and answers from per-method scripts.

    A scripted exception instance is raised instead of returned.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.scripts: dict[str, list[Any]] = {}
        self.find_docs: list[dict[str, Any]] = []
        self.sort_spec: list[tuple[str, int]] | None = None
        self.limit_value: int | None = None

    def script(self, method: str, *results: Any) -> None:
        self.scripts.setdefault(method, []).extend(results)

    def calls_to(self, method: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    def _answer(self, method: str, default: Any) -> Any:
        queue = self.scripts.get(method)
        result = queue.pop(0) if queue else default
        if isinstance(result, Exception):
            raise result
        return result

    async def update_one(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append(("update_one", args, kwargs))
        return self._answer("update_one", SimpleNamespace(matched_count=1, modified_count=1))

    async def insert_one(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append(("insert_one", args, kwargs))
        return self._answer("insert_one", SimpleNamespace(inserted_id=args[0]["_id"]))

    async def find_one(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append(("find_one", args, kwargs))
        return self._answer("find_one", None)

    async def count_documents(self, *args: Any, **kwargs: Any) -> int:
        self.calls.append(("count_documents", args, kwargs))
        return self._answer("count_documents", len(self.find_docs))

    def find(self, *args: Any, **kwargs: Any) -> ScriptedCursor:
        self.calls.append(("find", args, kwargs))
        return ScriptedCursor(self)


@pytest.fixture
def scripted_collection():
    return ScriptedCollection()


@pytest.fixture
def scripted_db(scripted_collection):
    return SimpleNamespace(get_collection=lambda name: scripted_collection)
