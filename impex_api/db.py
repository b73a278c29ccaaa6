"""
Document store abstraction for MongoDB and an in-memory test implementation.

Both clients expose the same find / find_by_id / create /
find_by_id_and_update / delete_one operations over the blog collection and
apply the schema in ``impex_api.models`` before writing. Connectivity changes
are published to subscribers as ``StoreEvent`` values.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import AsyncMongoClient, DESCENDING, ReturnDocument
from pymongo import monitoring

from impex_api.models import validate_blog_fields

logger = logging.getLogger(__name__)

BLOG_COLLECTION = "blogs"


class StoreEvent(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


StoreEventCallback = Callable[[StoreEvent, Optional[BaseException]], None]


class InvalidObjectIdError(ValueError):
    """Raised when an identifier is not a valid ObjectId."""


def to_object_id(blog_id: str) -> ObjectId:
    try:
        return ObjectId(blog_id)
    except (InvalidId, TypeError) as exc:
        raise InvalidObjectIdError(
            f'Cast to ObjectId failed for value "{blog_id}" at path "_id"'
        ) from exc


def to_public(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    doc = {**doc}
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlogStore(Protocol):
    """Interface for blog document storage."""

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def subscribe(self, callback: StoreEventCallback) -> None:
        ...

    async def find(self, filter: Optional[dict] = None) -> list[dict]:
        ...

    async def find_by_id(self, blog_id: str) -> Optional[dict]:
        ...

    async def create(self, fields: dict) -> dict:
        ...

    async def find_by_id_and_update(self, blog_id: str, fields: dict) -> Optional[dict]:
        ...

    async def delete_one(self, blog_id: str) -> int:
        ...


class _EventPublisher:
    def __init__(self):
        self._subscribers: list[StoreEventCallback] = []

    def subscribe(self, callback: StoreEventCallback) -> None:
        self._subscribers.append(callback)

    def emit(self, event: StoreEvent, error: Optional[BaseException] = None) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, error)
            except Exception:
                logger.exception("Store event subscriber failed for %s", event.value)


class InMemoryBlogStore(_EventPublisher):
    """Simple in-memory store for development and tests."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        super().__init__()
        self.docs: dict[ObjectId, dict] = {}
        self.connected = False
        self.fail_connect: Optional[BaseException] = None
        self.connect_attempts = 0
        self._clock = clock

    async def connect(self) -> None:
        self.connect_attempts += 1
        if self.fail_connect is not None:
            self.connected = False
            raise self.fail_connect
        self.connected = True
        self.emit(StoreEvent.CONNECTED)

    async def close(self) -> None:
        self.connected = False

    async def find(self, filter: Optional[dict] = None) -> list[dict]:
        filter = filter or {}
        matches = [
            doc
            for doc in self.docs.values()
            if all(doc.get(key) == value for key, value in filter.items())
        ]
        matches.sort(key=lambda doc: doc["createdAt"], reverse=True)
        return [to_public(doc) for doc in matches]

    async def find_by_id(self, blog_id: str) -> Optional[dict]:
        return to_public(self.docs.get(to_object_id(blog_id)))

    async def create(self, fields: dict) -> dict:
        doc = validate_blog_fields(fields)
        now = self._clock()
        doc.update({"_id": ObjectId(), "createdAt": now, "updatedAt": now})
        self.docs[doc["_id"]] = doc
        return to_public(doc)

    async def find_by_id_and_update(self, blog_id: str, fields: dict) -> Optional[dict]:
        oid = to_object_id(blog_id)
        changes = validate_blog_fields(fields, partial=True)
        doc = self.docs.get(oid)
        if doc is None:
            return None
        doc.update(changes)
        doc["updatedAt"] = self._clock()
        return to_public(doc)

    async def delete_one(self, blog_id: str) -> int:
        oid = to_object_id(blog_id)
        return 1 if self.docs.pop(oid, None) is not None else 0


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """
    Translates driver heartbeats into store events.

    The driver may call these hooks outside the event loop, so events are
    handed back to the loop the store was connected from.
    """

    def __init__(self, store: "MongoBlogStore"):
        self._store = store
        self._reachable: Optional[bool] = None

    def started(self, event) -> None:
        pass

    def succeeded(self, event) -> None:
        if self._reachable is not True:
            self._reachable = True
            self._store._emit_threadsafe(StoreEvent.CONNECTED, None)

    def failed(self, event) -> None:
        if self._reachable is True:
            self._store._emit_threadsafe(StoreEvent.DISCONNECTED, event.reply)
        elif self._reachable is None:
            self._store._emit_threadsafe(StoreEvent.ERROR, event.reply)
        self._reachable = False


class MongoBlogStore(_EventPublisher):
    """pymongo (async API) implementation backed by one collection."""

    def __init__(
        self,
        uri: str,
        db_name: str,
        *,
        server_selection_timeout_ms: int = 30000,
        socket_timeout_ms: int = 45000,
        max_pool_size: int = 10,
        collection_name: str = BLOG_COLLECTION,
    ):
        if not uri:
            raise ValueError("MONGO_URI is required for MongoBlogStore")
        super().__init__()
        self.uri = uri
        self.db_name = db_name
        self.collection_name = collection_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.socket_timeout_ms = socket_timeout_ms
        self.max_pool_size = max_pool_size
        self._client: Optional[AsyncMongoClient] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _emit_threadsafe(self, event: StoreEvent, error: Optional[BaseException]) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.emit, event, error)

    def _make_client(self) -> AsyncMongoClient:
        return AsyncMongoClient(
            self.uri,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            socketTimeoutMS=self.socket_timeout_ms,
            maxPoolSize=self.max_pool_size,
            tz_aware=True,
            event_listeners=[_HeartbeatListener(self)],
        )

    async def connect(self) -> None:
        """Create the client if needed and round-trip a ping to the server."""
        self._loop = asyncio.get_running_loop()
        if self._client is None:
            self._client = self._make_client()
        await self._client.admin.command("ping")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @property
    def collection(self):
        if self._client is None:
            self._client = self._make_client()
        return self._client[self.db_name][self.collection_name]

    async def find(self, filter: Optional[dict] = None) -> list[dict]:
        cursor = self.collection.find(filter or {}).sort("createdAt", DESCENDING)
        return [to_public(doc) for doc in await cursor.to_list(length=None)]

    async def find_by_id(self, blog_id: str) -> Optional[dict]:
        doc = await self.collection.find_one({"_id": to_object_id(blog_id)})
        return to_public(doc)

    async def create(self, fields: dict) -> dict:
        doc = validate_blog_fields(fields)
        now = _utcnow()
        doc.update({"createdAt": now, "updatedAt": now})
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return to_public(doc)

    async def find_by_id_and_update(self, blog_id: str, fields: dict) -> Optional[dict]:
        oid = to_object_id(blog_id)
        changes = validate_blog_fields(fields, partial=True)
        changes["updatedAt"] = _utcnow()
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return to_public(doc)

    async def delete_one(self, blog_id: str) -> int:
        result = await self.collection.delete_one({"_id": to_object_id(blog_id)})
        return result.deleted_count
