"""
PostgresStore — DocumentStore backed by Postgres.

One table per collection:

    id          TEXT PRIMARY KEY
    data        JSONB      document body (camelCase keys)
    created_at  TIMESTAMPTZ
    updated_at  TIMESTAMPTZ

createdAt / updatedAt are served from the columns, not from data.

Change streams use LISTEN/NOTIFY: a trigger on each table sends the table name
on the "dochub_changes" channel, and every notification re-queries the full
ordered snapshot for subscribers of that collection. The listener holds one
pooled connection; if it drops, every live subscription gets a stream error.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from backend.repos.store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentNotFound,
    DocumentStore,
    ErrorCallback,
    PermissionDenied,
    SnapshotCallback,
    StoreError,
    Unsubscribe,
    check_collection,
)
from engine.hub.types import LINKS, SECTIONS

logger = logging.getLogger(__name__)

CHANNEL = "dochub_changes"

# Collection names double as table names; check_collection() guards both.
_ORDER_SQL = {
    SECTIONS: """(data->>'title') COLLATE "C", created_at""",
    LINKS: "created_at, id",
}

_TIMESTAMP_FIELDS = ("createdAt", "updatedAt")


def _row_to_document(row: asyncpg.Record) -> Document:
    """Convert a database row to a Document."""
    data = dict(row["data"] or {})
    data["createdAt"] = row["created_at"]
    data["updatedAt"] = row["updated_at"]
    return Document(id=row["id"], data=data)


def _body(data: dict[str, Any]) -> dict[str, Any]:
    """Strip server-managed fields; they live in columns."""
    return {k: v for k, v in data.items() if k not in _TIMESTAMP_FIELDS and v is not SERVER_TIMESTAMP}


class _Subscription:
    def __init__(self, collection: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def deliver(self, snapshot: list[Document]) -> None:
        if self.active:
            self.on_snapshot(snapshot)

    def fail(self, exc: Exception) -> None:
        if self.active:
            self.active = False
            self.on_error(exc)


class PostgresStore(DocumentStore):
    """All document SQL lives here."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool
        self._subscriptions: list[_Subscription] = []
        self._listener: asyncpg.Connection | None = None
        self._listener_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        # one snapshot query at a time per collection, so deliveries never go backwards
        self._refresh_locks = {c: asyncio.Lock() for c in _ORDER_SQL}

    # -- Writes ---------------------------------------------------------------

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        check_collection(collection)
        doc_id = uuid.uuid4().hex[:20]
        async with _errors():
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f"""
                    INSERT INTO {collection} (id, data, created_at, updated_at)
                    VALUES ($1, $2, now(), now())
                    """,
                    doc_id,
                    _body(data),
                )
        return doc_id

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        check_collection(collection)
        async with _errors():
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    f"""
                    UPDATE {collection}
                    SET data = data || $2::jsonb, updated_at = now()
                    WHERE id = $1
                    """,
                    doc_id,
                    _body(data),
                )
        if result == "UPDATE 0":
            raise DocumentNotFound(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        check_collection(collection)
        async with _errors():
            async with self.pool.acquire() as conn:
                result = await conn.execute(f"DELETE FROM {collection} WHERE id = $1", doc_id)
        if result == "DELETE 0":
            raise DocumentNotFound(collection, doc_id)

    # -- Reads ----------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> Document:
        check_collection(collection)
        async with _errors():
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT id, data, created_at, updated_at FROM {collection} WHERE id = $1",
                    doc_id,
                )
        if row is None:
            raise DocumentNotFound(collection, doc_id)
        return _row_to_document(row)

    async def find(self, collection: str, field_name: str, value: Any) -> list[Document]:
        check_collection(collection)
        async with _errors():
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT id, data, created_at, updated_at FROM {collection}
                    WHERE data->>$1 = $2
                    ORDER BY {_ORDER_SQL[collection]}
                    """,
                    field_name,
                    str(value),
                )
        return [_row_to_document(r) for r in rows]

    async def list(self, collection: str) -> list[Document]:
        check_collection(collection)
        async with _errors():
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT id, data, created_at, updated_at FROM {collection}
                    ORDER BY {_ORDER_SQL[collection]}
                    """
                )
        return [_row_to_document(r) for r in rows]

    # -- Streams --------------------------------------------------------------

    def subscribe(self, collection: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        check_collection(collection)
        sub = _Subscription(collection, on_snapshot, on_error)
        self._subscriptions.append(sub)
        self._spawn(self._start(sub))
        logger.info("postgres_store: subscribed to %s", collection)

        def unsubscribe() -> None:
            sub.active = False
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
                logger.info("postgres_store: unsubscribed from %s", collection)

        return unsubscribe

    async def _start(self, sub: _Subscription) -> None:
        try:
            await self._ensure_listener()
        except (StoreError, OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_store: %s stream failed to start: %s", sub.collection, e)
            sub.fail(e if isinstance(e, StoreError) else StoreError(str(e)))
            return
        async with self._refresh_locks[sub.collection]:
            try:
                snapshot = await self.list(sub.collection)
            except StoreError as e:
                logger.error("postgres_store: %s stream failed to start: %s", sub.collection, e)
                sub.fail(e)
                return
            sub.deliver(snapshot)

    async def _ensure_listener(self) -> None:
        async with self._listener_lock:
            if self._listener is not None and not self._listener.is_closed():
                return
            conn = await self.pool.acquire()
            await conn.add_listener(CHANNEL, self._on_notify)
            conn.add_termination_listener(self._on_listener_lost)
            self._listener = conn

    def _on_notify(self, conn: asyncpg.Connection, pid: int, channel: str, payload: str) -> None:
        if payload in _ORDER_SQL:
            self._spawn(self._refresh(payload))

    async def _refresh(self, collection: str) -> None:
        async with self._refresh_locks[collection]:
            subs = [s for s in self._subscriptions if s.active and s.collection == collection]
            if not subs:
                return
            try:
                snapshot = await self.list(collection)
            except StoreError as e:
                logger.error("postgres_store: %s snapshot query failed: %s", collection, e)
                for sub in subs:
                    sub.fail(e)
                return
            for sub in subs:
                sub.deliver(snapshot)

    def _on_listener_lost(self, conn: asyncpg.Connection) -> None:
        logger.error("postgres_store: listener connection lost")
        self._listener = None
        exc = StoreError("Lost connection to the database")
        for sub in list(self._subscriptions):
            sub.fail(exc)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def close(self) -> None:
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()
        for task in list(self._tasks):
            task.cancel()
        if self._listener is not None:
            conn, self._listener = self._listener, None
            await conn.remove_listener(CHANNEL, self._on_notify)
            await self.pool.release(conn)


@asynccontextmanager
async def _errors():
    """Translate asyncpg failures into StoreError."""
    try:
        yield
    except StoreError:
        raise
    except asyncpg.InsufficientPrivilegeError as e:
        raise PermissionDenied(str(e)) from e
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        raise StoreError(str(e)) from e
