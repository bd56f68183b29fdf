"""
In-process DocumentStore.

Used when DATABASE_URL is empty and in tests. Snapshots are delivered
asynchronously with loop.call_soon, never inside the write call, so callers
see the same ordering they would against a real backend.

Fault injection:
    store.inject_failure("delete", collection="links", doc_id="r2")
    store.break_stream("links")
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from backend.repos.store import (
    COLLECTIONS,
    ORDER_BY,
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

logger = logging.getLogger(__name__)


class _Subscription:
    def __init__(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.loop = loop
        self.active = True

    def deliver(self, snapshot: list[Document]) -> None:
        if self.active:
            self.on_snapshot(snapshot)

    def fail(self, exc: Exception) -> None:
        if self.active:
            self.active = False
            self.on_error(exc)


class MemoryStore(DocumentStore):
    """Dict-backed store with asynchronous snapshot delivery."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, dict[str, Any]]] = {c: {} for c in COLLECTIONS}
        self._subscriptions: list[_Subscription] = []
        self._failures: list[tuple[str, str | None, str | None, StoreError]] = []
        self._created = 0

    # -- Fault injection ------------------------------------------------------

    def inject_failure(
        self,
        op: str,
        *,
        collection: str | None = None,
        doc_id: str | None = None,
        exc: StoreError | None = None,
    ) -> None:
        """Make matching writes (op: add, update, delete) raise until clear_failures()."""
        self._failures.append((op, collection, doc_id, exc or PermissionDenied("Missing or insufficient permissions.")))

    def clear_failures(self) -> None:
        self._failures.clear()

    def break_stream(self, collection: str, exc: Exception | None = None) -> None:
        """Fail every live subscription on collection."""
        exc = exc or StoreError(f"{collection} stream disconnected")
        for sub in self._live(collection):
            sub.loop.call_soon(sub.fail, exc)

    def seed(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Insert a document directly, without notifying subscribers."""
        check_collection(collection)
        data = {"createdAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP, **copy.deepcopy(data)}
        self._docs[collection][doc_id] = self._stamp(data, created=True)

    def subscriber_count(self, collection: str) -> int:
        return len(self._live(collection))

    # -- DocumentStore --------------------------------------------------------

    def subscribe(self, collection: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        check_collection(collection)
        sub = _Subscription(collection, on_snapshot, on_error, asyncio.get_running_loop())
        self._subscriptions.append(sub)
        sub.loop.call_soon(sub.deliver, self._snapshot(collection))
        logger.info("memory_store: subscribed to %s", collection)

        def unsubscribe() -> None:
            if sub.active:
                sub.active = False
                logger.info("memory_store: unsubscribed from %s", collection)
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        check_collection(collection)
        self._check("add", collection, None)
        doc_id = uuid.uuid4().hex[:20]
        self._docs[collection][doc_id] = self._stamp(copy.deepcopy(data), created=True)
        self._notify(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        check_collection(collection)
        self._check("update", collection, doc_id)
        existing = self._docs[collection].get(doc_id)
        if existing is None:
            raise DocumentNotFound(collection, doc_id)
        existing.update(self._stamp(copy.deepcopy(data)))
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        check_collection(collection)
        self._check("delete", collection, doc_id)
        if self._docs[collection].pop(doc_id, None) is None:
            raise DocumentNotFound(collection, doc_id)
        self._notify(collection)

    async def get(self, collection: str, doc_id: str) -> Document:
        check_collection(collection)
        data = self._docs[collection].get(doc_id)
        if data is None:
            raise DocumentNotFound(collection, doc_id)
        return Document(id=doc_id, data=_public(data))

    async def find(self, collection: str, field_name: str, value: Any) -> list[Document]:
        check_collection(collection)
        return [d for d in self._snapshot(collection) if d.data.get(field_name) == value]

    async def list(self, collection: str) -> list[Document]:
        check_collection(collection)
        return self._snapshot(collection)

    async def close(self) -> None:
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()

    # -- Internals ------------------------------------------------------------

    def _check(self, op: str, collection: str, doc_id: str | None) -> None:
        for f_op, f_collection, f_doc_id, exc in self._failures:
            if f_op != op:
                continue
            if f_collection is not None and f_collection != collection:
                continue
            if f_doc_id is not None and f_doc_id != doc_id:
                continue
            raise exc

    def _stamp(self, data: dict[str, Any], created: bool = False) -> dict[str, Any]:
        now = datetime.now(UTC)
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                data[key] = now
        if created:
            # insertion counter breaks createdAt ties
            self._created += 1
            data.setdefault("_seq", self._created)
        return data

    def _snapshot(self, collection: str) -> list[Document]:
        order_field = ORDER_BY[collection]

        def key(item: tuple[str, dict[str, Any]]) -> tuple:
            value = item[1].get(order_field)
            if order_field == "title":
                return (value or "",)
            return (value is None, value or datetime.min.replace(tzinfo=UTC), item[1].get("_seq", 0))

        ordered = sorted(self._docs[collection].items(), key=key)
        return [Document(id=doc_id, data=_public(data)) for doc_id, data in ordered]

    def _live(self, collection: str) -> list[_Subscription]:
        return [s for s in self._subscriptions if s.active and s.collection == collection]

    def _notify(self, collection: str) -> None:
        snapshot = self._snapshot(collection)
        for sub in self._live(collection):
            sub.loop.call_soon(sub.deliver, snapshot)


def _public(data: dict[str, Any]) -> dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in data.items() if not k.startswith("_")}
