"""
Document store contract.

Two collections, "sections" and "links", each holding schemaless documents
with camelCase keys. A subscription delivers the full ordered snapshot of a
collection once on subscribe and again after every change:

    sections   ordered by title
    links      ordered by createdAt

Writes are asynchronous and independent of subscriptions; a write only shows
up in the view once the stream replays it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from engine.hub.types import LINKS, SECTIONS

COLLECTIONS: tuple[str, ...] = (SECTIONS, LINKS)

ORDER_BY: dict[str, str] = {
    SECTIONS: "title",
    LINKS: "createdAt",
}


class StoreError(Exception):
    """A store operation failed."""

    pass


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class PermissionDenied(StoreError):
    pass


class _ServerTimestamp:
    """Sentinel replaced by the store with its own clock at write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Any = _ServerTimestamp()


@dataclass(frozen=True)
class Document:
    id: str
    data: dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


def check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection '{collection}'")


class DocumentStore:
    """
    Abstract document store.
    Implement with Postgres for production, or in-memory for tests.
    """

    def subscribe(self, collection: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """
        Start delivering snapshots of collection. Callbacks run on the event loop.
        A stream that fails calls on_error once and delivers nothing after.
        """
        raise NotImplementedError

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document with a generated id. Returns the id."""
        raise NotImplementedError

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge fields into an existing document. DocumentNotFound if absent."""
        raise NotImplementedError

    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. DocumentNotFound if absent."""
        raise NotImplementedError

    async def get(self, collection: str, doc_id: str) -> Document:
        raise NotImplementedError

    async def find(self, collection: str, field_name: str, value: Any) -> list[Document]:
        """Documents whose field equals value, in collection order."""
        raise NotImplementedError

    async def list(self, collection: str) -> list[Document]:
        """One-shot read of the full ordered snapshot."""
        raise NotImplementedError

    async def close(self) -> None:
        pass
