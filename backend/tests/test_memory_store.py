"""Tests for the in-memory DocumentStore."""

from __future__ import annotations

from datetime import datetime

import pytest

from backend.repos.store import SERVER_TIMESTAMP, DocumentNotFound, PermissionDenied, StoreError
from backend.tests.helpers import settle
from engine.hub.types import LINKS, SECTIONS

pytestmark = pytest.mark.asyncio


def recorder():
    snapshots, errors = [], []
    return snapshots, errors, snapshots.append, errors.append


class TestSubscribe:
    """Snapshot delivery."""

    async def test_initial_snapshot_is_asynchronous(self, seeded):
        """Nothing arrives inside subscribe(); the first snapshot follows on the loop."""
        snapshots, errors, on_snapshot, on_error = recorder()
        seeded.subscribe(SECTIONS, on_snapshot, on_error)
        assert snapshots == []
        await settle()
        assert len(snapshots) == 1
        assert errors == []

    async def test_sections_ordered_by_title(self, seeded):
        """Sections come back title ascending."""
        snapshots, _, on_snapshot, on_error = recorder()
        seeded.subscribe(SECTIONS, on_snapshot, on_error)
        await settle()
        assert [d.id for d in snapshots[-1]] == ["s2", "s1"]

    async def test_links_ordered_by_created_at(self, store):
        """Links come back in creation order."""
        first = await store.add(LINKS, {"title": "Zed", "createdAt": SERVER_TIMESTAMP})
        second = await store.add(LINKS, {"title": "Abe", "createdAt": SERVER_TIMESTAMP})
        assert [d.id for d in await store.list(LINKS)] == [first, second]

    async def test_write_delivers_new_snapshot(self, seeded):
        """Every write replays the full collection."""
        snapshots, _, on_snapshot, on_error = recorder()
        seeded.subscribe(SECTIONS, on_snapshot, on_error)
        await settle()
        await seeded.add(SECTIONS, {"title": "Accounting"})
        await settle()
        assert len(snapshots) == 2
        assert [d.data["title"] for d in snapshots[-1]] == ["Accounting", "Design", "Engineering"]

    async def test_unsubscribe_stops_delivery(self, seeded):
        """After unsubscribe nothing is delivered, even if already scheduled."""
        snapshots, _, on_snapshot, on_error = recorder()
        unsubscribe = seeded.subscribe(SECTIONS, on_snapshot, on_error)
        unsubscribe()
        await seeded.add(SECTIONS, {"title": "Late"})
        await settle()
        assert snapshots == []
        assert seeded.subscriber_count(SECTIONS) == 0

    async def test_break_stream_reports_once(self, seeded):
        """A broken stream calls on_error once and then goes quiet."""
        snapshots, errors, on_snapshot, on_error = recorder()
        seeded.subscribe(LINKS, on_snapshot, on_error)
        await settle()
        seeded.break_stream(LINKS)
        await settle()
        await seeded.add(LINKS, {"title": "After"})
        await settle()
        assert len(errors) == 1
        assert isinstance(errors[0], StoreError)
        assert len(snapshots) == 1

    async def test_unknown_collection(self, store):
        """Only sections and links exist."""
        with pytest.raises(StoreError):
            store.subscribe("users", print, print)


class TestWrites:
    """add / update / delete / get / find."""

    async def test_server_timestamp_resolved(self, store):
        """SERVER_TIMESTAMP becomes the store's clock."""
        doc_id = await store.add(SECTIONS, {"title": "Eng", "createdAt": SERVER_TIMESTAMP})
        doc = await store.get(SECTIONS, doc_id)
        assert isinstance(doc.data["createdAt"], datetime)

    async def test_update_merges(self, seeded):
        """update() keeps fields it doesn't mention."""
        await seeded.update(SECTIONS, "s1", {"title": "Platform"})
        doc = await seeded.get(SECTIONS, "s1")
        assert doc.data["title"] == "Platform"
        assert doc.data["description"] == "Build docs"

    async def test_missing_documents(self, store):
        """update/delete/get of an unknown id raise DocumentNotFound."""
        with pytest.raises(DocumentNotFound):
            await store.update(SECTIONS, "nope", {"title": "x"})
        with pytest.raises(DocumentNotFound):
            await store.delete(SECTIONS, "nope")
        with pytest.raises(DocumentNotFound):
            await store.get(SECTIONS, "nope")

    async def test_find_by_field(self, seeded):
        """find() matches on equality."""
        docs = await seeded.find(LINKS, "sectionId", "s1")
        assert sorted(d.id for d in docs) == ["r1", "r2"]

    async def test_internal_fields_hidden(self, seeded):
        """Bookkeeping keys never leak into documents."""
        doc = await seeded.get(LINKS, "r1")
        assert not any(k.startswith("_") for k in doc.data)

    async def test_injected_failure(self, seeded):
        """Injected failures match on op, collection and id until cleared."""
        seeded.inject_failure("delete", collection=LINKS, doc_id="r2")
        await seeded.delete(LINKS, "r1")
        with pytest.raises(PermissionDenied):
            await seeded.delete(LINKS, "r2")
        seeded.clear_failures()
        await seeded.delete(LINKS, "r2")
        assert [d.id for d in await seeded.list(LINKS)] == ["r3"]

    async def test_returned_documents_are_copies(self, seeded):
        """Mutating a returned document doesn't touch the store."""
        doc = await seeded.get(LINKS, "r1")
        doc.data["tags"].append("mutated")
        assert (await seeded.get(LINKS, "r1")).data["tags"] == ["ops"]
