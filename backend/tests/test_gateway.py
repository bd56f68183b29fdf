"""Tests for the CRUD gateway against MemoryStore."""

from __future__ import annotations

from datetime import datetime

import pytest

from backend.repos.store import DocumentNotFound, StoreError
from backend.services.gateway import CascadeDeleteError, CrudGateway, WriteError
from engine.hub.types import LINKS, SECTIONS, Column, Resource, Section, TableData
from engine.hub.validation import URL_INVALID, ValidationError

pytestmark = pytest.mark.asyncio


@pytest.fixture
def gateway(seeded):
    return CrudGateway(seeded)


class TestSections:
    async def test_add_section_stamps_owner_and_timestamps(self, gateway, store):
        """createdBy and server timestamps are written by the gateway."""
        section_id = await gateway.add_section(Section(id="", title="Ops", description="Runbooks"), "user-1")
        doc = await store.get(SECTIONS, section_id)
        assert doc.data["title"] == "Ops"
        assert doc.data["createdBy"] == "user-1"
        assert doc.data["iconName"] == "FolderOpen"
        assert isinstance(doc.data["createdAt"], datetime)
        assert isinstance(doc.data["updatedAt"], datetime)

    async def test_invalid_section_never_reaches_store(self, gateway, store):
        """Validation runs before any write."""
        with pytest.raises(ValidationError):
            await gateway.add_section(Section(id="", title="Ops", description=" "), "user-1")
        assert len(await store.list(SECTIONS)) == 2

    async def test_update_section(self, gateway, store):
        await gateway.update_section(Section(id="s1", title="Platform", description="Infra docs"))
        doc = await store.get(SECTIONS, "s1")
        assert doc.data["title"] == "Platform"
        assert doc.data["description"] == "Infra docs"

    async def test_update_missing_section(self, gateway):
        with pytest.raises(DocumentNotFound):
            await gateway.update_section(Section(id="gone", title="X", description="Y"))

    async def test_write_failure_becomes_write_error(self, gateway, store):
        """Store errors surface as WriteError with a user-facing message."""
        store.inject_failure("add")
        with pytest.raises(WriteError) as exc:
            await gateway.add_section(Section(id="", title="Ops", description="Runbooks"), "user-1")
        assert "saving the section" in exc.value.message
        assert isinstance(exc.value.cause, StoreError)


class TestCascadeDelete:
    async def test_deletes_links_then_section(self, gateway, store):
        """Only the section's own links go."""
        deleted = await gateway.delete_section("s1")
        assert deleted == 2
        assert [d.id for d in await store.list(SECTIONS)] == ["s2"]
        assert [d.id for d in await store.list(LINKS)] == ["r3"]

    async def test_empty_section(self, gateway, store):
        section_id = await gateway.add_section(Section(id="", title="Empty", description="Nothing"), "user-1")
        assert await gateway.delete_section(section_id) == 0

    async def test_partial_failure_keeps_section(self, gateway, store):
        """One failed link delete: the other link is gone, the section stays."""
        store.inject_failure("delete", collection=LINKS, doc_id="r2")
        with pytest.raises(CascadeDeleteError) as exc:
            await gateway.delete_section("s1")
        assert exc.value.deleted == 1
        assert exc.value.failed == 1
        assert "s1" in [d.id for d in await store.list(SECTIONS)]
        assert sorted(d.id for d in await store.list(LINKS)) == ["r2", "r3"]

    async def test_section_delete_failure(self, gateway, store):
        """Links gone, section delete fails: WriteError."""
        store.inject_failure("delete", collection=SECTIONS)
        with pytest.raises(WriteError):
            await gateway.delete_section("s1")
        assert [d.id for d in await store.list(LINKS)] == ["r3"]

    async def test_missing_section(self, gateway):
        with pytest.raises(DocumentNotFound):
            await gateway.delete_section("gone")


class TestResources:
    async def test_add_file_resource(self, gateway, store):
        """Tags are normalized; sectionId and payload are written."""
        draft = Resource(
            id="",
            title="Postmortems",
            type="file",
            url="https://wiki.test/pm",
            tags=(" ops", "ops", "", "incidents"),
        )
        resource_id = await gateway.add_resource(draft, "s2", "user-1")
        doc = await store.get(LINKS, resource_id)
        assert doc.data["sectionId"] == "s2"
        assert doc.data["tags"] == ["ops", "incidents"]
        assert doc.data["url"] == "https://wiki.test/pm"
        assert doc.data["createdBy"] == "user-1"
        assert "tableData" not in doc.data

    async def test_add_table_resource(self, gateway, store):
        table = TableData(columns=(Column(id="c1", name="Name"),))
        draft = Resource(id="", title="Roster", type="table", table_data=table)
        resource_id = await gateway.add_resource(draft, "s1", "user-1")
        doc = await store.get(LINKS, resource_id)
        assert doc.data["tableData"] == {"columns": [{"id": "c1", "name": "Name"}], "rows": []}
        assert "url" not in doc.data

    async def test_invalid_resource_rejected(self, gateway, store):
        with pytest.raises(ValidationError) as exc:
            await gateway.add_resource(Resource(id="", title="Bad", url="nope"), "s1", "user-1")
        assert exc.value.message == URL_INVALID
        assert len(await store.list(LINKS)) == 3

    async def test_update_resource_writes_type_payload(self, gateway, store):
        """Switching to notes writes content; sectionId is untouched."""
        await gateway.update_resource(Resource(id="r1", title="Runbook notes", type="notes", content="Step 1"))
        doc = await store.get(LINKS, "r1")
        assert doc.data["type"] == "notes"
        assert doc.data["content"] == "Step 1"
        assert doc.data["sectionId"] == "s1"

    async def test_delete_resource(self, gateway, store):
        await gateway.delete_resource("r3")
        assert [d.id for d in await store.list(LINKS)] == ["r1", "r2"]
        with pytest.raises(DocumentNotFound):
            await gateway.delete_resource("r3")

    async def test_delete_resource_failure(self, gateway, store):
        store.inject_failure("delete")
        with pytest.raises(WriteError):
            await gateway.delete_resource("r3")
