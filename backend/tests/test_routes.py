"""Integration tests for section and resource routes."""

from __future__ import annotations

import pytest

from engine.hub.types import LINKS, SECTIONS
from engine.hub.validation import NOTES_EMPTY, URL_INVALID

pytestmark = pytest.mark.asyncio


# ── auth gate ──────────────────────────────────────────────────────────────


class TestAuthRequired:
    """Every /api route needs a session."""

    async def test_list_unauthenticated(self, async_client):
        """GET /api/sections without session → 401."""
        res = await async_client.get("/api/sections")
        assert res.status_code == 401

    async def test_create_unauthenticated(self, async_client):
        """POST /api/sections without session → 401."""
        res = await async_client.post("/api/sections", json={"title": "x", "description": "y"})
        assert res.status_code == 401

    async def test_bad_cookie(self, async_client):
        """Garbage session cookie → 401."""
        async_client.cookies.set("session", "not-a-jwt")
        res = await async_client.get("/api/sections")
        assert res.status_code == 401

    async def test_health(self, async_client):
        res = await async_client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}


# ── sections ───────────────────────────────────────────────────────────────


class TestSectionRoutes:
    """Tests for /api/sections endpoints."""

    async def test_list_joined(self, authed_client, seeded):
        """GET /api/sections → sections by title with their links."""
        res = await authed_client.get("/api/sections")
        assert res.status_code == 200
        data = res.json()
        assert [s["id"] for s in data] == ["s2", "s1"]
        assert [r["id"] for r in data[1]["links"]] == ["r1", "r2"]
        assert data[1]["color"] == "bg-blue-100"
        assert data[0]["iconName"] == "FolderOpen"

    async def test_list_filtered(self, authed_client, seeded):
        """GET /api/sections?q= narrows to matching resources."""
        res = await authed_client.get("/api/sections", params={"q": "OPS"})
        data = res.json()
        assert [s["id"] for s in data] == ["s1"]
        assert [r["id"] for r in data[0]["links"]] == ["r1"]

    async def test_list_drops_orphans(self, authed_client, seeded):
        """Links pointing at a missing section are not returned."""
        seeded.seed(LINKS, "orphan", {"title": "Lost", "url": "https://x.test", "sectionId": "gone"})
        res = await authed_client.get("/api/sections")
        ids = [r["id"] for s in res.json() for r in s["links"]]
        assert "orphan" not in ids

    async def test_legacy_link_reads_as_file(self, authed_client, seeded):
        """r3 was seeded without a type."""
        res = await authed_client.get("/api/sections")
        assert res.json()[0]["links"][0]["type"] == "file"

    async def test_create_section(self, authed_client, store):
        """POST /api/sections → 201 with the stored section."""
        res = await authed_client.post(
            "/api/sections",
            json={"title": "Ops", "description": "Runbooks", "iconName": "Server"},
        )
        assert res.status_code == 201
        data = res.json()
        assert data["title"] == "Ops"
        assert data["createdBy"] == "user-1"
        assert data["createdAt"] is not None
        assert len(await store.list(SECTIONS)) == 1

    async def test_create_section_invalid(self, authed_client, store):
        """Blank title → 422 with the user-facing message."""
        res = await authed_client.post("/api/sections", json={"title": "  ", "description": "Runbooks"})
        assert res.status_code == 422
        assert res.json()["detail"]["message"] == "Section title is required."
        assert await store.list(SECTIONS) == []

    async def test_create_section_extra_field(self, authed_client):
        """Unknown fields are rejected by the request model."""
        res = await authed_client.post("/api/sections", json={"title": "a", "description": "b", "owner": "me"})
        assert res.status_code == 422

    async def test_update_section(self, authed_client, seeded):
        """PUT /api/sections/{id} → 200 with new fields."""
        res = await authed_client.put(
            "/api/sections/s2",
            json={"title": "Brand", "description": "Brand docs", "color": "bg-purple-100"},
        )
        assert res.status_code == 200
        assert res.json()["title"] == "Brand"
        assert res.json()["color"] == "bg-purple-100"

    async def test_update_section_not_found(self, authed_client, seeded):
        """PUT /api/sections/{nonexistent} → 404."""
        res = await authed_client.put("/api/sections/nope", json={"title": "a", "description": "b"})
        assert res.status_code == 404

    async def test_delete_section_cascades(self, authed_client, seeded):
        """DELETE /api/sections/{id} → 200, links gone too."""
        res = await authed_client.delete("/api/sections/s1")
        assert res.status_code == 200
        assert res.json() == {"message": "Section deleted.", "deletedLinks": 2}
        assert [d.id for d in await seeded.list(LINKS)] == ["r3"]

    async def test_delete_section_partial_failure(self, authed_client, seeded):
        """A failed link delete → 502 with counts, section kept."""
        seeded.inject_failure("delete", collection=LINKS, doc_id="r1")
        res = await authed_client.delete("/api/sections/s1")
        assert res.status_code == 502
        detail = res.json()["detail"]
        assert detail["deleted"] == 1
        assert detail["failed"] == 1
        assert "s1" in [d.id for d in await seeded.list(SECTIONS)]

    async def test_delete_section_not_found(self, authed_client, seeded):
        res = await authed_client.delete("/api/sections/nope")
        assert res.status_code == 404

    async def test_store_write_failure(self, authed_client, seeded):
        """Store refuses the write → 502."""
        seeded.inject_failure("add")
        res = await authed_client.post("/api/sections", json={"title": "Ops", "description": "Runbooks"})
        assert res.status_code == 502


# ── resources ──────────────────────────────────────────────────────────────


class TestResourceRoutes:
    """Tests for resource endpoints."""

    async def test_add_file_resource(self, authed_client, seeded):
        """POST /api/sections/{id}/resources → 201."""
        res = await authed_client.post(
            "/api/sections/s2/resources",
            json={"title": "Logos", "url": "https://design.test/logos", "tags": ["brand", " brand "]},
        )
        assert res.status_code == 201
        data = res.json()
        assert data["sectionId"] == "s2"
        assert data["type"] == "file"
        assert data["tags"] == ["brand"]

    async def test_add_table_resource(self, authed_client, seeded):
        res = await authed_client.post(
            "/api/sections/s1/resources",
            json={
                "title": "On-call",
                "type": "table",
                "tableData": {
                    "columns": [{"id": "c1", "name": "Week"}],
                    "rows": [{"id": "r1", "data": {"c1": None}}],
                },
            },
        )
        assert res.status_code == 201
        assert res.json()["tableData"]["rows"][0]["data"] == {"c1": ""}

    async def test_add_resource_invalid_url(self, authed_client, seeded):
        """Relative URL → 422 with the file-specific message."""
        res = await authed_client.post("/api/sections/s2/resources", json={"title": "Logos", "url": "logos"})
        assert res.status_code == 422
        assert res.json()["detail"]["message"] == URL_INVALID

    async def test_add_resource_empty_notes(self, authed_client, seeded):
        res = await authed_client.post(
            "/api/sections/s2/resources",
            json={"title": "Notes", "type": "notes", "content": " "},
        )
        assert res.status_code == 422
        assert res.json()["detail"]["message"] == NOTES_EMPTY

    async def test_add_resource_unknown_type(self, authed_client, seeded):
        res = await authed_client.post("/api/sections/s2/resources", json={"title": "Clip", "type": "video"})
        assert res.status_code == 422

    async def test_add_resource_missing_section(self, authed_client, seeded):
        """POST to a section that doesn't exist → 404."""
        res = await authed_client.post(
            "/api/sections/nope/resources",
            json={"title": "Logos", "url": "https://design.test/logos"},
        )
        assert res.status_code == 404

    async def test_update_resource(self, authed_client, seeded):
        """PUT /api/resources/{id} keeps the section."""
        res = await authed_client.put(
            "/api/resources/r1",
            json={"title": "Runbook v2", "type": "notes", "content": "1. Deploy"},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["title"] == "Runbook v2"
        assert data["content"] == "1. Deploy"
        assert data["sectionId"] == "s1"

    async def test_update_resource_not_found(self, authed_client, seeded):
        res = await authed_client.put("/api/resources/nope", json={"title": "x", "url": "https://x.test"})
        assert res.status_code == 404

    async def test_delete_resource(self, authed_client, seeded):
        res = await authed_client.delete("/api/resources/r3")
        assert res.status_code == 200
        assert "deleted" in res.json()["message"].lower()
        res = await authed_client.delete("/api/resources/r3")
        assert res.status_code == 404
