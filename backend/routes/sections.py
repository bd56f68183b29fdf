"""Section routes — list (joined and filtered), create, update, cascade delete, add resource."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from backend.auth import get_current_user
from backend.models.resource import ResourceRequest
from backend.models.section import DeleteSectionResponse, SectionRequest
from backend.models.user import User
from backend.repos.store import DocumentStore
from backend.routes.deps import get_gateway, get_store, http_errors
from backend.services.gateway import CrudGateway
from engine.hub.reconciler import group_by_section, join, sort_sections
from engine.hub.search import filter_sections
from engine.hub.types import LINKS, SECTIONS, Resource, Section

router = APIRouter(prefix="/api/sections", tags=["sections"])


@router.get("", status_code=200)
async def list_sections(
    q: str = "",
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """
    One-shot read of every section with its resources.

    Same join as the live view: sections by title, resources grouped by
    sectionId, orphans dropped, then narrowed by q.
    """
    with http_errors():
        section_docs = await store.list(SECTIONS)
        link_docs = await store.list(LINKS)
    sections = sort_sections(Section.from_doc(d.id, d.data) for d in section_docs)
    links = group_by_section(Resource.from_doc(d.id, d.data) for d in link_docs)
    return [a.to_dict() for a in filter_sections(join(sections, links), q)]


@router.post("", status_code=201)
async def create_section(
    req: SectionRequest,
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    gateway: CrudGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Create a new section."""
    with http_errors(not_found="Section not found."):
        section_id = await gateway.add_section(req.to_section(), user.id)
        doc = await store.get(SECTIONS, section_id)
    return Section.from_doc(doc.id, doc.data).to_dict()


@router.put("/{section_id}", status_code=200)
async def update_section(
    section_id: str,
    req: SectionRequest,
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    gateway: CrudGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Update a section's title, description, color and icon."""
    with http_errors(not_found="Section not found."):
        await gateway.update_section(req.to_section(section_id))
        doc = await store.get(SECTIONS, section_id)
    return Section.from_doc(doc.id, doc.data).to_dict()


@router.delete("/{section_id}", status_code=200)
async def delete_section(
    section_id: str,
    user: User = Depends(get_current_user),
    gateway: CrudGateway = Depends(get_gateway),
) -> DeleteSectionResponse:
    """Delete a section and every resource in it."""
    with http_errors(not_found="Section not found."):
        deleted = await gateway.delete_section(section_id)
    return DeleteSectionResponse(deleted_links=deleted)


@router.post("/{section_id}/resources", status_code=201)
async def add_resource(
    section_id: str,
    req: ResourceRequest,
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    gateway: CrudGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Add a resource to a section."""
    with http_errors(not_found="Section not found."):
        await store.get(SECTIONS, section_id)
    with http_errors(not_found="Resource not found."):
        resource_id = await gateway.add_resource(req.to_resource(section_id=section_id), section_id, user.id)
        doc = await store.get(LINKS, resource_id)
    return Resource.from_doc(doc.id, doc.data).to_dict()
