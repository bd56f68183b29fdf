"""Resource routes — update and delete."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from backend.auth import get_current_user
from backend.models.resource import DeleteResourceResponse, ResourceRequest
from backend.models.user import User
from backend.repos.store import DocumentStore
from backend.routes.deps import get_gateway, get_store, http_errors
from backend.services.gateway import CrudGateway
from engine.hub.types import LINKS, Resource

router = APIRouter(prefix="/api/resources", tags=["resources"])


@router.put("/{resource_id}", status_code=200)
async def update_resource(
    resource_id: str,
    req: ResourceRequest,
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    gateway: CrudGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Replace a resource's fields. The section it belongs to does not change."""
    with http_errors(not_found="Resource not found."):
        existing = await store.get(LINKS, resource_id)
        section_id = existing.data.get("sectionId")
        await gateway.update_resource(req.to_resource(resource_id, section_id=section_id))
        doc = await store.get(LINKS, resource_id)
    return Resource.from_doc(doc.id, doc.data).to_dict()


@router.delete("/{resource_id}", status_code=200)
async def delete_resource(
    resource_id: str,
    user: User = Depends(get_current_user),
    gateway: CrudGateway = Depends(get_gateway),
) -> DeleteResourceResponse:
    """Delete a single resource."""
    with http_errors(not_found="Resource not found."):
        await gateway.delete_resource(resource_id)
    return DeleteResourceResponse()
