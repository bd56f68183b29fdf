"""
CRUD gateway — domain operations to store writes.

Validation runs before any store call. Server timestamps and createdBy are
stamped here. Store failures surface as WriteError; DocumentNotFound passes
through untouched so callers can tell "gone" from "failed".

Section delete cascades without a transaction: links first, then the section.
If any link delete fails the section is kept and CascadeDeleteError reports
how many links went.
"""

from __future__ import annotations

import asyncio
import logging

from backend.repos.store import SERVER_TIMESTAMP, DocumentNotFound, DocumentStore, StoreError
from engine.hub.types import LINKS, SECTIONS, Resource, Section
from engine.hub.validation import normalize_tags, validate_resource, validate_section

logger = logging.getLogger(__name__)


class WriteError(Exception):
    """A store write failed. message is meant for the user."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class CascadeDeleteError(WriteError):
    def __init__(self, section_id: str, deleted: int, failed: int) -> None:
        super().__init__(
            f"Deleted {deleted} of {deleted + failed} resources; the section was kept. Please try again."
        )
        self.section_id = section_id
        self.deleted = deleted
        self.failed = failed


class CrudGateway:
    """All writes to sections and links go through here."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # -- Sections -------------------------------------------------------------

    async def add_section(self, section: Section, user_id: str) -> str:
        validate_section(section.title, section.description)
        data = {
            **section.to_doc(),
            "createdBy": user_id,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
        try:
            section_id = await self.store.add(SECTIONS, data)
        except StoreError as e:
            logger.warning("gateway: add section failed: %s", e)
            raise WriteError("There was a problem saving the section. Please try again.", e) from e
        logger.info("gateway: added section %s by %s", section_id, user_id)
        return section_id

    async def update_section(self, section: Section) -> None:
        validate_section(section.title, section.description)
        data = {
            "title": section.title,
            "description": section.description,
            "color": section.color,
            "iconName": section.icon_name,
            "updatedAt": SERVER_TIMESTAMP,
        }
        try:
            await self.store.update(SECTIONS, section.id, data)
        except DocumentNotFound:
            raise
        except StoreError as e:
            logger.warning("gateway: update section %s failed: %s", section.id, e)
            raise WriteError("There was a problem saving the section. Please try again.", e) from e
        logger.info("gateway: updated section %s", section.id)

    async def delete_section(self, section_id: str) -> int:
        """
        Delete every link of the section, then the section.

        Returns the number of links deleted. Links already gone count as
        deleted.
        """
        try:
            links = await self.store.find(LINKS, "sectionId", section_id)
        except StoreError as e:
            logger.warning("gateway: cascade lookup for section %s failed: %s", section_id, e)
            raise WriteError("There was a problem deleting the section. Please try again.", e) from e

        results = await asyncio.gather(
            *(self.store.delete(LINKS, link.id) for link in links),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, StoreError):
                raise result
        failed = [r for r in results if isinstance(r, StoreError) and not isinstance(r, DocumentNotFound)]
        if failed:
            deleted = len(links) - len(failed)
            logger.warning(
                "gateway: cascade delete of section %s incomplete: %d deleted, %d failed",
                section_id,
                deleted,
                len(failed),
            )
            raise CascadeDeleteError(section_id, deleted, len(failed))

        try:
            await self.store.delete(SECTIONS, section_id)
        except DocumentNotFound:
            raise
        except StoreError as e:
            logger.warning("gateway: delete section %s failed: %s", section_id, e)
            raise WriteError("There was a problem deleting the section. Please try again.", e) from e
        logger.info("gateway: deleted section %s and %d links", section_id, len(links))
        return len(links)

    # -- Resources ------------------------------------------------------------

    async def add_resource(self, resource: Resource, section_id: str, user_id: str) -> str:
        validate_resource(resource)
        data = {
            "title": resource.title,
            "type": resource.type,
            "description": resource.description or "",
            "tags": list(normalize_tags(resource.tags)),
            **resource.payload(),
            "sectionId": section_id,
            "createdBy": user_id,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
        try:
            resource_id = await self.store.add(LINKS, data)
        except StoreError as e:
            logger.warning("gateway: add resource to section %s failed: %s", section_id, e)
            raise WriteError("There was a problem saving the resource. Please try again.", e) from e
        logger.info("gateway: added %s resource %s to section %s", resource.type, resource_id, section_id)
        return resource_id

    async def update_resource(self, resource: Resource) -> None:
        """Full update of base fields plus the payload for the resource's type."""
        validate_resource(resource)
        data = {
            "title": resource.title,
            "type": resource.type,
            "description": resource.description or "",
            "tags": list(normalize_tags(resource.tags)),
            **resource.payload(),
            "updatedAt": SERVER_TIMESTAMP,
        }
        try:
            await self.store.update(LINKS, resource.id, data)
        except DocumentNotFound:
            raise
        except StoreError as e:
            logger.warning("gateway: update resource %s failed: %s", resource.id, e)
            raise WriteError("There was a problem saving the resource. Please try again.", e) from e
        logger.info("gateway: updated resource %s", resource.id)

    async def delete_resource(self, resource_id: str) -> None:
        try:
            await self.store.delete(LINKS, resource_id)
        except DocumentNotFound:
            raise
        except StoreError as e:
            logger.warning("gateway: delete resource %s failed: %s", resource_id, e)
            raise WriteError("There was a problem deleting the resource. Please try again.", e) from e
        logger.info("gateway: deleted resource %s", resource_id)
