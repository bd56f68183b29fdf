"""Section request models. Field names follow the camelCase wire format."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from engine.hub.icons import DEFAULT_COLOR, resolve_icon_name
from engine.hub.types import Section


class SectionRequest(BaseModel):
    """What the client sends to create or edit a section."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    title: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    color: str | None = None
    icon_name: str | None = Field(default=None, alias="iconName")

    def to_section(self, section_id: str = "") -> Section:
        """Build the domain value. Validation happens in the gateway, not here."""
        return Section(
            id=section_id,
            title=self.title,
            description=self.description,
            color=self.color or DEFAULT_COLOR,
            icon_name=resolve_icon_name(self.icon_name),
        )


class DeleteSectionResponse(BaseModel):
    """What DELETE /api/sections/{id} returns."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Section deleted."
    deleted_links: int = Field(default=0, alias="deletedLinks")
