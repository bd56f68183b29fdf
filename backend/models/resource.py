"""Resource request models. Field names follow the camelCase wire format."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from engine.hub.types import Resource, TableData


class ColumnModel(BaseModel):
    id: str
    name: str = ""


class RowModel(BaseModel):
    id: str
    data: dict[str, str | None] = Field(default_factory=dict)


class TableDataModel(BaseModel):
    columns: list[ColumnModel] = Field(default_factory=list)
    rows: list[RowModel] = Field(default_factory=list)


class ResourceRequest(BaseModel):
    """
    What the client sends to create or edit a resource.

    Only the payload field matching type is used: url for "file",
    tableData for "table", content for "notes".
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    title: str = Field(default="", max_length=500)
    type: Literal["file", "table", "notes"] = "file"
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    url: str | None = None
    table_data: TableDataModel | None = Field(default=None, alias="tableData")
    content: str | None = None

    def to_resource(self, resource_id: str = "", section_id: str | None = None) -> Resource:
        table = TableData.from_dict(self.table_data.model_dump()) if self.table_data is not None else None
        return Resource(
            id=resource_id,
            title=self.title,
            type=self.type,
            section_id=section_id,
            description=self.description,
            tags=tuple(self.tags),
            url=self.url,
            table_data=table,
            content=self.content,
        )


class DeleteResourceResponse(BaseModel):
    """What DELETE /api/resources/{id} returns."""

    message: str = "Resource deleted."
