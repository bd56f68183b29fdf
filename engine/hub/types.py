"""
DocHub Core — Shared Types

Immutable values used across the table model, validation, reconciler and search.
These are the contracts that bind the core together.

Documents in the store use camelCase keys (sectionId, iconName, tableData,
createdAt, ...). The dataclasses here use snake_case and convert at the edge
via from_doc() / to_doc().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from engine.hub.icons import DEFAULT_COLOR, resolve_icon_name

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SECTIONS = "sections"
LINKS = "links"

RESOURCE_TYPES: tuple[str, ...] = ("file", "table", "notes")

# Documents written before resources had a type were plain links.
LEGACY_RESOURCE_TYPE = "file"


# ---------------------------------------------------------------------------
# Table data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Column:
    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Row:
    id: str
    data: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": dict(self.data)}


@dataclass(frozen=True)
class TableData:
    """Ordered columns, ordered rows, sparse cell values keyed by column id."""

    columns: tuple[Column, ...] = ()
    rows: tuple[Row, ...] = ()

    @property
    def column_ids(self) -> list[str]:
        return [c.id for c in self.columns]

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rows": [r.to_dict() for r in self.rows],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> TableData:
        if not d:
            return cls()
        columns = tuple(Column(id=str(c["id"]), name=str(c.get("name", ""))) for c in d.get("columns", []))
        rows = tuple(
            Row(id=str(r["id"]), data={str(k): "" if v is None else str(v) for k, v in (r.get("data") or {}).items()})
            for r in d.get("rows", [])
        )
        return cls(columns=columns, rows=rows)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resource:
    """
    One entry inside a section — a file link, a table, or free-text notes.

    Exactly one of url / table_data / content is meaningful, selected by type.
    section_id may be None for orphaned documents.
    """

    id: str
    title: str
    type: str = "file"
    section_id: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()
    url: str | None = None
    table_data: TableData | None = None
    content: str | None = None
    created_at: Any = None
    updated_at: Any = None
    created_by: str | None = None

    def payload(self) -> dict[str, Any]:
        """Type-specific document fields."""
        if self.type == "table":
            return {"tableData": (self.table_data or TableData()).to_dict()}
        if self.type == "notes":
            return {"content": self.content or ""}
        return {"url": self.url or ""}

    def to_doc(self) -> dict[str, Any]:
        """Document body as stored (no id, no server timestamps)."""
        doc: dict[str, Any] = {
            "title": self.title,
            "type": self.type,
            "description": self.description or "",
            "tags": list(self.tags),
        }
        doc.update(self.payload())
        if self.section_id is not None:
            doc["sectionId"] = self.section_id
        if self.created_by is not None:
            doc["createdBy"] = self.created_by
        return doc

    def to_dict(self) -> dict[str, Any]:
        """JSON shape sent to clients."""
        d = {"id": self.id, **self.to_doc()}
        d["createdAt"] = _ts(self.created_at)
        d["updatedAt"] = _ts(self.updated_at)
        return d

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Resource:
        rtype = data.get("type") or LEGACY_RESOURCE_TYPE
        table = data.get("tableData")
        return cls(
            id=doc_id,
            title=data.get("title") or "",
            type=rtype,
            section_id=data.get("sectionId") or None,
            description=data.get("description") or None,
            tags=tuple(data.get("tags") or ()),
            url=data.get("url"),
            table_data=TableData.from_dict(table) if table is not None else None,
            content=data.get("content"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            created_by=data.get("createdBy"),
        )


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    description: str = ""
    color: str = DEFAULT_COLOR
    icon_name: str = resolve_icon_name(None)
    created_at: Any = None
    updated_at: Any = None
    created_by: str | None = None

    def to_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "color": self.color,
            "iconName": self.icon_name,
        }
        if self.created_by is not None:
            doc["createdBy"] = self.created_by
        return doc

    def to_dict(self) -> dict[str, Any]:
        d = {"id": self.id, **self.to_doc()}
        d["createdAt"] = _ts(self.created_at)
        d["updatedAt"] = _ts(self.updated_at)
        return d

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Section:
        return cls(
            id=doc_id,
            title=data.get("title") or "",
            description=data.get("description") or "",
            color=data.get("color") or DEFAULT_COLOR,
            icon_name=resolve_icon_name(data.get("iconName")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            created_by=data.get("createdBy"),
        )


@dataclass(frozen=True)
class SectionAggregate:
    """A section joined with the resources currently pointing at it."""

    section: Section
    links: tuple[Resource, ...] = ()

    @property
    def id(self) -> str:
        return self.section.id

    @property
    def title(self) -> str:
        return self.section.title

    def to_dict(self) -> dict[str, Any]:
        d = self.section.to_dict()
        d["links"] = [r.to_dict() for r in self.links]
        return d


def _ts(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
