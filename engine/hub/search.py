"""
DocHub Core — Search

Pure filters over already-reconciled data. Nothing here mutates its input.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from engine.hub.types import Resource, SectionAggregate, TableData


def resource_matches(resource: Resource, needle: str) -> bool:
    """needle must already be lowercased."""
    if needle in resource.title.lower():
        return True
    if resource.description and needle in resource.description.lower():
        return True
    return any(needle in tag.lower() for tag in resource.tags)


def filter_sections(sections: Sequence[SectionAggregate], query: str) -> list[SectionAggregate]:
    """
    Narrow sections to resources matching query (title, description, tags).

    Empty query returns every section, resource-less ones included.
    Otherwise a section survives only if at least one resource matches.
    """
    if query == "":
        return list(sections)

    needle = query.lower()
    result: list[SectionAggregate] = []
    for aggregate in sections:
        links = tuple(r for r in aggregate.links if resource_matches(r, needle))
        if links:
            result.append(replace(aggregate, links=links))
    return result


def filter_rows(table: TableData, query: str) -> TableData:
    """Rows with any cell (of a current column) containing query, case-insensitive."""
    if not query:
        return table
    needle = query.lower()
    ids = table.column_ids
    rows = tuple(r for r in table.rows if any(needle in r.data.get(cid, "").lower() for cid in ids))
    return replace(table, rows=rows)
