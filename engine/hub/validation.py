"""
DocHub Core — Pre-save validation

Runs before anything reaches the gateway. Never mutates its input, so a
rejected form keeps everything the user typed.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

from engine.hub.types import RESOURCE_TYPES, Resource


class ValidationError(Exception):
    """A draft cannot be saved. message is meant for the user."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


TITLE_REQUIRED = "Title is required."
URL_INVALID = "A file resource needs a valid absolute URL, like https://example.com/doc."
TABLE_NO_COLUMNS = "A table resource needs at least one column."
NOTES_EMPTY = "Notes content cannot be empty."
SECTION_TITLE_REQUIRED = "Section title is required."
SECTION_DESCRIPTION_REQUIRED = "Section description is required."


def is_absolute_url(value: str | None) -> bool:
    if not value or any(ch.isspace() for ch in value.strip()):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def validate_resource(resource: Resource) -> None:
    """Raise ValidationError with a type-aware message, or return None."""
    if resource.type not in RESOURCE_TYPES:
        raise ValidationError("type", f"Unknown resource type '{resource.type}'.")

    if not resource.title.strip():
        raise ValidationError("title", TITLE_REQUIRED)

    if resource.type == "file":
        if not is_absolute_url(resource.url):
            raise ValidationError("url", URL_INVALID)
    elif resource.type == "table":
        if resource.table_data is None or not resource.table_data.columns:
            raise ValidationError("tableData", TABLE_NO_COLUMNS)
    elif resource.type == "notes":
        if not (resource.content or "").strip():
            raise ValidationError("content", NOTES_EMPTY)


def validate_section(title: str, description: str) -> None:
    if not title.strip():
        raise ValidationError("title", SECTION_TITLE_REQUIRED)
    if not description.strip():
        raise ValidationError("description", SECTION_DESCRIPTION_REQUIRED)


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Trim, drop blanks and duplicates, keep first-seen order."""
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)
