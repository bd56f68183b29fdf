"""
DocHub Core — the pure engine.

  types       — Section, Resource, TableData, SectionAggregate
  table       — table operations + the Viewing/Editing editor
  validation  — pre-save gate for resources and sections
  reconciler  — merges the sections and links streams into aggregates
  search      — query filter over aggregates
  session     — admin-mode flag persisted per profile
"""

from engine.hub.reconciler import LoadState, Reconciler, ReconcilerView, join
from engine.hub.search import filter_rows, filter_sections
from engine.hub.session import AdminSessionState
from engine.hub.table import EditorState, TableEditError, TableEditor
from engine.hub.types import Column, Resource, Row, Section, SectionAggregate, TableData
from engine.hub.validation import ValidationError, validate_resource, validate_section

__all__ = [
    "AdminSessionState",
    "Column",
    "EditorState",
    "LoadState",
    "Reconciler",
    "ReconcilerView",
    "Resource",
    "Row",
    "Section",
    "SectionAggregate",
    "TableData",
    "TableEditError",
    "TableEditor",
    "ValidationError",
    "filter_rows",
    "filter_sections",
    "join",
    "validate_resource",
    "validate_section",
]
