"""
HubView — server-side state for one connected client.

Owns the reconciler fed by the two store streams, the search query, the
expanded-section set, the admin session, open table editors and busy markers.
Everything the client sees goes out as frames on self.frames:

    {"type": "sections", "state", "error", "query", "admin", "expanded", "busy", "sections"}
    {"type": "notice", "level", "title", "description"}
    {"type": "table", "resourceId", "closed", "state", "dirty", "saving", "error", "table", "query", "visibleRows"}

Writes run as background tasks. The view never patches the aggregated list
after a write; the change arrives through the stream like any other. After
close() nothing is emitted, but writes already in flight still complete.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Coroutine
from contextlib import contextmanager
from dataclasses import replace
from functools import partial
from typing import Any

import pydantic

from backend.models.resource import ResourceRequest
from backend.models.section import SectionRequest
from backend.models.user import User
from backend.repos.store import Document, DocumentNotFound, DocumentStore, Unsubscribe
from backend.services.gateway import CascadeDeleteError, CrudGateway, WriteError
from engine.hub.reconciler import LoadState, Reconciler, ReconcilerView
from engine.hub.search import filter_rows, filter_sections
from engine.hub.session import AdminSessionState
from engine.hub.table import TableEditError, TableEditor
from engine.hub.types import LINKS, SECTIONS, Resource, Section
from engine.hub.validation import ValidationError

logger = logging.getLogger(__name__)

CONNECTION_ERROR_TEXT = (
    "Could not establish connection to the database. Please check your internet connection and try again."
)


def _str(msg: dict[str, Any], key: str, default: str | None = None) -> str:
    value = msg.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


class HubView:
    """One per connection. Call start() inside the event loop, close() on disconnect."""

    def __init__(
        self,
        store: DocumentStore,
        user: User,
        admin: AdminSessionState,
        gateway: CrudGateway | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway or CrudGateway(store)
        self.user = user
        self.admin = admin
        self.frames: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.query = ""
        self.expanded: set[str] = set()
        self.busy: set[str] = set()
        self.editors: dict[str, TableEditor] = {}
        self.table_queries: dict[str, str] = {}
        self.reconciler = Reconciler(on_change=self._on_view_change)
        self._resources: dict[str, Resource] = {}
        self._unsubscribe: list[Unsubscribe] = []
        self._tasks: set[asyncio.Task] = set()
        self._add_seq = itertools.count(1)
        self._closed = False
        self._commands: dict[str, Callable[[dict[str, Any]], None]] = {
            "search": self._cmd_search,
            "toggle_section": self._cmd_toggle_section,
            "admin.set": self._cmd_admin_set,
            "section.save": self._cmd_section_save,
            "section.delete": self._cmd_section_delete,
            "resource.save": self._cmd_resource_save,
            "resource.delete": self._cmd_resource_delete,
            "table.open": self._cmd_table_open,
            "table.edit": self._cmd_table_edit,
            "table.op": self._cmd_table_op,
            "table.search": self._cmd_table_search,
            "table.cancel": self._cmd_table_cancel,
            "table.save": self._cmd_table_save,
            "table.close": self._cmd_table_close,
        }

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._push(self.sections_frame())
        self._unsubscribe = [
            self.store.subscribe(SECTIONS, self._on_sections, partial(self.reconciler.on_error, "sections")),
            self.store.subscribe(LINKS, self._on_links, partial(self.reconciler.on_error, "links")),
        ]
        logger.info("hub_view: started for user=%s", self.user.id)

    def close(self) -> None:
        """Unsubscribe both streams together. Pending writes are left to finish."""
        if self._closed:
            return
        self._closed = True
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        self.reconciler.release()
        for editor in self.editors.values():
            editor.close()
        logger.info("hub_view: closed for user=%s", self.user.id)

    async def drain(self) -> None:
        """Wait for every write started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def sections_frame(self) -> dict[str, Any]:
        view = self.reconciler.view
        return {
            "type": "sections",
            "state": view.state.value,
            "error": view.error,
            "query": self.query,
            "admin": self.admin.enabled,
            "expanded": sorted(self.expanded),
            "busy": sorted(self.busy),
            "sections": [a.to_dict() for a in filter_sections(view.sections, self.query)],
        }

    def table_frame(self, resource_id: str) -> dict[str, Any]:
        editor = self.editors.get(resource_id)
        if editor is None:
            return {"type": "table", "resourceId": resource_id, "closed": True}
        query = self.table_queries.get(resource_id, "")
        visible = filter_rows(editor.current, query)
        return {
            "type": "table",
            "resourceId": resource_id,
            "closed": False,
            **editor.to_dict(),
            "query": query,
            "visibleRows": [r.id for r in visible.rows],
        }

    def notice(self, level: str, title: str, description: str) -> None:
        self._push({"type": "notice", "level": level, "title": title, "description": description})

    def _push(self, frame: dict[str, Any]) -> None:
        if not self._closed:
            self.frames.put_nowait(frame)

    def _emit(self) -> None:
        self._push(self.sections_frame())

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def _on_sections(self, docs: list[Document]) -> None:
        self.reconciler.on_sections([Section.from_doc(d.id, d.data) for d in docs])

    def _on_links(self, docs: list[Document]) -> None:
        resources = [Resource.from_doc(d.id, d.data) for d in docs]
        self._resources = {r.id: r for r in resources}
        self.reconciler.on_resources(resources)
        for resource_id in list(self.editors):
            resource = self._resources.get(resource_id)
            if resource is None or resource.type != "table":
                self.editors.pop(resource_id).close()
                self.table_queries.pop(resource_id, None)
            else:
                self.editors[resource_id].rebase(resource.table_data)
            self._push(self.table_frame(resource_id))

    def _on_view_change(self, view: ReconcilerView) -> None:
        if view.state is LoadState.CONNECTION_ERROR:
            self.notice("error", "Connection error", CONNECTION_ERROR_TEXT)
        self._emit()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle(self, msg: dict[str, Any]) -> None:
        """Dispatch one client command. Never raises for bad input."""
        if self._closed:
            return
        kind = msg.get("type")
        command = self._commands.get(kind) if isinstance(kind, str) else None
        if command is None:
            logger.warning("hub_view: unknown command %r", kind)
            return
        try:
            command(msg)
        except (AttributeError, KeyError, TypeError, ValueError, pydantic.ValidationError) as e:
            logger.warning("hub_view: malformed %s command: %s", kind, e)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @contextmanager
    def _busy(self, key: str):
        self.busy.add(key)
        self._emit()
        try:
            yield
        finally:
            self.busy.discard(key)
            self._emit()

    def _add_key(self, scope: str) -> str:
        """Busy marker for one pending add; concurrent adds each get their own."""
        return f"{scope}:new:{next(self._add_seq)}"

    def _require_admin(self) -> bool:
        if self.admin.enabled:
            return True
        self.notice("error", "Admin mode required", "Turn on admin mode to make changes.")
        return False

    def _cmd_search(self, msg: dict[str, Any]) -> None:
        self.query = _str(msg, "query", "")
        self._emit()

    def _cmd_toggle_section(self, msg: dict[str, Any]) -> None:
        section_id = _str(msg, "sectionId")
        self.expanded ^= {section_id}
        self._emit()

    def _cmd_admin_set(self, msg: dict[str, Any]) -> None:
        enabled = msg["enabled"]
        if not isinstance(enabled, bool):
            raise TypeError("'enabled' must be a boolean")
        self.admin.set(enabled)
        self._emit()

    # -- Sections -------------------------------------------------------

    def _cmd_section_save(self, msg: dict[str, Any]) -> None:
        if not self._require_admin():
            return
        section_id = _str(msg, "id", "")
        fields = {k: v for k, v in msg.items() if k not in ("type", "id")}
        draft = SectionRequest.model_validate(fields).to_section(section_id)
        self._spawn(self._save_section(draft, section_id or self._add_key("section")))

    async def _save_section(self, draft: Section, busy_key: str) -> None:
        with self._busy(busy_key):
            try:
                if draft.id:
                    await self.gateway.update_section(draft)
                else:
                    await self.gateway.add_section(draft, self.user.id)
            except ValidationError as e:
                self.notice("error", "Validation error", e.message)
                return
            except DocumentNotFound:
                self.notice("error", "Error", "This section no longer exists.")
                return
            except WriteError as e:
                self.notice("error", "Error", e.message)
                return
        if draft.id:
            self.notice("success", "Section updated", "The section has been updated successfully.")
        else:
            self.notice("success", "Section added", "The section has been added successfully.")

    def _cmd_section_delete(self, msg: dict[str, Any]) -> None:
        if not self._require_admin():
            return
        self._spawn(self._delete_section(_str(msg, "id")))

    async def _delete_section(self, section_id: str) -> None:
        with self._busy(section_id):
            try:
                await self.gateway.delete_section(section_id)
            except CascadeDeleteError as e:
                self.notice("error", "Error", e.message)
                return
            except DocumentNotFound:
                self.notice("error", "Error", "This section no longer exists.")
                return
            except WriteError as e:
                self.notice("error", "Error", e.message)
                return
        self.expanded.discard(section_id)
        self.notice(
            "success",
            "Section deleted",
            "The section and all its resources have been deleted successfully.",
        )

    # -- Resources ------------------------------------------------------

    def _cmd_resource_save(self, msg: dict[str, Any]) -> None:
        if not self._require_admin():
            return
        resource_id = _str(msg, "id", "")
        section_id = None if resource_id else _str(msg, "sectionId")
        draft = ResourceRequest.model_validate(msg["resource"]).to_resource(resource_id, section_id)
        self._spawn(self._save_resource(draft, resource_id or self._add_key(section_id)))

    async def _save_resource(self, draft: Resource, busy_key: str) -> None:
        with self._busy(busy_key):
            try:
                if draft.id:
                    await self.gateway.update_resource(draft)
                else:
                    await self.gateway.add_resource(draft, draft.section_id, self.user.id)
            except ValidationError as e:
                self.notice("error", "Validation error", e.message)
                return
            except DocumentNotFound:
                self.notice("error", "Error", "This resource no longer exists.")
                return
            except WriteError as e:
                self.notice("error", "Error", e.message)
                return
        if draft.id:
            self.notice("success", "Resource updated", "The resource has been updated successfully.")
        else:
            self.notice("success", "Resource added", "The resource has been added successfully.")

    def _cmd_resource_delete(self, msg: dict[str, Any]) -> None:
        if not self._require_admin():
            return
        self._spawn(self._delete_resource(_str(msg, "id")))

    async def _delete_resource(self, resource_id: str) -> None:
        with self._busy(resource_id):
            try:
                await self.gateway.delete_resource(resource_id)
            except DocumentNotFound:
                self.notice("error", "Error", "This resource no longer exists.")
                return
            except WriteError as e:
                self.notice("error", "Error", e.message)
                return
        self.notice("success", "Resource deleted", "The resource has been deleted successfully.")

    # -- Tables ---------------------------------------------------------

    def _open_editor(self, msg: dict[str, Any]) -> tuple[str, TableEditor | None]:
        resource_id = _str(msg, "resourceId")
        editor = self.editors.get(resource_id)
        if editor is None:
            logger.warning("hub_view: table %s is not open", resource_id)
        return resource_id, editor

    def _cmd_table_open(self, msg: dict[str, Any]) -> None:
        resource_id = _str(msg, "resourceId")
        resource = self._resources.get(resource_id)
        if resource is None or resource.type != "table":
            self.notice("error", "Error", "This table is no longer available.")
            return
        if resource_id not in self.editors:
            self.editors[resource_id] = TableEditor(resource.table_data)
        self._push(self.table_frame(resource_id))

    def _cmd_table_edit(self, msg: dict[str, Any]) -> None:
        resource_id, editor = self._open_editor(msg)
        if editor is None or not self._require_admin():
            return
        editor.begin_edit()
        self._push(self.table_frame(resource_id))

    def _cmd_table_op(self, msg: dict[str, Any]) -> None:
        resource_id, editor = self._open_editor(msg)
        if editor is None:
            return
        op = _str(msg, "op")
        args = msg.get("args", [])
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise TypeError("'args' must be a list of strings")
        try:
            editor.apply(op, *args)
        except TableEditError as e:
            self.notice("error", "Error", str(e))
            return
        self._push(self.table_frame(resource_id))

    def _cmd_table_search(self, msg: dict[str, Any]) -> None:
        resource_id, editor = self._open_editor(msg)
        if editor is None:
            return
        self.table_queries[resource_id] = _str(msg, "query", "")
        self._push(self.table_frame(resource_id))

    def _cmd_table_cancel(self, msg: dict[str, Any]) -> None:
        resource_id, editor = self._open_editor(msg)
        if editor is None:
            return
        editor.cancel()
        self._push(self.table_frame(resource_id))

    def _cmd_table_save(self, msg: dict[str, Any]) -> None:
        resource_id, editor = self._open_editor(msg)
        if editor is None or not self._require_admin():
            return
        resource = self._resources.get(resource_id)
        if resource is None:
            self.notice("error", "Error", "This table is no longer available.")
            return
        self._spawn(self._save_table(resource, editor))

    async def _save_table(self, resource: Resource, editor: TableEditor) -> None:
        async def persist(table):
            await self.gateway.update_resource(replace(resource, table_data=table))

        frame = self.table_frame(resource.id)
        frame["saving"] = True
        self._push(frame)
        try:
            saved = await editor.save(persist)
        except TableEditError as e:
            self.notice("error", "Error", str(e))
            return
        if editor.closed:
            return
        self._push(self.table_frame(resource.id))
        if saved:
            self.notice("success", "Table saved", "Your changes have been saved successfully.")
        else:
            self.notice("error", "Error", "Failed to save changes. Please try again.")

    def _cmd_table_close(self, msg: dict[str, Any]) -> None:
        resource_id = _str(msg, "resourceId")
        editor = self.editors.pop(resource_id, None)
        self.table_queries.pop(resource_id, None)
        if editor is not None:
            editor.close()
        self._push(self.table_frame(resource_id))
