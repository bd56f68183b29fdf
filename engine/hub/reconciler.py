"""
DocHub Core — Dual Stream Reconciler

Merges two independently updating snapshot streams — sections and resources —
into one ordered list of SectionAggregate values.

Two caches, one pure join:

    sections cache   latest section snapshot, ordered by title
    links cache      latest resource snapshot, grouped by sectionId

join() runs after either cache changes. Neither stream waits for the other:
the view is READY as soon as sections arrive, with empty resource lists until
the resource stream catches up. A section reload never resets resource lists,
because they live in their own cache.

Orphans — resources whose sectionId matches no current section — are dropped
from the output. Section deletion cascades asynchronously, so they are
expected, not an error.

If either stream fails, the output is emptied and the state becomes
CONNECTION_ERROR. It stays there; showing stale data is worse than showing
nothing. After release() every handler is a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from engine.hub.types import Resource, Section, SectionAggregate

logger = logging.getLogger(__name__)


class LoadState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    CONNECTION_ERROR = "connection_error"


@dataclass(frozen=True)
class ReconcilerView:
    state: LoadState = LoadState.LOADING
    sections: tuple[SectionAggregate, ...] = ()
    error: str | None = None


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def sort_sections(sections: Iterable[Section]) -> tuple[Section, ...]:
    """Title ascending, codepoint order (matches the store's sort). Stable."""
    return tuple(sorted(sections, key=lambda s: s.title))


def group_by_section(resources: Iterable[Resource]) -> dict[str, tuple[Resource, ...]]:
    """Group resources by sectionId, keeping snapshot order within each group."""
    groups: dict[str, list[Resource]] = {}
    for resource in resources:
        if resource.section_id:
            groups.setdefault(resource.section_id, []).append(resource)
    return {sid: tuple(items) for sid, items in groups.items()}


def join(
    sections: Sequence[Section],
    links: Mapping[str, tuple[Resource, ...]],
) -> tuple[SectionAggregate, ...]:
    """Attach each section's resources. Resources of unknown sections are not emitted."""
    return tuple(SectionAggregate(section=s, links=links.get(s.id, ())) for s in sections)


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class Reconciler:
    """
    Owner of the aggregated section list for one view.

    Feed it with on_sections / on_resources / on_error from the two
    subscriptions; read .view or pass on_change to be told about updates.
    """

    def __init__(self, on_change: Callable[[ReconcilerView], None] | None = None) -> None:
        self.on_change = on_change
        self._sections: tuple[Section, ...] = ()
        self._links: dict[str, tuple[Resource, ...]] = {}
        self._view = ReconcilerView()
        self._released = False

    @property
    def view(self) -> ReconcilerView:
        return self._view

    @property
    def released(self) -> bool:
        return self._released

    def on_sections(self, snapshot: Sequence[Section]) -> None:
        if self._released or self._view.state is LoadState.CONNECTION_ERROR:
            return
        self._sections = sort_sections(snapshot)
        self._publish(LoadState.READY)

    def on_resources(self, snapshot: Sequence[Resource]) -> None:
        if self._released or self._view.state is LoadState.CONNECTION_ERROR:
            return
        self._links = group_by_section(snapshot)
        # Before the first section snapshot there is nothing to attach to
        state = LoadState.READY if self._view.state is LoadState.READY else LoadState.LOADING
        self._publish(state)

    def on_error(self, stream: str, exc: BaseException) -> None:
        if self._released:
            return
        logger.error("reconciler: %s stream failed: %s", stream, exc)
        if self._view.state is LoadState.CONNECTION_ERROR:
            return
        self._sections = ()
        self._links = {}
        self._set_view(
            ReconcilerView(
                state=LoadState.CONNECTION_ERROR,
                sections=(),
                error=f"Could not load {stream}.",
            )
        )

    def release(self) -> None:
        self._released = True
        self.on_change = None

    def _publish(self, state: LoadState) -> None:
        self._set_view(ReconcilerView(state=state, sections=join(self._sections, self._links)))

    def _set_view(self, view: ReconcilerView) -> None:
        self._view = view
        if self.on_change is not None:
            self.on_change(view)
