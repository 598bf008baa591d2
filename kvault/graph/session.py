"""Event-loop glue between the store, the layout engine and the interaction state.

A `GraphSession` lives on one asyncio event loop. Store queries are awaited and
only the most recent one is applied; search input is debounced; layout ticks
run as cooperative steps that yield back to the loop.
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger
from pydantic import BaseModel

from kvault.config import settings
from kvault.domain.entry import EntryFilter
from kvault.domain.relationships import GraphSnapshot
from kvault.errors import GraphError, TransientIO, Unauthenticated
from kvault.graph.interaction import (
    InteractionEvent,
    InteractionState,
    SearchCommitted,
    SearchInput,
    ZoomIn,
    ZoomOut,
    reduce,
)
from kvault.graph.layout import LayoutEngine, LayoutFrame
from kvault.graph.query import KnowledgeGraph, build_graph, match_nodes
from kvault.graph.renderer import Canvas, Scene, render, resolve_canvas
from kvault.graph_stores.base import GraphStore

GraphLoader = Callable[[EntryFilter], Awaitable[GraphSnapshot]]


class Debouncer:
    """Cancellable timer: each trigger replaces the pending call."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class ErrorBanner(BaseModel):
    """A dismissible error shown over the graph view."""

    code: str
    message: str
    retryable: bool


class GraphSession:
    """Interactive graph view state for one owner."""

    def __init__(
        self,
        loader: GraphLoader,
        *,
        width: float | None = None,
        height: float | None = None,
        seed: int | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self._loader = loader
        self.canvas: Canvas = resolve_canvas(width, height)
        self.seed = settings.layout_seed if seed is None else seed
        delay = settings.search_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.search_debouncer = Debouncer(delay, self.commit_search)

        self.graph = KnowledgeGraph([], [])
        self.layout = LayoutEngine(self.graph, width=self.canvas.width, height=self.canvas.height)
        self.state = InteractionState()
        self.filter = EntryFilter()
        self.loading = False
        self.error: ErrorBanner | None = None
        self.login_required = False
        self._latest_request = 0

    @classmethod
    def for_store(cls, store: GraphStore, owner_id: str, **kwargs) -> "GraphSession":
        """Session reading from a synchronous store off the event loop thread."""

        async def load(entry_filter: EntryFilter) -> GraphSnapshot:
            return await asyncio.to_thread(store.snapshot, owner_id, entry_filter)

        return cls(load, **kwargs)

    async def refresh(self, entry_filter: EntryFilter | None = None) -> bool:
        """Query the store and apply the result unless a newer query was issued meanwhile.

        Returns True when this query's result (or failure) was applied.
        """
        if entry_filter is not None:
            self.filter = entry_filter
        self._latest_request += 1
        request_id = self._latest_request
        self.loading = True
        try:
            snapshot = await self._loader(self.filter)
        except GraphError as e:
            if request_id != self._latest_request:
                logger.debug(f"Discarding failure of stale graph query {request_id}: {e}")
                return False
            self.loading = False
            self._report(e)
            return True

        if request_id != self._latest_request:
            logger.debug(f"Discarding stale graph query {request_id}")
            return False

        self.loading = False
        self.error = None
        self._apply(snapshot)
        return True

    async def retry(self) -> bool:
        """Re-issue the last query after a failure."""
        self.error = None
        return await self.refresh()

    def dismiss_error(self) -> None:
        self.error = None

    def _report(self, error: GraphError) -> None:
        logger.error(f"Graph query failed: {error}")
        if isinstance(error, Unauthenticated):
            self.login_required = True
        self.error = ErrorBanner(
            code=error.code, message=error.message, retryable=isinstance(error, TransientIO)
        )

    def _apply(self, snapshot: GraphSnapshot) -> None:
        self.graph = build_graph(snapshot.entries, snapshot.relationships)
        self.layout = LayoutEngine(
            self.graph, width=self.canvas.width, height=self.canvas.height, seed=self.seed
        )

        def existing(node_id: str | None) -> str | None:
            return node_id if node_id is not None and self.graph.node(node_id) else None

        self.state = self.state.model_copy(
            update={
                "hovered_node": existing(self.state.hovered_node),
                "hovered_link": (
                    self.state.hovered_link
                    if self.state.hovered_link and self.graph.edge(self.state.hovered_link)
                    else None
                ),
                "selected_node": existing(self.state.selected_node),
                "pressed_node": None,
                "dragging_node": None,
                "match_set": match_nodes(self.graph, self.state.search_query),
            }
        )
        logger.info(
            f"Loaded graph with {len(self.graph.nodes)} nodes and {len(self.graph.edges)} edges"
        )

    def dispatch(self, event: InteractionEvent) -> InteractionState:
        """Apply an interaction event and forward drag effects to the layout."""
        previous = self.state
        self.state = reduce(previous, event)

        if self.state.dragging_node is not None and previous.dragging_node is None:
            self.layout.begin_drag(self.state.dragging_node)
        if self.state.dragging_node is not None and self.state.pointer is not None:
            x, y = self.state.transform.invert(*self.state.pointer)
            self.layout.drag_to(self.state.dragging_node, x, y)
        if previous.dragging_node is not None and self.state.dragging_node is None:
            self.layout.end_drag(previous.dragging_node)
        return self.state

    def type_search(self, text: str) -> None:
        """Record search box input and (re)start the debounce timer."""
        self.dispatch(SearchInput(text=text))
        self.search_debouncer.trigger()

    def commit_search(self) -> None:
        """Recompute the match set for the current search input."""
        query = self.state.search_input
        matches = match_nodes(self.graph, query)
        logger.debug(f"Search {query!r} matched {len(matches)} nodes")
        self.dispatch(SearchCommitted(query=query, matches=matches))

    def zoom_in(self) -> InteractionState:
        return self.dispatch(
            ZoomIn(anchor_x=self.canvas.width / 2, anchor_y=self.canvas.height / 2)
        )

    def zoom_out(self) -> InteractionState:
        return self.dispatch(
            ZoomOut(anchor_x=self.canvas.width / 2, anchor_y=self.canvas.height / 2)
        )

    def tick(self) -> LayoutFrame | None:
        return self.layout.step()

    async def animate(
        self, on_frame: Callable[[Scene], None] | None = None, max_ticks: int = 1000
    ) -> int:
        """Run the layout cooperatively, rendering each emitted frame.

        Returns the number of frames emitted.
        """
        emitted = 0
        layout = self.layout
        for _ in layout.frames(max_ticks):
            if self.layout is not layout:
                break
            emitted += 1
            if on_frame is not None:
                on_frame(self.scene())
            await asyncio.sleep(0)
        return emitted

    def scene(self) -> Scene:
        return render(self.graph, self.layout.positions(), self.state, self.canvas)
