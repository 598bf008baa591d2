"""Interaction state machine for the graph view.

`reduce` is a pure function from (state, event) to the next state. Everything
that follows from a state (what is highlighted or dimmed) is derived by
`compute_highlight`; side effects on the layout are derived from state changes
by the caller.
"""

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from kvault.graph.query import KnowledgeGraph

MIN_SCALE = 0.1
MAX_SCALE = 4.0
ZOOM_STEP = 1.5

FULL_OPACITY = 1.0
NEIGHBOR_OPACITY = 0.8
DIMMED_NODE_OPACITY = 0.3
DIMMED_EDGE_OPACITY = 0.2


class ViewTransform(BaseModel):
    """Affine zoom/pan transform applied to the whole drawing: screen = world * scale + offset."""

    model_config = ConfigDict(frozen=True)

    scale: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, px: float, py: float) -> tuple[float, float]:
        return px * self.scale + self.x, py * self.scale + self.y

    def invert(self, px: float, py: float) -> tuple[float, float]:
        return (px - self.x) / self.scale, (py - self.y) / self.scale

    def scale_by(self, factor: float, anchor: tuple[float, float] = (0.0, 0.0)) -> "ViewTransform":
        """Zoom by a factor keeping the screen point `anchor` fixed; scale stays within [0.1, 4]."""
        scale = min(MAX_SCALE, max(MIN_SCALE, self.scale * factor))
        ratio = scale / self.scale
        ax, ay = anchor
        return ViewTransform(
            scale=scale, x=ax - (ax - self.x) * ratio, y=ay - (ay - self.y) * ratio
        )

    def translate(self, dx: float, dy: float) -> "ViewTransform":
        return ViewTransform(scale=self.scale, x=self.x + dx, y=self.y + dy)


class InteractionMode(str, Enum):
    IDLE = "idle"
    HOVERING_NODE = "hovering_node"
    HOVERING_LINK = "hovering_link"
    SELECTED = "selected"
    DRAGGING = "dragging"


class InteractionState(BaseModel):
    """Everything the user has done to the view that is not node physics.

    Attributes:
        hovered_node: Node under the pointer
        hovered_link: Edge under the pointer
        selected_node: Node whose detail panel is open
        pressed_node: Node the pointer went down on, before any movement
        dragging_node: Node being dragged
        pointer: Last pointer position in screen coordinates
        search_input: Text typed into the search box, possibly not yet committed
        search_query: Query the match set was computed for
        match_set: Ids of nodes matching `search_query`
        transform: Current zoom/pan transform
    """

    model_config = ConfigDict(frozen=True)

    hovered_node: str | None = None
    hovered_link: str | None = None
    selected_node: str | None = None
    pressed_node: str | None = None
    dragging_node: str | None = None
    pointer: tuple[float, float] | None = None
    search_input: str = ""
    search_query: str = ""
    match_set: frozenset[str] = frozenset()
    transform: ViewTransform = ViewTransform()

    @property
    def mode(self) -> InteractionMode:
        if self.dragging_node is not None:
            return InteractionMode.DRAGGING
        if self.hovered_node is not None:
            return InteractionMode.HOVERING_NODE
        if self.hovered_link is not None:
            return InteractionMode.HOVERING_LINK
        if self.selected_node is not None:
            return InteractionMode.SELECTED
        return InteractionMode.IDLE

    @property
    def searching(self) -> bool:
        return bool(self.match_set)


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class PointerEnterNode(_Event):
    kind: Literal["pointer_enter_node"] = "pointer_enter_node"
    node_id: str


class PointerLeaveNode(_Event):
    kind: Literal["pointer_leave_node"] = "pointer_leave_node"


class PointerEnterLink(_Event):
    kind: Literal["pointer_enter_link"] = "pointer_enter_link"
    link_id: str


class PointerLeaveLink(_Event):
    kind: Literal["pointer_leave_link"] = "pointer_leave_link"


class PointerDown(_Event):
    kind: Literal["pointer_down"] = "pointer_down"
    node_id: str
    x: float
    y: float


class PointerMove(_Event):
    kind: Literal["pointer_move"] = "pointer_move"
    x: float
    y: float


class PointerUp(_Event):
    kind: Literal["pointer_up"] = "pointer_up"


class ClickNode(_Event):
    kind: Literal["click_node"] = "click_node"
    node_id: str


class CloseDetail(_Event):
    kind: Literal["close_detail"] = "close_detail"


class SearchInput(_Event):
    kind: Literal["search_input"] = "search_input"
    text: str


class SearchCommitted(_Event):
    kind: Literal["search_committed"] = "search_committed"
    query: str
    matches: frozenset[str] = frozenset()


class ClearSearch(_Event):
    kind: Literal["clear_search"] = "clear_search"


class Pan(_Event):
    kind: Literal["pan"] = "pan"
    dx: float
    dy: float


class ZoomBy(_Event):
    kind: Literal["zoom_by"] = "zoom_by"
    factor: float
    anchor_x: float = 0.0
    anchor_y: float = 0.0


class ZoomIn(_Event):
    kind: Literal["zoom_in"] = "zoom_in"
    anchor_x: float = 0.0
    anchor_y: float = 0.0


class ZoomOut(_Event):
    kind: Literal["zoom_out"] = "zoom_out"
    anchor_x: float = 0.0
    anchor_y: float = 0.0


class ResetView(_Event):
    kind: Literal["reset_view"] = "reset_view"


InteractionEvent = Union[
    PointerEnterNode,
    PointerLeaveNode,
    PointerEnterLink,
    PointerLeaveLink,
    PointerDown,
    PointerMove,
    PointerUp,
    ClickNode,
    CloseDetail,
    SearchInput,
    SearchCommitted,
    ClearSearch,
    Pan,
    ZoomBy,
    ZoomIn,
    ZoomOut,
    ResetView,
]


def reduce(state: InteractionState, event: InteractionEvent) -> InteractionState:  # noqa: C901
    """Return the state that follows `state` after `event`."""
    if isinstance(event, PointerEnterNode):
        return state.model_copy(update={"hovered_node": event.node_id, "hovered_link": None})
    if isinstance(event, PointerLeaveNode):
        return state.model_copy(update={"hovered_node": None})
    if isinstance(event, PointerEnterLink):
        if state.dragging_node is not None:
            return state
        return state.model_copy(update={"hovered_link": event.link_id})
    if isinstance(event, PointerLeaveLink):
        return state.model_copy(update={"hovered_link": None})

    if isinstance(event, PointerDown):
        return state.model_copy(
            update={"pressed_node": event.node_id, "pointer": (event.x, event.y)}
        )
    if isinstance(event, PointerMove):
        update: dict = {"pointer": (event.x, event.y)}
        if state.pressed_node is not None and state.dragging_node is None:
            if state.pointer != (event.x, event.y):
                update["dragging_node"] = state.pressed_node
        return state.model_copy(update=update)
    if isinstance(event, PointerUp):
        if state.dragging_node is not None:
            return state.model_copy(update={"dragging_node": None, "pressed_node": None})
        if state.pressed_node is not None:
            return state.model_copy(
                update={"selected_node": state.pressed_node, "pressed_node": None}
            )
        return state
    if isinstance(event, ClickNode):
        return state.model_copy(update={"selected_node": event.node_id})
    if isinstance(event, CloseDetail):
        return state.model_copy(update={"selected_node": None})

    if isinstance(event, SearchInput):
        return state.model_copy(update={"search_input": event.text})
    if isinstance(event, SearchCommitted):
        if not event.query.strip():
            return state.model_copy(update={"search_query": "", "match_set": frozenset()})
        return state.model_copy(update={"search_query": event.query, "match_set": event.matches})
    if isinstance(event, ClearSearch):
        return state.model_copy(
            update={"search_input": "", "search_query": "", "match_set": frozenset()}
        )

    if isinstance(event, Pan):
        return state.model_copy(update={"transform": state.transform.translate(event.dx, event.dy)})
    if isinstance(event, ZoomBy):
        transform = state.transform.scale_by(event.factor, (event.anchor_x, event.anchor_y))
        return state.model_copy(update={"transform": transform})
    if isinstance(event, ZoomIn):
        transform = state.transform.scale_by(ZOOM_STEP, (event.anchor_x, event.anchor_y))
        return state.model_copy(update={"transform": transform})
    if isinstance(event, ZoomOut):
        transform = state.transform.scale_by(1 / ZOOM_STEP, (event.anchor_x, event.anchor_y))
        return state.model_copy(update={"transform": transform})
    if isinstance(event, ResetView):
        return state.model_copy(update={"transform": ViewTransform()})

    return state


class Highlight(BaseModel):
    """Per-element emphasis derived from an interaction state."""

    node_opacity: dict[str, float]
    edge_opacity: dict[str, float]
    highlighted_nodes: frozenset[str] = frozenset()
    highlighted_edges: frozenset[str] = frozenset()
    ringed_nodes: frozenset[str] = frozenset()

    @property
    def dimmed_nodes(self) -> frozenset[str]:
        return frozenset(n for n, o in self.node_opacity.items() if o < NEIGHBOR_OPACITY)

    @property
    def dimmed_edges(self) -> frozenset[str]:
        return frozenset(e for e, o in self.edge_opacity.items() if o < FULL_OPACITY)


def compute_highlight(state: InteractionState, graph: KnowledgeGraph) -> Highlight:
    """Derive opacities and emphasis for every node and edge.

    Search dims unmatched nodes; a hovered (or dragged) node or link highlights
    its neighbourhood at full strength and dims everything outside it. Inside
    the hovered neighbourhood hover wins over search.
    """
    matches = state.match_set & {node.id for node in graph.nodes}
    node_opacity = {
        node.id: FULL_OPACITY if not matches or node.id in matches else DIMMED_NODE_OPACITY
        for node in graph.nodes
    }
    edge_opacity = {edge.id: FULL_OPACITY for edge in graph.edges}

    focus = state.dragging_node or state.hovered_node
    highlighted_nodes: frozenset[str] = frozenset()
    highlighted_edges: frozenset[str] = frozenset()

    if focus is not None and graph.node(focus) is not None:
        neighbors = graph.neighbors(focus)
        highlighted_nodes = frozenset({focus} | neighbors)
        highlighted_edges = frozenset(edge.id for edge in graph.incident_edges(focus))
        for node_id in node_opacity:
            if node_id == focus:
                node_opacity[node_id] = FULL_OPACITY
            elif node_id in neighbors:
                node_opacity[node_id] = NEIGHBOR_OPACITY
            else:
                node_opacity[node_id] = DIMMED_NODE_OPACITY
    elif state.hovered_link is not None and graph.edge(state.hovered_link) is not None:
        link = graph.edge(state.hovered_link)
        highlighted_nodes = frozenset({link.source, link.target})
        highlighted_edges = frozenset({link.id})
        for node_id in node_opacity:
            node_opacity[node_id] = (
                FULL_OPACITY if node_id in highlighted_nodes else DIMMED_NODE_OPACITY
            )

    if highlighted_edges or highlighted_nodes:
        for edge_id in edge_opacity:
            if edge_id not in highlighted_edges:
                edge_opacity[edge_id] = DIMMED_EDGE_OPACITY

    return Highlight(
        node_opacity=node_opacity,
        edge_opacity=edge_opacity,
        highlighted_nodes=highlighted_nodes,
        highlighted_edges=highlighted_edges,
        ringed_nodes=frozenset(matches),
    )
