"""Projection of layout positions and interaction state to drawable primitives."""

import math

from pydantic import BaseModel

from kvault.config import settings
from kvault.domain.entry import EntryType
from kvault.domain.relationships import RelationshipType
from kvault.graph.interaction import (
    Highlight,
    InteractionState,
    ViewTransform,
    compute_highlight,
)
from kvault.graph.query import GraphNode, KnowledgeGraph

RELATIONSHIP_COLORS = {
    RelationshipType.RELATED_TO: "#64748b",
    RelationshipType.SOURCE_FOR: "#3b82f6",
    RelationshipType.INSPIRED_BY: "#8b5cf6",
    RelationshipType.REFERENCES: "#06b6d4",
    RelationshipType.CONTRADICTS: "#ef4444",
    RelationshipType.BUILDS_ON: "#10b981",
}

NODE_TYPE_COLORS = {
    EntryType.ARTICLE: "#3b82f6",
    EntryType.CODE_SNIPPET: "#10b981",
    EntryType.BOOKMARK: "#f59e0b",
}

FALLBACK_COLOR = "#64748b"
NODE_STROKE = "#ffffff"
SEARCH_RING = "#fbbf24"
LABEL_MAX_LENGTH = 20
PREVIEW_LENGTH = 100


class Canvas(BaseModel):
    width: float
    height: float


class NodeDrawable(BaseModel):
    id: str
    x: float
    y: float
    radius: float
    fill: str
    stroke: str
    stroke_width: float
    opacity: float
    glow: bool = False


class EdgeDrawable(BaseModel):
    id: str
    source: str
    target: str
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float
    opacity: float
    dashed: bool = False
    glow: bool = False


class LabelDrawable(BaseModel):
    node_id: str
    text: str
    x: float
    y: float
    opacity: float


class NodeTooltip(BaseModel):
    node_id: str
    title: str
    preview: str
    tags: list[str]


class LinkTooltip(BaseModel):
    link_id: str
    label: str
    description: str | None = None


class DetailPanel(BaseModel):
    node_id: str
    title: str
    content: str
    tags: list[str]
    created: str


class GraphStats(BaseModel):
    nodes: int
    links: int
    matched: int


class LegendItem(BaseModel):
    label: str
    color: str


class Scene(BaseModel):
    """Everything needed to draw one frame of the graph view."""

    canvas: Canvas
    transform: ViewTransform
    nodes: list[NodeDrawable] = []
    edges: list[EdgeDrawable] = []
    labels: list[LabelDrawable] = []
    node_tooltip: NodeTooltip | None = None
    link_tooltip: LinkTooltip | None = None
    detail: DetailPanel | None = None
    stats: GraphStats
    legend_node_types: list[LegendItem] = []
    legend_relationships: list[LegendItem] = []


def resolve_canvas(width: float | None, height: float | None) -> Canvas:
    """Measured container size, or the default canvas when it cannot be measured."""

    def measured(value: float | None, default: float) -> float:
        if value is None or not math.isfinite(value) or value <= 0:
            value = default
        return max(value, settings.min_canvas_size)

    return Canvas(
        width=measured(width, settings.default_canvas_width),
        height=measured(height, settings.default_canvas_height),
    )


def humanize(value: str) -> str:
    """RELATED_TO -> related to"""
    return value.replace("_", " ").lower()


def node_radius(title: str, hovered: bool = False) -> float:
    if hovered:
        return max(20.0, min(30.0, float(len(title))))
    return max(15.0, min(25.0, len(title) * 0.8))


def label_text(title: str) -> str:
    if len(title) > LABEL_MAX_LENGTH:
        return title[:17] + "..."
    return title


def _tag_names(node: GraphNode) -> list[str]:
    return [tag.name for tag in node.tags]


def render(
    graph: KnowledgeGraph,
    positions: dict[str, tuple[float, float]],
    state: InteractionState,
    canvas: Canvas,
    highlight: Highlight | None = None,
) -> Scene:
    """Project a graph, its node positions and the interaction state to a `Scene`.

    Nodes without a position are drawn at the canvas center.
    """
    highlight = highlight or compute_highlight(state, graph)
    center = (canvas.width / 2, canvas.height / 2)
    focus = state.dragging_node or state.hovered_node

    nodes = []
    labels = []
    for node in graph.nodes:
        x, y = positions.get(node.id, center)
        ringed = node.id in highlight.ringed_nodes
        hovered = node.id == focus
        opacity = highlight.node_opacity.get(node.id, 1.0)
        nodes.append(
            NodeDrawable(
                id=node.id,
                x=x,
                y=y,
                radius=node_radius(node.title, hovered),
                fill=NODE_TYPE_COLORS.get(node.type, FALLBACK_COLOR),
                stroke=SEARCH_RING if ringed else NODE_STROKE,
                stroke_width=3 if ringed or hovered else 2,
                opacity=opacity,
                glow=hovered,
            )
        )
        labels.append(
            LabelDrawable(node_id=node.id, text=label_text(node.title), x=x, y=y, opacity=opacity)
        )

    edges = []
    for edge in graph.edges:
        x1, y1 = positions.get(edge.source, center)
        x2, y2 = positions.get(edge.target, center)
        hovered = edge.id == state.hovered_link
        edges.append(
            EdgeDrawable(
                id=edge.id,
                source=edge.source,
                target=edge.target,
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                color=RELATIONSHIP_COLORS.get(edge.type, FALLBACK_COLOR),
                width=4 if hovered else 2,
                opacity=highlight.edge_opacity.get(edge.id, 1.0),
                dashed=edge.type == RelationshipType.CONTRADICTS,
                glow=hovered,
            )
        )

    node_tooltip = None
    hovered_node = graph.node(state.hovered_node) if state.hovered_node else None
    if hovered_node is not None:
        preview = hovered_node.content[:PREVIEW_LENGTH]
        if len(hovered_node.content) > PREVIEW_LENGTH:
            preview += "..."
        node_tooltip = NodeTooltip(
            node_id=hovered_node.id,
            title=hovered_node.title,
            preview=preview,
            tags=_tag_names(hovered_node),
        )

    link_tooltip = None
    hovered_link = graph.edge(state.hovered_link) if state.hovered_link else None
    if hovered_link is not None:
        link_tooltip = LinkTooltip(
            link_id=hovered_link.id,
            label=humanize(hovered_link.type.value),
            description=hovered_link.description,
        )

    detail = None
    selected = graph.node(state.selected_node) if state.selected_node else None
    if selected is not None:
        detail = DetailPanel(
            node_id=selected.id,
            title=selected.title,
            content=selected.content,
            tags=_tag_names(selected),
            created=selected.created_at.date().isoformat(),
        )

    return Scene(
        canvas=canvas,
        transform=state.transform,
        nodes=nodes,
        edges=edges,
        labels=labels,
        node_tooltip=node_tooltip,
        link_tooltip=link_tooltip,
        detail=detail,
        stats=GraphStats(
            nodes=len(graph.nodes), links=len(graph.edges), matched=len(highlight.ringed_nodes)
        ),
        legend_node_types=[
            LegendItem(label=humanize(t.value), color=c) for t, c in NODE_TYPE_COLORS.items()
        ],
        legend_relationships=[
            LegendItem(label=humanize(t.value), color=c) for t, c in RELATIONSHIP_COLORS.items()
        ],
    )
