import math

import pytest

from kvault.domain.entry import EntryType
from kvault.domain.relationships import RelationshipType
from kvault.graph.interaction import InteractionState, PointerEnterLink, PointerEnterNode, reduce
from kvault.graph.query import KnowledgeGraph, build_graph
from kvault.graph.renderer import (
    NODE_TYPE_COLORS,
    RELATIONSHIP_COLORS,
    SEARCH_RING,
    Canvas,
    humanize,
    label_text,
    node_radius,
    render,
    resolve_canvas,
)

CANVAS = Canvas(width=800, height=600)


@pytest.fixture
def graph(make_entry, make_relationship) -> KnowledgeGraph:
    return build_graph(
        [
            make_entry(
                "hooks",
                title="React Hooks Fundamentals",
                content="x" * 150,
                tags=["React", "JavaScript"],
            ),
            make_entry("snippet", title="useApi", type=EntryType.CODE_SNIPPET),
        ],
        [
            make_relationship(
                "r1",
                "hooks",
                "snippet",
                RelationshipType.CONTRADICTS,
                description="Disagrees on effects",
            )
        ],
    )


@pytest.fixture
def positions() -> dict[str, tuple[float, float]]:
    return {"hooks": (100.0, 120.0), "snippet": (300.0, 320.0)}


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1200, 900, (1200, 900)),
        (None, None, (800, 600)),
        (0, -5, (800, 600)),
        (math.nan, math.inf, (800, 600)),
        (300, 200, (400, 400)),
    ],
)
def test_resolve_canvas(width, height, expected) -> None:
    canvas = resolve_canvas(width, height)

    assert (canvas.width, canvas.height) == expected


def test_labels_are_truncated() -> None:
    assert label_text("Short title") == "Short title"
    assert label_text("a" * 20) == "a" * 20
    assert label_text("React Hooks Fundamentals") == "React Hooks Funda..."


def test_node_radius_grows_on_hover() -> None:
    assert node_radius("ab") == 15
    assert node_radius("a" * 40) == 25
    assert node_radius("ab", hovered=True) == 20
    assert node_radius("a" * 40, hovered=True) == 30


def test_humanize() -> None:
    assert humanize("SOURCE_FOR") == "source for"


def test_render_idle_scene(graph: KnowledgeGraph, positions) -> None:
    scene = render(graph, positions, InteractionState(), CANVAS)

    hooks, snippet = scene.nodes
    assert (hooks.x, hooks.y) == (100.0, 120.0)
    assert hooks.fill == NODE_TYPE_COLORS[EntryType.ARTICLE]
    assert snippet.fill == NODE_TYPE_COLORS[EntryType.CODE_SNIPPET]
    assert {node.opacity for node in scene.nodes} == {1.0}

    (edge,) = scene.edges
    assert (edge.x1, edge.y1, edge.x2, edge.y2) == (100.0, 120.0, 300.0, 320.0)
    assert edge.color == RELATIONSHIP_COLORS[RelationshipType.CONTRADICTS]
    assert edge.dashed
    assert edge.width == 2

    assert [label.text for label in scene.labels] == ["React Hooks Funda...", "useApi"]
    assert scene.stats.model_dump() == {"nodes": 2, "links": 1, "matched": 0}
    assert len(scene.legend_node_types) == 3
    assert len(scene.legend_relationships) == 6
    assert scene.node_tooltip is None and scene.link_tooltip is None and scene.detail is None


def test_missing_positions_fall_back_to_canvas_center(graph: KnowledgeGraph) -> None:
    scene = render(graph, {}, InteractionState(), CANVAS)

    assert {(node.x, node.y) for node in scene.nodes} == {(400.0, 300.0)}


def test_hovered_node_tooltip(graph: KnowledgeGraph, positions) -> None:
    state = reduce(InteractionState(), PointerEnterNode(node_id="hooks"))

    scene = render(graph, positions, state, CANVAS)

    tooltip = scene.node_tooltip
    assert tooltip.title == "React Hooks Fundamentals"
    assert tooltip.preview == "x" * 100 + "..."
    assert tooltip.tags == ["React", "JavaScript"]
    hooks = scene.nodes[0]
    assert hooks.glow
    assert hooks.radius == node_radius("React Hooks Fundamentals", hovered=True)


def test_hovered_link_tooltip(graph: KnowledgeGraph, positions) -> None:
    state = reduce(InteractionState(), PointerEnterLink(link_id="r1"))

    scene = render(graph, positions, state, CANVAS)

    assert scene.link_tooltip.label == "contradicts"
    assert scene.link_tooltip.description == "Disagrees on effects"
    assert scene.edges[0].width == 4


def test_search_matches_get_a_ring(graph: KnowledgeGraph, positions) -> None:
    state = InteractionState(search_query="use", match_set=frozenset({"snippet"}))

    scene = render(graph, positions, state, CANVAS)

    hooks, snippet = scene.nodes
    assert snippet.stroke == SEARCH_RING
    assert snippet.stroke_width == 3
    assert hooks.stroke != SEARCH_RING
    assert hooks.opacity < 1
    assert scene.stats.matched == 1


def test_selected_node_detail_panel(graph: KnowledgeGraph, positions) -> None:
    state = InteractionState(selected_node="hooks")

    scene = render(graph, positions, state, CANVAS)

    assert scene.detail.title == "React Hooks Fundamentals"
    assert scene.detail.tags == ["React", "JavaScript"]
    assert scene.detail.created == "2024-03-01"
