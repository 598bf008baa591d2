import math

import pytest

from kvault.graph.layout import (
    DRAG_ALPHA_TARGET,
    LayoutEngine,
    collision_radius,
    force_parameters,
)
from kvault.graph.query import KnowledgeGraph, build_graph


@pytest.fixture
def small_graph(make_entry, make_relationship) -> KnowledgeGraph:
    return build_graph(
        [make_entry("a"), make_entry("b"), make_entry("c")],
        [make_relationship("r1", "a", "b"), make_relationship("r2", "b", "c")],
    )


def test_force_parameters_adapt_to_graph_size() -> None:
    small = force_parameters(10)
    assert (small.link_distance, small.link_strength, small.charge_strength) == (100, 0.5, -300)
    assert (small.alpha, small.alpha_decay) == (0.3, 0.0228)

    medium = force_parameters(51)
    assert (medium.link_distance, medium.link_strength, medium.charge_strength) == (80, 0.3, -200)
    assert medium.alpha == 0.3

    large = force_parameters(101)
    assert (large.alpha, large.alpha_decay) == (0.1, 0.02)


def test_collision_radius_is_clamped() -> None:
    assert collision_radius("") == 20
    assert collision_radius("a" * 30) == pytest.approx(29)
    assert collision_radius("a" * 100) == 30


def test_empty_graph_is_idle() -> None:
    layout = LayoutEngine(KnowledgeGraph([], []), width=800, height=600)

    assert not layout.running
    assert layout.step() is None
    assert layout.run() is None
    assert layout.positions() == {}


def test_layout_converges_without_overlap(small_graph: KnowledgeGraph) -> None:
    layout = LayoutEngine(small_graph, width=800, height=600, seed=1)

    frame = layout.run()

    assert frame is not None and frame.settled
    assert frame.tick < 1000
    assert not layout.running
    positions = layout.positions()
    assert all(math.isfinite(x) and math.isfinite(y) for x, y in positions.values())
    for first, second in [("a", "b"), ("b", "c"), ("a", "c")]:
        (x1, y1), (x2, y2) = positions[first], positions[second]
        reach = layout.node(first).radius + layout.node(second).radius
        assert math.hypot(x1 - x2, y1 - y2) >= reach

    cx = sum(x for x, _ in positions.values()) / 3
    cy = sum(y for _, y in positions.values()) / 3
    assert cx == pytest.approx(400, abs=5)
    assert cy == pytest.approx(300, abs=5)


def test_layout_is_reproducible_with_a_seed(small_graph: KnowledgeGraph) -> None:
    first = LayoutEngine(small_graph, width=800, height=600, seed=7)
    second = LayoutEngine(small_graph, width=800, height=600, seed=7)
    first.run()
    second.run()

    assert first.positions() == second.positions()


def test_self_loops_do_not_break_layout(make_entry, make_relationship) -> None:
    graph = build_graph(
        [make_entry("a"), make_entry("b")],
        [make_relationship("loop", "a", "a"), make_relationship("r1", "a", "b")],
    )
    layout = LayoutEngine(graph, width=800, height=600)

    frame = layout.run()

    assert frame.settled
    assert all(math.isfinite(v) for xy in layout.positions().values() for v in xy)


def test_pinned_node_stays_put_until_released(small_graph: KnowledgeGraph) -> None:
    layout = LayoutEngine(small_graph, width=800, height=600)

    layout.set_pin("a", (10.0, 20.0))
    for _ in range(5):
        layout.step()

    node = layout.node("a")
    assert (node.x, node.y) == (10.0, 20.0)
    assert (node.fx, node.fy) == (10.0, 20.0)
    assert (node.vx, node.vy) == (0.0, 0.0)

    layout.set_pin("a", None)
    released = layout.node("a")
    assert released.fx is None and released.fy is None
    assert (released.x, released.y) == (10.0, 20.0)


def test_unknown_pin_is_ignored(small_graph: KnowledgeGraph) -> None:
    layout = LayoutEngine(small_graph, width=800, height=600)
    before = layout.positions()

    layout.set_pin("missing", (1.0, 1.0))
    layout.begin_drag("missing")

    assert layout.positions() == before
    assert layout.node("missing") is None


def test_drag_reheats_settled_layout(small_graph: KnowledgeGraph) -> None:
    layout = LayoutEngine(small_graph, width=800, height=600)
    layout.run()
    assert not layout.running

    layout.begin_drag("b")
    assert layout.running
    assert layout.alpha_target == DRAG_ALPHA_TARGET

    layout.drag_to("b", 500.0, 450.0)
    frame = layout.step()
    assert frame.positions["b"] == (500.0, 450.0)
    assert frame.alpha > 0.001

    layout.end_drag("b")
    assert layout.alpha_target == 0.0
    assert layout.node("b").fx is None
    assert layout.run().settled


def test_large_layouts_skip_intermediate_frames(make_entry) -> None:
    graph = build_graph([make_entry(f"n{i}") for i in range(101)], [])
    layout = LayoutEngine(graph, width=800, height=600, seed=3)
    assert layout.throttled

    frames = list(layout.frames())

    assert frames[-1].settled
    assert all(frame.tick % 2 == 1 for frame in frames[:-1])
    assert len(frames) < layout.tick_count


def test_released_node_moves_under_simulation_forces(small_graph: KnowledgeGraph) -> None:
    layout = LayoutEngine(small_graph, width=800, height=600)
    layout.begin_drag("a")
    layout.drag_to("a", 10.0, 20.0)
    for _ in range(3):
        layout.step()
    assert layout.positions()["a"] == (10.0, 20.0)

    layout.end_drag("a")
    frame = layout.step()

    assert frame is not None
    assert frame.positions["a"] != (10.0, 20.0)
    x, y = layout.positions()["a"]
    assert x > 10.0 and y > 20.0
