"""Force-directed layout for the knowledge graph.

The simulation follows the classic velocity-Verlet force model: every tick
cools the "heat" (alpha), applies link, charge, centering and collision forces
to node velocities, then integrates positions. Node state lives in numpy arrays
indexed by position in the graph's node list; `set_pin` is the only way for
callers to move a node.
"""

import math
from typing import Iterator

import numpy as np
from loguru import logger
from pydantic import BaseModel

from kvault.graph.query import KnowledgeGraph

ALPHA_MIN = 0.001
VELOCITY_DECAY = 0.4
DRAG_ALPHA_TARGET = 0.3
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class ForceParameters(BaseModel):
    link_distance: float
    link_strength: float
    charge_strength: float
    alpha: float
    alpha_decay: float


def force_parameters(node_count: int) -> ForceParameters:
    """Graph-size adaptive force constants."""
    return ForceParameters(
        link_distance=80 if node_count > 50 else 100,
        link_strength=0.3 if node_count > 50 else 0.5,
        charge_strength=-200 if node_count > 50 else -300,
        alpha=0.1 if node_count > 100 else 0.3,
        alpha_decay=0.02 if node_count > 100 else 0.0228,
    )


def collision_radius(title: str) -> float:
    """Personal space of a node, growing with its label length within [20, 30]."""
    return max(20.0, min(30.0, len(title) * 0.8 + 5))


class LayoutNode(BaseModel):
    id: str
    x: float
    y: float
    vx: float
    vy: float
    fx: float | None = None
    fy: float | None = None
    radius: float


class LayoutFrame(BaseModel):
    """Positions after one tick."""

    tick: int
    alpha: float
    positions: dict[str, tuple[float, float]]
    settled: bool


class LayoutEngine:
    """Iterative force simulation over the nodes and edges of a `KnowledgeGraph`."""

    def __init__(
        self,
        graph: KnowledgeGraph,
        *,
        width: float,
        height: float,
        seed: int | None = None,
        parameters: ForceParameters | None = None,
    ) -> None:
        self._ids = [node.id for node in graph.nodes]
        self._index = {node_id: i for i, node_id in enumerate(self._ids)}
        self.parameters = parameters or force_parameters(len(self._ids))
        self.center = (width / 2, height / 2)
        self._rng = np.random.default_rng(seed)

        n = len(self._ids)
        i = np.arange(n, dtype=float)
        spiral_radius = INITIAL_RADIUS * np.sqrt(0.5 + i)
        angle = i * INITIAL_ANGLE
        self.x = spiral_radius * np.cos(angle)
        self.y = spiral_radius * np.sin(angle)
        self.vx = np.zeros(n)
        self.vy = np.zeros(n)
        self.fx = np.full(n, np.nan)
        self.fy = np.full(n, np.nan)
        self.radius = np.array([collision_radius(node.title) for node in graph.nodes], dtype=float)

        # Self-loops exert no link force.
        links = [
            (self._index[edge.source], self._index[edge.target])
            for edge in graph.edges
            if edge.source != edge.target
        ]
        self._sources = [s for s, _ in links]
        self._targets = [t for _, t in links]
        count = np.zeros(n)
        for s, t in links:
            count[s] += 1
            count[t] += 1
        self._bias = [count[s] / (count[s] + count[t]) for s, t in links]

        self.alpha = self.parameters.alpha
        self.alpha_target = 0.0
        self.alpha_decay = self.parameters.alpha_decay
        self.tick_count = 0
        self._stopped = n == 0

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def running(self) -> bool:
        return not self._stopped

    @property
    def throttled(self) -> bool:
        """Large graphs only emit every other intermediate frame."""
        return len(self._ids) > 100

    def restart(self) -> None:
        if self._ids:
            self._stopped = False

    def _jiggle(self) -> float:
        return (self._rng.random() - 0.5) * 1e-6

    def step(self) -> LayoutFrame | None:
        """Advance the simulation by one tick; returns None once there is nothing to do."""
        if not self.running:
            return None

        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self._apply_links()
        self._apply_charge()
        self._apply_center()
        self._apply_collision()

        pinned = ~np.isnan(self.fx)
        free = ~pinned
        self.vx[free] *= 1 - VELOCITY_DECAY
        self.vy[free] *= 1 - VELOCITY_DECAY
        self.x[free] += self.vx[free]
        self.y[free] += self.vy[free]
        self.x[pinned] = self.fx[pinned]
        self.y[pinned] = self.fy[pinned]
        self.vx[pinned] = 0.0
        self.vy[pinned] = 0.0

        self.tick_count += 1
        settled = self.alpha < ALPHA_MIN
        if settled:
            self._stopped = True
            logger.debug(f"Layout of {len(self)} nodes settled after {self.tick_count} ticks")
        return LayoutFrame(
            tick=self.tick_count, alpha=self.alpha, positions=self.positions(), settled=settled
        )

    def frames(self, max_ticks: int = 1000) -> Iterator[LayoutFrame]:
        """Tick until the simulation cools, yielding the frames worth rendering.

        Throttled layouts skip every other intermediate frame; the settled frame
        is always yielded.
        """
        for _ in range(max_ticks):
            frame = self.step()
            if frame is None:
                return
            if self.throttled and frame.tick % 2 == 0 and not frame.settled:
                continue
            yield frame

    def run(self, max_ticks: int = 1000) -> LayoutFrame | None:
        """Tick to convergence and return the last frame."""
        last = None
        for frame in self.frames(max_ticks):
            last = frame
        return last

    def _apply_links(self) -> None:
        distance = self.parameters.link_distance
        strength = self.parameters.link_strength
        x, y, vx, vy = self.x, self.y, self.vx, self.vy
        for s, t, b in zip(self._sources, self._targets, self._bias):
            dx = x[t] + vx[t] - x[s] - vx[s] or self._jiggle()
            dy = y[t] + vy[t] - y[s] - vy[s] or self._jiggle()
            length = math.sqrt(dx * dx + dy * dy)
            length = (length - distance) / length * self.alpha * strength
            dx *= length
            dy *= length
            vx[t] -= dx * b
            vy[t] -= dy * b
            vx[s] += dx * (1 - b)
            vy[s] += dy * (1 - b)

    def _apply_charge(self) -> None:
        n = len(self._ids)
        if n < 2:
            return
        dx = self.x[None, :] - self.x[:, None]
        dy = self.y[None, :] - self.y[:, None]
        off_diagonal = ~np.eye(n, dtype=bool)
        for delta in (dx, dy):
            coincident = (delta == 0) & off_diagonal
            if coincident.any():
                delta[coincident] = [self._jiggle() for _ in range(int(coincident.sum()))]
        dist2 = dx * dx + dy * dy
        dist2 = np.where(dist2 < 1, np.sqrt(dist2), dist2)
        np.fill_diagonal(dist2, np.inf)
        weight = self.parameters.charge_strength * self.alpha / dist2
        self.vx += (dx * weight).sum(axis=1)
        self.vy += (dy * weight).sum(axis=1)

    def _apply_center(self) -> None:
        if not self._ids:
            return
        cx, cy = self.center
        self.x -= self.x.mean() - cx
        self.y -= self.y.mean() - cy

    def _apply_collision(self) -> None:
        n = len(self._ids)
        x, y, vx, vy, r = self.x, self.y, self.vx, self.vy, self.radius
        for i in range(n - 1):
            xi = x[i] + vx[i]
            yi = y[i] + vy[i]
            others = np.arange(i + 1, n)
            dx = xi - x[others] - vx[others]
            dy = yi - y[others] - vy[others]
            reach = r[i] + r[others]
            overlapping = dx * dx + dy * dy < reach * reach
            if not overlapping.any():
                continue
            others, dx, dy, reach = (
                others[overlapping],
                dx[overlapping],
                dy[overlapping],
                reach[overlapping],
            )
            for delta in (dx, dy):
                zero = delta == 0
                if zero.any():
                    delta[zero] = [self._jiggle() for _ in range(int(zero.sum()))]
            length = np.sqrt(dx * dx + dy * dy)
            push = (reach - length) / length
            dx = dx * push
            dy = dy * push
            ri2 = r[i] * r[i]
            rj2 = r[others] * r[others]
            share = rj2 / (ri2 + rj2)
            vx[i] += (dx * share).sum()
            vy[i] += (dy * share).sum()
            vx[others] -= dx * (1 - share)
            vy[others] -= dy * (1 - share)

    def positions(self) -> dict[str, tuple[float, float]]:
        return {
            node_id: (float(self.x[i]), float(self.y[i])) for i, node_id in enumerate(self._ids)
        }

    def node(self, node_id: str) -> LayoutNode | None:
        i = self._index.get(node_id)
        if i is None:
            return None
        pinned = not math.isnan(self.fx[i])
        return LayoutNode(
            id=node_id,
            x=float(self.x[i]),
            y=float(self.y[i]),
            vx=float(self.vx[i]),
            vy=float(self.vy[i]),
            fx=float(self.fx[i]) if pinned else None,
            fy=float(self.fy[i]) if pinned else None,
            radius=float(self.radius[i]),
        )

    def set_pin(self, node_id: str, position: tuple[float, float] | None) -> None:
        """Pin a node at a position, or release it with None. Unknown ids are ignored."""
        i = self._index.get(node_id)
        if i is None:
            return
        if position is None:
            self.fx[i] = np.nan
            self.fy[i] = np.nan
            return
        px, py = position
        self.fx[i] = self.x[i] = px
        self.fy[i] = self.y[i] = py
        self.vx[i] = 0.0
        self.vy[i] = 0.0

    def begin_drag(self, node_id: str) -> None:
        """Keep the simulation hot and pin the node where it currently is."""
        i = self._index.get(node_id)
        if i is None:
            return
        self.alpha_target = DRAG_ALPHA_TARGET
        self.restart()
        self.set_pin(node_id, (float(self.x[i]), float(self.y[i])))

    def drag_to(self, node_id: str, x: float, y: float) -> None:
        self.set_pin(node_id, (x, y))

    def end_drag(self, node_id: str) -> None:
        """Let the simulation cool again and release the node to the forces."""
        self.alpha_target = 0.0
        self.set_pin(node_id, None)
