"""
Progressive force-directed layout.

Nodes behave like charged particles and edges like springs:
- pairwise repulsion falling off with distance spreads nodes apart
- spring attraction pulls connected nodes toward an ideal edge length
- weak gravity toward the canvas centre and a soft boundary keep the
  layout on the canvas
- a direct collision correction separates rectangles that still overlap

The step size ``alpha`` decays geometrically across a fixed iteration
budget: large early moves untangle a freshly seeded layout and small late
moves let it settle into a local minimum. Dense graphs can settle in a
state that still overlaps; this strategy gives no overlap guarantee.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from .layout import DiagramLayout, LayoutConfig, LayoutEdge, LayoutResult, PositionedNode
from .strategy import apply_positions, build_result, check_cancelled, seed_positions

logger = logging.getLogger(__name__)


@dataclass
class ForceParameters:
    """Simulation parameters derived from the graph size for one run."""
    iterations: int
    link_distance: float
    spring: float
    repulsion: float
    cutoff: float
    max_velocity: float


class ProgressiveForceStrategy:
    """
    Force-directed simulation with a decaying step size.

    Args:
        spatial_threshold: Above this many nodes, repulsion and collision
            pairs come from a k-d tree radius query instead of all pairs
        alpha_min: Step size reached at the end of the iteration budget
        velocity_decay: Friction applied to velocities every iteration
        center_strength: Gravity toward the canvas centre
        boundary_strength: Push back into the canvas, per unit of overrun
        collision_strength: Fraction of each overlap corrected per iteration
    """

    name = 'progressive-force'
    can_escape_local_minimum = False

    def __init__(
        self,
        spatial_threshold: int = 200,
        alpha_min: float = 0.001,
        velocity_decay: float = 0.6,
        center_strength: float = 0.02,
        boundary_strength: float = 0.1,
        collision_strength: float = 0.5
    ):
        self.spatial_threshold = spatial_threshold
        self.alpha_min = alpha_min
        self.velocity_decay = velocity_decay
        self.center_strength = center_strength
        self.boundary_strength = boundary_strength
        self.collision_strength = collision_strength

        # Stability detection
        self.stability_window = 5
        self.stability_threshold = 0.01
        self.min_movement = 0.01

    def estimate_complexity(self, node_count: int, edge_count: int) -> float:
        # O(n^2) repulsion + O(e) springs
        return node_count * node_count * 0.7 + edge_count * 0.3

    def parameters(self, nodes: Sequence[PositionedNode], edge_count: int) -> ForceParameters:
        """Scale iteration budget and force constants to the graph."""
        n = max(len(nodes), 1)
        largest = max((max(node.width, node.height) for node in nodes), default=0.0)

        link_distance = min(300.0, max(50.0, 200.0 - n))
        link_distance = max(link_distance, 1.5 * largest)
        spring = 0.5 * min(1.0, 100.0 / n)

        return ForceParameters(
            iterations=int(min(500, max(100, n * 5))),
            link_distance=link_distance,
            spring=spring,
            repulsion=0.1 * spring * link_distance * link_distance,
            cutoff=3.0 * link_distance,
            max_velocity=link_distance,
        )

    def apply(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[LayoutEdge],
        config: LayoutConfig,
        seed_layout: Optional[DiagramLayout] = None,
        cancel: Optional[threading.Event] = None
    ) -> LayoutResult:
        started = time.perf_counter()
        check_cancelled(cancel, self.name)

        if not nodes:
            return build_result(self.name, [], edges, config, started)

        rng = np.random.default_rng(config.seed)
        params = self.parameters(nodes, len(edges))
        anchors, anchored = seed_positions(nodes, seed_layout)
        warm = bool(anchored.any())

        pos = self._initial_positions(nodes, config, anchors, anchored, warm, rng)
        pos = self._simulate(pos, nodes, edges, config, params, anchors, anchored, warm, rng, cancel)

        if not np.all(np.isfinite(pos)):
            raise FloatingPointError("force simulation produced non-finite positions")

        return build_result(self.name, apply_positions(nodes, pos), edges, config, started)

    def _initial_positions(
        self,
        nodes: Sequence[PositionedNode],
        config: LayoutConfig,
        anchors: np.ndarray,
        anchored: np.ndarray,
        warm: bool,
        rng: np.random.Generator
    ) -> np.ndarray:
        n = len(nodes)
        cx, cy = config.centre

        if warm:
            pos = np.array([(node.x, node.y) for node in nodes], dtype=float)
            pos[anchored] = anchors[anchored]
            bad = ~np.all(np.isfinite(pos), axis=1)
            if bad.any():
                pos[bad] = rng.uniform((0.0, 0.0), (config.width, config.height), size=(int(bad.sum()), 2))
            return pos

        if n == 1:
            return np.array([[cx, cy]])

        # Circle around the canvas centre in input order
        largest = max(max(node.width, node.height) for node in nodes)
        radius = max(math.sqrt(n) * 50.0, n * largest * 1.2 / (2.0 * math.pi))
        angles = np.arange(n) * (2.0 * math.pi / n)
        return np.column_stack((cx + radius * np.cos(angles), cy + radius * np.sin(angles)))

    def _simulate(
        self,
        pos: np.ndarray,
        nodes: Sequence[PositionedNode],
        edges: Sequence[LayoutEdge],
        config: LayoutConfig,
        params: ForceParameters,
        anchors: np.ndarray,
        anchored: np.ndarray,
        warm: bool,
        rng: np.random.Generator,
        cancel: Optional[threading.Event]
    ) -> np.ndarray:
        n = len(nodes)
        half = np.array([(node.width / 2.0, node.height / 2.0) for node in nodes], dtype=float)
        src, dst = _edge_indices(nodes, edges)
        centre = np.array(config.centre)
        gap = max(0.25 * config.node_separation, 1.0)

        lo = config.padding + half
        hi = np.array([config.width, config.height]) - config.padding - half
        squeezed = lo > hi
        lo = np.where(squeezed, centre, lo)
        hi = np.where(squeezed, centre, hi)

        alpha = 0.3 if warm else 1.0
        decay = 1.0 - (self.alpha_min / alpha) ** (1.0 / params.iterations)
        vel = np.zeros_like(pos)
        temperature = 10.0
        recent: deque[float] = deque(maxlen=self.stability_window)
        stable = 0
        colliding = True

        logger.debug(
            "Force simulation: %d nodes, %d springs, %d iterations, link distance %.1f%s",
            n, len(src), params.iterations, params.link_distance, " (warm start)" if warm else ""
        )

        iteration = 0
        for iteration in range(params.iterations):
            check_cancelled(cancel, self.name)
            alpha *= 1.0 - decay
            prev = pos.copy()

            pi, pj = self._candidate_pairs(pos, params)

            force = self._repulsion(pos, pi, pj, params, rng)
            force += self._springs(pos, src, dst, params)
            force += self.center_strength * (centre - pos)
            force += np.where(pos < lo, (lo - pos) * self.boundary_strength, 0.0)
            force += np.where(pos > hi, (hi - pos) * self.boundary_strength, 0.0)
            if warm:
                force[anchored] += config.continuity_strength * (anchors[anchored] - pos[anchored])

            vel = (vel + force) * self.velocity_decay
            speed = np.linalg.norm(vel, axis=1)
            too_fast = speed > params.max_velocity
            if too_fast.any():
                vel[too_fast] *= (params.max_velocity / speed[too_fast])[:, None]
            pos += vel * alpha

            correction, colliding = _collision_correction(pos, half, pi, pj, gap)
            pos += correction * self.collision_strength

            kinetic = float(np.sum((pos - prev) ** 2))
            energy = kinetic + _spring_potential(pos, src, dst, params.link_distance)

            if self._is_stable(energy, recent):
                stable += 1
                if stable > 10 and colliding:
                    scale = temperature * math.exp(-iteration / 100.0)
                    pos += rng.uniform(-0.5, 0.5, size=pos.shape) * scale
                    temperature = min(100.0, temperature * 1.5)
                    stable = 0
            else:
                stable = 0

            if iteration > 10 and not colliding and kinetic < (self.min_movement ** 2) * n:
                break

        logger.debug(
            "Force simulation stopped after %d iterations (overlaps remaining: %s)",
            iteration + 1, colliding
        )
        return pos

    def _is_stable(self, energy: float, recent: deque) -> bool:
        recent.append(energy)
        if energy < self.stability_threshold:
            return True
        if len(recent) < self.stability_window:
            return False
        return float(np.var(recent)) < self.stability_threshold * 0.1

    def _candidate_pairs(self, pos: np.ndarray, params: ForceParameters) -> tuple[np.ndarray, np.ndarray]:
        """Index arrays (i, j), i < j, of node pairs that interact."""
        n = pos.shape[0]
        if n <= self.spatial_threshold:
            return np.triu_indices(n, k=1)
        pairs = cKDTree(pos).query_pairs(r=params.cutoff, output_type='ndarray')
        if pairs.size == 0:
            empty = np.zeros(0, dtype=int)
            return empty, empty
        return pairs[:, 0], pairs[:, 1]

    @staticmethod
    def _repulsion(
        pos: np.ndarray,
        pi: np.ndarray,
        pj: np.ndarray,
        params: ForceParameters,
        rng: np.random.Generator
    ) -> np.ndarray:
        force = np.zeros_like(pos)
        if pi.size == 0:
            return force

        delta = pos[pi] - pos[pj]
        dist_sq = np.sum(delta * delta, axis=1)

        # Coincident nodes get pushed apart in a random direction
        coincident = dist_sq < 1e-6
        if coincident.any():
            delta[coincident] = rng.uniform(-1.0, 1.0, size=(int(coincident.sum()), 2))
            dist_sq[coincident] = np.sum(delta[coincident] ** 2, axis=1) + 1e-6

        f = delta * (params.repulsion / dist_sq)[:, None]
        f[dist_sq > params.cutoff * params.cutoff] = 0.0
        np.add.at(force, pi, f)
        np.add.at(force, pj, -f)
        return force

    @staticmethod
    def _springs(pos: np.ndarray, src: np.ndarray, dst: np.ndarray, params: ForceParameters) -> np.ndarray:
        force = np.zeros_like(pos)
        if src.size == 0:
            return force

        delta = pos[dst] - pos[src]
        dist = np.maximum(np.linalg.norm(delta, axis=1), 1e-9)
        f = delta * ((dist - params.link_distance) / dist * params.spring)[:, None]
        np.add.at(force, src, f)
        np.add.at(force, dst, -f)
        return force


def _edge_indices(nodes: Sequence[PositionedNode], edges: Sequence[LayoutEdge]) -> tuple[np.ndarray, np.ndarray]:
    """Source and target node indices of every edge, self-loops dropped."""
    index = {node.id: i for i, node in enumerate(nodes)}
    pairs = [
        (index[e.source], index[e.target])
        for e in edges
        if e.source in index and e.target in index and e.source != e.target
    ]
    if not pairs:
        empty = np.zeros(0, dtype=int)
        return empty, empty
    ends = np.array(pairs, dtype=int)
    return ends[:, 0], ends[:, 1]


def _spring_potential(pos: np.ndarray, src: np.ndarray, dst: np.ndarray, link_distance: float) -> float:
    if src.size == 0:
        return 0.0
    dist = np.linalg.norm(pos[dst] - pos[src], axis=1)
    return float(0.5 * np.sum((dist - link_distance) ** 2))


def _collision_correction(
    pos: np.ndarray,
    half: np.ndarray,
    pi: np.ndarray,
    pj: np.ndarray,
    gap: float
) -> tuple[np.ndarray, bool]:
    """
    Displacements that separate overlapping rectangles.

    Each overlapping pair is pushed apart along the axis of least
    penetration, half of the penetration (plus gap) to each node.

    Returns:
        (correction, colliding) where colliding is True if any pair overlaps
    """
    correction = np.zeros_like(pos)
    if pi.size == 0:
        return correction, False

    delta = pos[pi] - pos[pj]
    penetration = half[pi] + half[pj] + gap - np.abs(delta)
    hit = (penetration[:, 0] > 0) & (penetration[:, 1] > 0)
    if not hit.any():
        return correction, False

    delta = delta[hit]
    penetration = penetration[hit]
    axis = np.where(penetration[:, 0] <= penetration[:, 1], 0, 1)
    rows = np.arange(axis.size)
    direction = np.where(delta[rows, axis] >= 0, 1.0, -1.0)

    shift = np.zeros_like(delta)
    shift[rows, axis] = direction * penetration[rows, axis] / 2.0
    np.add.at(correction, pi[hit], shift)
    np.add.at(correction, pj[hit], -shift)
    return correction, True
