"""
Layout quality metrics and the shared energy function.

Every strategy attempt is scored with the same metrics so the resolver can
compare results produced by unrelated algorithms:

- overlap count: node pairs whose bounding boxes intersect
- edge crossings: pairs of straight edges that cross, ignoring pairs that
  share a node
- total area: area of the bounding box enclosing all nodes
- node spacing: minimum centre-to-centre distance
- layout balance: how close the centroid is to the canvas centre, in [0, 1]

The energy function folds these into a single score; lower is better.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.spatial.distance import pdist

from .geom import count_crossings
from .layout import Bounds, LayoutConfig, LayoutEdge, LayoutMetrics, PositionedNode
from .rectangle import bounding_rectangle


@dataclass
class EnergyWeights:
    """Weights of the shared energy function. Negative weights are rewards."""
    overlap: float = 10.0
    crossing: float = 5.0
    area: float = 0.001
    spacing: float = -0.1
    balance: float = -2.0


DEFAULT_WEIGHTS = EnergyWeights()


def calculate_energy(metrics: LayoutMetrics, weights: EnergyWeights = DEFAULT_WEIGHTS) -> float:
    """
    Calculate the total energy of a layout (lower is better).

    Overlap and crossing penalties dominate; area is a mild tie-breaker and
    spacing and balance reward aesthetic quality once the penalties vanish.
    """
    return (
        weights.overlap * metrics.overlap_count
        + weights.crossing * metrics.edge_crossings
        + weights.area * metrics.total_area
        + weights.spacing * metrics.node_spacing
        + weights.balance * metrics.layout_balance
    )


class MetricsEvaluator:
    """
    Evaluates metrics for many candidate positions of one fixed graph.

    Node sizes and edge endpoints are resolved to arrays once, so scoring a
    candidate only costs the vectorised pairwise tests. Positions are given
    as an (n, 2) array of node centres in the order of ``nodes``.
    """

    def __init__(self, nodes: Sequence[PositionedNode], edges: Sequence[LayoutEdge], config: LayoutConfig):
        self.n = len(nodes)
        self.config = config
        self.half_w = np.array([n.width / 2.0 for n in nodes], dtype=float)
        self.half_h = np.array([n.height / 2.0 for n in nodes], dtype=float)

        index = {n.id: i for i, n in enumerate(nodes)}
        pairs = [
            (index[e.source], index[e.target])
            for e in edges
            if e.source in index and e.target in index
        ]
        if pairs:
            ends = np.array(pairs, dtype=int)
            self.src_idx = ends[:, 0]
            self.dst_idx = ends[:, 1]
        else:
            self.src_idx = np.zeros(0, dtype=int)
            self.dst_idx = np.zeros(0, dtype=int)

        self._upper = np.triu(np.ones((self.n, self.n), dtype=bool), k=1)

    def positions_of(self, nodes: Sequence[PositionedNode]) -> np.ndarray:
        """Stack node centres into an (n, 2) array."""
        if not nodes:
            return np.zeros((0, 2))
        return np.array([(n.x, n.y) for n in nodes], dtype=float)

    def _edges_of(self, pos: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        lefts = pos[:, 0] - self.half_w
        rights = pos[:, 0] + self.half_w
        tops = pos[:, 1] - self.half_h
        bottoms = pos[:, 1] + self.half_h
        return lefts, rights, tops, bottoms

    def overlap_matrix(self, pos: np.ndarray) -> np.ndarray:
        """Boolean upper-triangular matrix of overlapping node pairs."""
        lefts, rights, tops, bottoms = self._edges_of(pos)
        separated = (
            (rights[:, None] < lefts[None, :])
            | (lefts[:, None] > rights[None, :])
            | (bottoms[:, None] < tops[None, :])
            | (tops[:, None] > bottoms[None, :])
        )
        return ~separated & self._upper

    def overlap_count(self, pos: np.ndarray) -> int:
        if self.n < 2:
            return 0
        return int(np.count_nonzero(self.overlap_matrix(pos)))

    def overlap_area(self, pos: np.ndarray) -> float:
        """Sum of pairwise intersection areas."""
        if self.n < 2:
            return 0.0
        lefts, rights, tops, bottoms = self._edges_of(pos)
        ox = np.minimum(rights[:, None], rights[None, :]) - np.maximum(lefts[:, None], lefts[None, :])
        oy = np.minimum(bottoms[:, None], bottoms[None, :]) - np.maximum(tops[:, None], tops[None, :])
        area = np.clip(ox, 0.0, None) * np.clip(oy, 0.0, None)
        return float(np.sum(area[self._upper]))

    def edge_crossings(self, pos: np.ndarray) -> int:
        if self.src_idx.size < 2:
            return 0
        return count_crossings(pos[self.src_idx], pos[self.dst_idx], self.src_idx, self.dst_idx)

    def bounds(self, pos: np.ndarray) -> Bounds:
        if self.n == 0:
            return Bounds.empty()
        lefts, rights, tops, bottoms = self._edges_of(pos)
        return Bounds(float(lefts.min()), float(tops.min()), float(rights.max()), float(bottoms.max()))

    def total_area(self, pos: np.ndarray) -> float:
        if self.n == 0:
            return 0.0
        b = self.bounds(pos)
        return b.width * b.height

    def node_spacing(self, pos: np.ndarray) -> float:
        if self.n < 2:
            return 0.0
        return float(pdist(pos).min())

    def layout_balance(self, pos: np.ndarray) -> float:
        """
        1 minus the centroid's distance from the canvas centre, each axis
        normalised by half the canvas size, clamped to [0, 1].
        """
        if self.n == 0:
            return 1.0
        half_w = self.config.width / 2.0
        half_h = self.config.height / 2.0
        if half_w <= 0 or half_h <= 0:
            return 0.0
        cx, cy = pos.mean(axis=0)
        dx = (cx - half_w) / half_w
        dy = (cy - half_h) / half_h
        balance = 1.0 - math.sqrt(dx * dx + dy * dy)
        return min(1.0, max(0.0, balance))

    def evaluate(self, pos: np.ndarray) -> LayoutMetrics:
        """Compute all metrics for the given node centres."""
        return LayoutMetrics(
            overlap_count=self.overlap_count(pos),
            edge_crossings=self.edge_crossings(pos),
            total_area=self.total_area(pos),
            node_spacing=self.node_spacing(pos),
            layout_balance=self.layout_balance(pos),
        )


def compute_metrics(
    nodes: Sequence[PositionedNode],
    edges: Sequence[LayoutEdge],
    config: Optional[LayoutConfig] = None
) -> LayoutMetrics:
    """Compute layout metrics for positioned nodes and their edges."""
    evaluator = MetricsEvaluator(nodes, edges, config or LayoutConfig())
    return evaluator.evaluate(evaluator.positions_of(nodes))


def calculate_bounds(nodes: Sequence[PositionedNode]) -> Bounds:
    """Tight bounding box of all node rectangles; zero-sized when empty."""
    return Bounds.from_rectangle(bounding_rectangle([n.rect() for n in nodes]))
