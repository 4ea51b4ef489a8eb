"""
The layout strategy contract and helpers shared by its implementations.

A strategy is any object with a ``name``, a ``can_escape_local_minimum``
flag and the two methods of ``LayoutStrategy``. Strategies are independent
classes, not a hierarchy; what they have in common lives in the plain
functions below.

Contract for ``apply``:
- must not mutate the node or edge lists it receives, nor the nodes in them
- must return exactly the node ids and edge ids it was given
- must return a LayoutResult or raise, and must bound its own iteration
  count
- should call ``check_cancelled`` once per outer iteration so an abandoned
  attempt stops promptly
"""

from __future__ import annotations

import threading
import time
from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from .errors import StrategyCancelled
from .geom import Point
from .layout import DiagramLayout, LayoutConfig, LayoutEdge, LayoutResult, PositionedNode
from .metrics import MetricsEvaluator
from .rectangle import overlapping_pairs


@runtime_checkable
class LayoutStrategy(Protocol):
    """Interface implemented by every layout strategy."""

    name: str
    can_escape_local_minimum: bool

    def apply(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[LayoutEdge],
        config: LayoutConfig,
        seed_layout: Optional[DiagramLayout] = None,
        cancel: Optional[threading.Event] = None
    ) -> LayoutResult:
        """
        Compute new positions for nodes.

        Args:
            nodes: Positioned input nodes; left untouched
            edges: Edges between the nodes; left untouched
            config: Layout configuration
            seed_layout: Optional previous layout to stay close to
            cancel: Optional event that is set when the caller gives up

        Returns:
            LayoutResult with new node objects and metrics
        """
        ...

    def estimate_complexity(self, node_count: int, edge_count: int) -> float:
        """Estimate relative computational cost (higher is more expensive)."""
        ...


class OverlapPair:
    """Two overlapping nodes and how far they penetrate along each axis."""

    def __init__(self, node1: PositionedNode, node2: PositionedNode, overlap_x: float, overlap_y: float):
        self.node1 = node1
        self.node2 = node2
        self.overlap_x = overlap_x
        self.overlap_y = overlap_y

    def __repr__(self) -> str:
        return f"OverlapPair({self.node1.id!r}, {self.node2.id!r})"


def check_cancelled(cancel: Optional[threading.Event], name: str) -> None:
    """Raise StrategyCancelled if the cancel event has been set."""
    if cancel is not None and cancel.is_set():
        raise StrategyCancelled(name)


def copy_nodes(nodes: Sequence[PositionedNode]) -> list[PositionedNode]:
    return [n.copy() for n in nodes]


def apply_positions(nodes: Sequence[PositionedNode], pos: np.ndarray) -> list[PositionedNode]:
    """New nodes with the centres taken from rows of pos."""
    return [n.moved_to(float(pos[i, 0]), float(pos[i, 1])) for i, n in enumerate(nodes)]


def straight_edges(nodes: Sequence[PositionedNode], edges: Sequence[LayoutEdge]) -> list[LayoutEdge]:
    """
    Copy edges with a straight two-point stub between endpoint centres.

    Edges whose endpoints are missing get an empty polyline.
    """
    node_map = {n.id: n for n in nodes}
    result = []
    for e in edges:
        source = node_map.get(e.source)
        target = node_map.get(e.target)
        if source is None or target is None:
            points: list[Point] = []
        else:
            points = [Point(source.x, source.y), Point(target.x, target.y)]
        result.append(LayoutEdge(e.id, e.source, e.target, e.label, points))
    return result


def seed_positions(
    nodes: Sequence[PositionedNode],
    seed_layout: Optional[DiagramLayout]
) -> tuple[np.ndarray, np.ndarray]:
    """
    Look up warm-start positions.

    Returns:
        (anchors, mask) where anchors is (n, 2) and mask marks the nodes
        that appear in seed_layout with a finite position
    """
    anchors = np.zeros((len(nodes), 2))
    mask = np.zeros(len(nodes), dtype=bool)
    if seed_layout is None or not seed_layout.nodes:
        return anchors, mask
    seeds = seed_layout.node_map()
    for i, n in enumerate(nodes):
        s = seeds.get(n.id)
        if s is not None and np.isfinite(s.x) and np.isfinite(s.y):
            anchors[i] = (s.x, s.y)
            mask[i] = True
    return anchors, mask


def build_result(
    name: str,
    nodes: list[PositionedNode],
    edges: Sequence[LayoutEdge],
    config: LayoutConfig,
    started: float
) -> LayoutResult:
    """
    Wrap final positions in a LayoutResult.

    Args:
        name: Strategy name recorded on the result
        nodes: Final positioned nodes
        edges: Input edges; routed as straight stubs
        config: Layout configuration
        started: time.perf_counter() value at the start of the attempt
    """
    evaluator = MetricsEvaluator(nodes, edges, config)
    pos = evaluator.positions_of(nodes)
    metrics = evaluator.evaluate(pos)
    return LayoutResult(
        layout=DiagramLayout(nodes, straight_edges(nodes, edges)),
        bounds=evaluator.bounds(pos),
        processing_time=(time.perf_counter() - started) * 1000.0,
        success=metrics.overlap_count == 0,
        metrics=metrics,
        strategy=name,
    )


def detect_overlaps(nodes: Sequence[PositionedNode], padding: float = 0.0) -> list[OverlapPair]:
    """
    Detect all overlapping node pairs.

    Args:
        nodes: Positioned nodes
        padding: Additional clearance to require around each node

    Returns:
        One OverlapPair per overlapping pair, in index order
    """
    rects = [n.rect().inflate(padding) if padding else n.rect() for n in nodes]
    return [
        OverlapPair(nodes[i], nodes[j], rects[i].overlap_x(rects[j]), rects[i].overlap_y(rects[j]))
        for i, j in overlapping_pairs(rects)
    ]
