"""
Data model for the overlap-resolution engine.

This module defines what flows in and out of a layout request:
- Node data from the upstream diagram stage and the positioned nodes the
  engine produces
- Edge data and laid-out edges with routing stubs
- The layout configuration passed unmodified to every strategy
- Quality metrics, bounds and the final layout result
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace as dc_replace
from typing import Any, Mapping, Optional, Union

from .geom import Point
from .rectangle import Rectangle


class NodeDatum:
    """
    Node as produced by the upstream diagram-data stage.

    Attributes:
        id: Node identity
        width: Width of the node's bounding box, None to use the config default
        height: Height of the node's bounding box, None to use the config default

    Any other keyword arguments are kept as attributes and ignored by layout.
    """

    def __init__(self, id: str, width: Optional[float] = None, height: Optional[float] = None, **kwargs):
        self.id = id
        self.width = width
        self.height = height

        # Copy over any additional properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeDatum:
        """Create a node from a mapping with at least an 'id' key."""
        values = dict(data)
        return cls(values.pop('id'), **values)

    def __repr__(self) -> str:
        return f"NodeDatum(id={self.id!r}, width={self.width}, height={self.height})"


class PositionedNode:
    """
    Node with a centre position assigned by the engine.

    ``width`` and ``height`` are fixed at construction; only ``x`` and ``y``
    may change.
    """

    __slots__ = ('id', 'x', 'y', '_width', '_height', 'data')

    def __init__(
        self,
        id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        data: Optional[dict[str, Any]] = None
    ):
        self.id = id
        self.x = float(x)
        self.y = float(y)
        self._width = float(width)
        self._height = float(height)
        self.data: dict[str, Any] = dict(data) if data else {}

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    def rect(self) -> Rectangle:
        """Bounding rectangle centred on the node position."""
        return Rectangle.from_centre(self.x, self.y, self._width, self._height)

    def copy(self) -> PositionedNode:
        return PositionedNode(self.id, self.x, self.y, self._width, self._height, self.data)

    def moved_to(self, x: float, y: float) -> PositionedNode:
        """Return a copy of this node centred at (x, y)."""
        return PositionedNode(self.id, x, y, self._width, self._height, self.data)

    def __repr__(self) -> str:
        return (
            f"PositionedNode(id={self.id!r}, x={self.x:.2f}, y={self.y:.2f}, "
            f"width={self._width}, height={self._height})"
        )


class EdgeDatum:
    """
    Edge as produced by the upstream diagram-data stage.

    Attributes:
        id: Edge identity
        source: Id of the source node
        target: Id of the target node
        label: Optional label text
    """

    def __init__(self, id: str, source: str, target: str, label: Optional[str] = None, **kwargs):
        self.id = id
        self.source = source
        self.target = target
        self.label = label

        # Copy over any additional properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EdgeDatum:
        """Create an edge from a mapping; 'from'/'to' are accepted for source/target."""
        values = dict(data)
        source = values.pop('source', None)
        target = values.pop('target', None)
        if source is None:
            source = values.pop('from')
        if target is None:
            target = values.pop('to')
        values.pop('from', None)
        values.pop('to', None)
        return cls(values.pop('id'), source, target, **values)

    def __repr__(self) -> str:
        return f"EdgeDatum(id={self.id!r}, source={self.source!r}, target={self.target!r})"


class LayoutEdge:
    """
    Edge in a computed layout.

    ``points`` holds the routing polyline. Strategies emit a straight
    two-point stub from source centre to target centre; curved routing is
    left to the renderer.
    """

    def __init__(
        self,
        id: str,
        source: str,
        target: str,
        label: Optional[str] = None,
        points: Optional[list[Point]] = None
    ):
        self.id = id
        self.source = source
        self.target = target
        self.label = label
        self.points: list[Point] = list(points) if points else []

    def copy(self) -> LayoutEdge:
        return LayoutEdge(
            self.id, self.source, self.target, self.label,
            [Point(p.x, p.y) for p in self.points]
        )

    def __repr__(self) -> str:
        return f"LayoutEdge(id={self.id!r}, source={self.source!r}, target={self.target!r})"


# Attributes with a layout meaning; everything else on a node is carried as data
NODE_FIELDS = ('id', 'width', 'height', 'x', 'y')

NodeInput = Union[NodeDatum, PositionedNode, Mapping[str, Any]]
EdgeInput = Union[EdgeDatum, LayoutEdge, Mapping[str, Any]]


def as_node_datum(node: NodeInput) -> NodeDatum:
    """Normalise a caller-supplied node into a NodeDatum."""
    if isinstance(node, NodeDatum):
        return node
    if isinstance(node, PositionedNode):
        data = {k: v for k, v in node.data.items() if k not in NODE_FIELDS}
        return NodeDatum(node.id, node.width, node.height, x=node.x, y=node.y, **data)
    return NodeDatum.from_dict(node)


def as_edge_datum(edge: EdgeInput) -> EdgeDatum:
    """Normalise a caller-supplied edge into an EdgeDatum."""
    if isinstance(edge, EdgeDatum):
        return edge
    if isinstance(edge, LayoutEdge):
        return EdgeDatum(edge.id, edge.source, edge.target, edge.label)
    return EdgeDatum.from_dict(edge)


@dataclass
class DiagramLayout:
    """A set of positioned nodes and the edges between them."""
    nodes: list[PositionedNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)

    def node_map(self) -> dict[str, PositionedNode]:
        return {n.id: n for n in self.nodes}

    def copy(self) -> DiagramLayout:
        return DiagramLayout([n.copy() for n in self.nodes], [e.copy() for e in self.edges])


@dataclass
class Bounds:
    """Axis-aligned bounding box of a layout."""
    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @staticmethod
    def empty() -> Bounds:
        return Bounds()

    @staticmethod
    def from_rectangle(r: Rectangle) -> Bounds:
        if r.is_empty():
            return Bounds()
        return Bounds(r.x, r.y, r.X, r.Y)


# Presets per diagram type, applied on top of the LayoutConfig defaults
_DIAGRAM_PRESETS: dict[str, dict[str, Any]] = {
    'flow': {'rank_direction': 'LR', 'node_separation': 40, 'rank_separation': 80},
    'tree': {'rank_direction': 'TB', 'node_separation': 30, 'rank_separation': 100},
    'timeline': {'rank_direction': 'LR', 'node_separation': 20, 'rank_separation': 120},
    'matrix': {'rank_direction': 'LR', 'node_separation': 100, 'rank_separation': 100},
    'cycle': {'rank_direction': 'LR', 'node_separation': 40, 'rank_separation': 40},
}


@dataclass
class LayoutConfig:
    """Canvas, spacing and margin parameters shared by every strategy."""
    # Canvas
    width: float = 1920.0
    height: float = 1080.0

    # Defaults for nodes without a size
    node_width: float = 100.0
    node_height: float = 50.0

    # Spacing
    margin_x: float = 50.0
    margin_y: float = 50.0
    node_separation: float = 30.0
    edge_separation: float = 10.0
    rank_separation: float = 50.0
    rank_direction: str = 'TB'

    padding: float = 50.0  # soft boundary inset from the canvas edge
    grid_margin: float = 20.0  # gap between grid-snap cells
    continuity_strength: float = 0.05  # pull toward warm-start positions

    seed: Optional[int] = None

    @property
    def centre(self) -> tuple[float, float]:
        return (self.width / 2.0, self.height / 2.0)

    @classmethod
    def for_diagram(cls, diagram_type: str, **overrides: Any) -> LayoutConfig:
        """
        Get the recommended configuration for a diagram type.

        Args:
            diagram_type: One of flow, tree, timeline, matrix, cycle;
                anything else yields the defaults
            **overrides: Field values that take precedence over the preset
        """
        values = dict(_DIAGRAM_PRESETS.get(diagram_type.lower(), {}))
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LayoutConfig:
        """Build a config from a mapping, ignoring keys that are not fields."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def replace(self, **changes: Any) -> LayoutConfig:
        return dc_replace(self, **changes)


@dataclass
class LayoutMetrics:
    """Quality measurements of a layout."""
    overlap_count: int = 0
    edge_crossings: int = 0
    total_area: float = 0.0
    node_spacing: float = 0.0
    layout_balance: float = 0.0


@dataclass
class LayoutResult:
    """Outcome of a strategy attempt or of a full resolve() call."""
    layout: DiagramLayout
    bounds: Bounds
    processing_time: float  # milliseconds
    success: bool
    error: Optional[str] = None
    metrics: Optional[LayoutMetrics] = None
    strategy: Optional[str] = None


def is_valid_size(value: Optional[float]) -> bool:
    """True for a finite, strictly positive node dimension."""
    return value is not None and math.isfinite(value) and value > 0
