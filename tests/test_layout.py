"""Tests for layout data model."""

import pytest
from unoverlap.geom import Point
from unoverlap.layout import (
    Bounds, DiagramLayout, EdgeDatum, LayoutConfig, LayoutEdge, LayoutMetrics,
    NodeDatum, PositionedNode, as_edge_datum, as_node_datum, is_valid_size
)
from unoverlap.rectangle import Rectangle


class TestNodeDatum:
    """Test NodeDatum class."""

    def test_defaults(self):
        """Test a node without a size."""
        node = NodeDatum("a")
        assert node.id == "a"
        assert node.width is None
        assert node.height is None

    def test_extra_properties(self):
        """Test additional keyword arguments are kept."""
        node = NodeDatum("a", 80, 40, label="Start", shape="round")
        assert node.label == "Start"
        assert node.shape == "round"

    def test_from_dict(self):
        """Test creating from a mapping."""
        node = NodeDatum.from_dict({"id": "a", "width": 120, "kind": "task"})
        assert node.id == "a"
        assert node.width == 120
        assert node.height is None
        assert node.kind == "task"

    def test_from_dict_requires_id(self):
        """Test a mapping without an id is rejected."""
        with pytest.raises(KeyError):
            NodeDatum.from_dict({"width": 10})


class TestPositionedNode:
    """Test PositionedNode class."""

    def test_create(self):
        """Test positioned node creation."""
        node = PositionedNode("a", 10, 20, 100, 50)
        assert node.x == 10.0
        assert node.y == 20.0
        assert node.width == 100.0
        assert node.height == 50.0
        assert node.data == {}

    def test_size_is_read_only(self):
        """Test width and height cannot be reassigned."""
        node = PositionedNode("a", 0, 0, 100, 50)
        with pytest.raises(AttributeError):
            node.width = 10
        with pytest.raises(AttributeError):
            node.height = 10

    def test_position_is_mutable(self):
        """Test x and y can be moved."""
        node = PositionedNode("a", 0, 0, 100, 50)
        node.x = 5
        node.y = 6
        assert (node.x, node.y) == (5, 6)

    def test_rect(self):
        """Test bounding rectangle is centred on the position."""
        r = PositionedNode("a", 100, 50, 40, 20).rect()
        assert (r.x, r.X, r.y, r.Y) == (80, 120, 40, 60)

    def test_copy_is_independent(self):
        """Test copies do not share position or data."""
        node = PositionedNode("a", 1, 2, 3, 4, {"k": 1})
        clone = node.copy()
        clone.x = 99
        clone.data["k"] = 2
        assert node.x == 1
        assert node.data == {"k": 1}

    def test_moved_to(self):
        """Test moving returns a new node with the same size."""
        node = PositionedNode("a", 1, 2, 30, 40)
        moved = node.moved_to(10, 20)
        assert (moved.x, moved.y) == (10, 20)
        assert (moved.width, moved.height) == (30, 40)
        assert (node.x, node.y) == (1, 2)


class TestEdges:
    """Test edge classes."""

    def test_edge_datum(self):
        """Test edge datum creation."""
        edge = EdgeDatum("e", "a", "b", label="next")
        assert edge.source == "a"
        assert edge.target == "b"
        assert edge.label == "next"

    def test_from_dict_source_target(self):
        """Test mapping with source/target keys."""
        edge = EdgeDatum.from_dict({"id": "e", "source": "a", "target": "b"})
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.label is None

    def test_from_dict_from_to(self):
        """Test mapping with from/to keys."""
        edge = EdgeDatum.from_dict({"id": "e", "from": "a", "to": "b", "weight": 2})
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.weight == 2

    def test_layout_edge_copy(self):
        """Test edge copy does not share points."""
        edge = LayoutEdge("e", "a", "b", points=[Point(0, 0), Point(1, 1)])
        clone = edge.copy()
        clone.points[0].x = 50
        assert edge.points[0].x == 0
        assert len(clone.points) == 2

    def test_layout_edge_default_points(self):
        """Test a fresh edge has no route."""
        assert LayoutEdge("e", "a", "b").points == []


class TestNormalisation:
    """Test input normalisation helpers."""

    def test_node_from_mapping(self):
        """Test mapping input becomes a NodeDatum."""
        node = as_node_datum({"id": "a", "height": 30})
        assert isinstance(node, NodeDatum)
        assert node.height == 30

    def test_node_from_positioned(self):
        """Test positioned input keeps its size and position."""
        node = as_node_datum(PositionedNode("a", 5, 6, 70, 30))
        assert (node.width, node.height) == (70, 30)
        assert (node.x, node.y) == (5, 6)

    def test_node_from_positioned_keeps_data(self):
        """Test positioned input carries its extra fields over."""
        node = as_node_datum(PositionedNode("a", 5, 6, 70, 30, {"label": "Start", "x": 99}))
        assert node.label == "Start"
        assert node.x == 5

    def test_node_datum_passthrough(self):
        """Test NodeDatum input is returned unchanged."""
        node = NodeDatum("a")
        assert as_node_datum(node) is node

    def test_edge_from_layout_edge(self):
        """Test laid-out edge input becomes an EdgeDatum."""
        edge = as_edge_datum(LayoutEdge("e", "a", "b", "lbl"))
        assert isinstance(edge, EdgeDatum)
        assert edge.label == "lbl"

    def test_is_valid_size(self):
        """Test size validation."""
        assert is_valid_size(1)
        assert is_valid_size(0.5)
        assert not is_valid_size(None)
        assert not is_valid_size(0)
        assert not is_valid_size(-5)
        assert not is_valid_size(float('nan'))
        assert not is_valid_size(float('inf'))


class TestDiagramLayout:
    """Test DiagramLayout container."""

    def test_empty(self):
        """Test default layout is empty."""
        layout = DiagramLayout()
        assert layout.nodes == []
        assert layout.edges == []

    def test_node_map(self):
        """Test lookup by id."""
        layout = DiagramLayout([PositionedNode("a", 0, 0, 1, 1), PositionedNode("b", 5, 5, 1, 1)])
        assert set(layout.node_map()) == {"a", "b"}
        assert layout.node_map()["b"].x == 5

    def test_copy(self):
        """Test deep copy of nodes and edges."""
        layout = DiagramLayout([PositionedNode("a", 0, 0, 1, 1)], [LayoutEdge("e", "a", "a")])
        clone = layout.copy()
        clone.nodes[0].x = 100
        assert layout.nodes[0].x == 0
        assert clone.edges[0] is not layout.edges[0]


class TestBounds:
    """Test Bounds class."""

    def test_dimensions(self):
        """Test width and height."""
        b = Bounds(10, 20, 110, 70)
        assert b.width == 100
        assert b.height == 50

    def test_empty(self):
        """Test empty bounds are all zero."""
        b = Bounds.empty()
        assert (b.min_x, b.min_y, b.max_x, b.max_y) == (0, 0, 0, 0)

    def test_from_rectangle(self):
        """Test conversion from a rectangle."""
        b = Bounds.from_rectangle(Rectangle(1, 2, 3, 4))
        assert (b.min_x, b.max_x, b.min_y, b.max_y) == (1, 2, 3, 4)

    def test_from_empty_rectangle(self):
        """Test empty rectangle gives empty bounds."""
        assert Bounds.from_rectangle(Rectangle.empty()) == Bounds()


class TestLayoutConfig:
    """Test LayoutConfig."""

    def test_defaults(self):
        """Test default canvas and spacing."""
        config = LayoutConfig()
        assert config.width == 1920
        assert config.height == 1080
        assert config.node_width == 100
        assert config.node_height == 50
        assert config.node_separation == 30
        assert config.rank_direction == 'TB'
        assert config.seed is None

    def test_centre(self):
        """Test canvas centre."""
        assert LayoutConfig(width=200, height=100).centre == (100, 50)

    def test_for_diagram(self):
        """Test diagram presets."""
        config = LayoutConfig.for_diagram("flow")
        assert config.rank_direction == 'LR'
        assert config.node_separation == 40
        assert config.rank_separation == 80

    def test_for_diagram_case_insensitive(self):
        """Test preset lookup ignores case."""
        assert LayoutConfig.for_diagram("TREE").rank_separation == 100

    def test_for_diagram_overrides(self):
        """Test overrides take precedence over the preset."""
        config = LayoutConfig.for_diagram("matrix", node_separation=5, seed=3)
        assert config.node_separation == 5
        assert config.seed == 3

    def test_for_unknown_diagram(self):
        """Test unknown diagram types use the defaults."""
        assert LayoutConfig.for_diagram("sankey") == LayoutConfig()

    def test_from_dict_ignores_unknown(self):
        """Test unknown keys are dropped."""
        config = LayoutConfig.from_dict({"width": 800, "colour": "red"})
        assert config.width == 800
        assert config.height == 1080

    def test_replace(self):
        """Test replace returns a modified copy."""
        config = LayoutConfig()
        other = config.replace(width=640)
        assert other.width == 640
        assert config.width == 1920


class TestLayoutMetrics:
    """Test LayoutMetrics defaults."""

    def test_defaults(self):
        """Test all metrics start at zero."""
        m = LayoutMetrics()
        assert m.overlap_count == 0
        assert m.edge_crossings == 0
        assert m.total_area == 0.0
        assert m.node_spacing == 0.0
        assert m.layout_balance == 0.0
