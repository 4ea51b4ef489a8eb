"""Tests for grid snap strategy."""

import pytest
from unoverlap.gridsnap import NEAREST, ROW_MAJOR, GridSnapStrategy
from unoverlap.layout import LayoutConfig, PositionedNode

from conftest import positioned


class TestGridSnap:
    """Test row-major grid placement."""

    def test_unknown_order(self):
        """Test invalid order is rejected."""
        with pytest.raises(ValueError):
            GridSnapStrategy(order="spiral")

    def test_cell_size(self, config):
        """Test cells fit the largest node plus the margin."""
        nodes = positioned([(0, 0)], width=80, height=30) + positioned([(0, 0)], width=40, height=90)
        assert GridSnapStrategy().cell_size(nodes, config) == (100, 110)

    def test_cell_size_zero_margin(self):
        """Test cells never touch even with no grid margin."""
        nodes = positioned([(0, 0)])
        w, h = GridSnapStrategy().cell_size(nodes, LayoutConfig(grid_margin=0))
        assert w > 100 and h > 50

    def test_no_overlaps(self, stacked_nodes, config):
        """Test grid output never overlaps."""
        result = GridSnapStrategy().apply(stacked_nodes, [], config)
        assert result.metrics.overlap_count == 0
        assert result.success

    def test_row_major_order(self, config):
        """Test nodes fill rows left to right in input order."""
        nodes = positioned([(0, 0)] * 4)
        placed = GridSnapStrategy(ROW_MAJOR).apply(nodes, [], config).layout.nodes

        # 2x2 grid
        assert placed[0].y == placed[1].y
        assert placed[0].x < placed[1].x
        assert placed[2].y > placed[0].y
        assert placed[2].x == placed[0].x

    def test_centred(self, config):
        """Test the grid is centred on the canvas."""
        nodes = positioned([(0, 0)] * 9)
        placed = GridSnapStrategy().apply(nodes, [], config).layout.nodes
        assert (placed[4].x, placed[4].y) == pytest.approx(config.centre)

    def test_mixed_sizes(self, config):
        """Test no overlaps with very different node sizes."""
        nodes = [
            PositionedNode(f"n{i}", 500, 500, 20 + 40 * (i % 4), 15 + 25 * (i % 3))
            for i in range(12)
        ]
        result = GridSnapStrategy().apply(nodes, [], config)
        assert result.metrics.overlap_count == 0

    def test_deterministic(self, stacked_nodes, config):
        """Test repeated runs give identical positions."""
        a = GridSnapStrategy().apply(stacked_nodes, [], config).layout.nodes
        b = GridSnapStrategy().apply(stacked_nodes, [], config).layout.nodes
        assert [(n.x, n.y) for n in a] == [(n.x, n.y) for n in b]


class TestGridSnapNearest:
    """Test nearest-cell grid placement."""

    def test_no_overlaps(self, stacked_nodes, config):
        """Test nearest placement never overlaps."""
        result = GridSnapStrategy(NEAREST).apply(stacked_nodes, [], config)
        assert result.metrics.overlap_count == 0

    def test_keeps_arrangement(self, spread_nodes, config):
        """Test already separated nodes keep their relative order."""
        placed = GridSnapStrategy(NEAREST).apply(spread_nodes, [], config).layout.nodes

        assert placed[0].x < placed[1].x
        assert placed[0].y < placed[2].y
        assert placed[3].x > placed[2].x
        for before, after in zip(spread_nodes, placed):
            assert abs(before.x - after.x) <= 120
            assert abs(before.y - after.y) <= 70

    def test_first_node_keeps_cell(self, config):
        """Test the first node of a pile stays where it is."""
        nodes = positioned([(960, 540)] * 3)
        placed = GridSnapStrategy(NEAREST).apply(nodes, [], config).layout.nodes
        assert (placed[0].x, placed[0].y) == (960, 540)
        assert len({(n.x, n.y) for n in placed}) == 3

    def test_non_finite_position(self, config):
        """Test nodes without a finite position are placed near the centre."""
        nodes = [PositionedNode("a", float('nan'), float('inf'), 100, 50)]
        placed = GridSnapStrategy(NEAREST).apply(nodes, [], config).layout.nodes
        assert (placed[0].x, placed[0].y) == config.centre

    def test_deterministic(self, stacked_nodes, config):
        """Test repeated runs give identical positions."""
        a = GridSnapStrategy(NEAREST).apply(stacked_nodes, [], config).layout.nodes
        b = GridSnapStrategy(NEAREST).apply(stacked_nodes, [], config).layout.nodes
        assert [(n.x, n.y) for n in a] == [(n.x, n.y) for n in b]
