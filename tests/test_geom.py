"""Tests for geometry module."""

import pytest
import numpy as np
from unoverlap.geom import Point, count_crossings


def crosses(a, b, c, d):
    """Scalar orientation test for segments ab and cd."""
    def side(p, q, r):
        return (q[0] - p[0]) * (r[1] - p[1]) - (r[0] - p[0]) * (q[1] - p[1])
    return side(c, d, a) * side(c, d, b) < 0 and side(a, b, c) * side(a, b, d) < 0


def brute_force_crossings(pos, ends):
    count = 0
    for i in range(len(ends)):
        for j in range(i + 1, len(ends)):
            if set(ends[i]) & set(ends[j]):
                continue
            if crosses(pos[ends[i][0]], pos[ends[i][1]], pos[ends[j][0]], pos[ends[j][1]]):
                count += 1
    return count


def count(pos, ends, **kwargs):
    return count_crossings(pos[ends[:, 0]], pos[ends[:, 1]], ends[:, 0], ends[:, 1], **kwargs)


class TestPoint:
    """Test Point class."""

    def test_create_point(self):
        """Test point creation."""
        p = Point(3.0, 4.0)
        assert p.x == 3.0
        assert p.y == 4.0

    def test_default_point(self):
        """Test default point is the origin."""
        p = Point()
        assert p.x == 0.0
        assert p.y == 0.0

    def test_equality(self):
        """Test points compare by coordinates."""
        assert Point(1, 2) == Point(1, 2)
        assert Point(1, 2) != Point(2, 1)


class TestCountCrossings:
    """Test vectorised crossing detection."""

    def square_with_diagonals(self):
        pos = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
        # sides 0-1, 1-2, 2-3, 3-0 and diagonals 0-2, 1-3
        ends = np.array([[0, 1], [1, 2], [2, 3], [3, 0], [0, 2], [1, 3]])
        return pos, ends

    def test_diagonals_cross_once(self):
        """Test only the diagonals of a square cross."""
        pos, ends = self.square_with_diagonals()
        assert count(pos, ends) == 1

    def test_parallel(self):
        """Test parallel segments do not cross."""
        pos = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 5.0], [10.0, 5.0]])
        assert count(pos, np.array([[0, 1], [2, 3]])) == 0

    def test_would_cross_if_extended(self):
        """Test segments that would cross only if extended."""
        pos = np.array([[0.0, 0.0], [1.0, 1.0], [5.0, 0.0], [4.0, 1.0]])
        assert count(pos, np.array([[0, 1], [2, 3]])) == 0

    def test_touching_is_not_crossing(self):
        """Test a segment ending on another does not cross it."""
        pos = np.array([[0.0, 0.0], [10.0, 0.0], [5.0, 0.0], [5.0, 10.0]])
        assert count(pos, np.array([[0, 1], [2, 3]])) == 0

    def test_collinear_overlap(self):
        """Test collinear overlapping segments are not a crossing."""
        pos = np.array([[0.0, 0.0], [10.0, 0.0], [5.0, 0.0], [15.0, 0.0]])
        assert count(pos, np.array([[0, 1], [2, 3]])) == 0

    def test_shared_endpoint_skipped(self):
        """Test edges sharing a node never count even if they overlap."""
        pos = np.array([[0.0, 0.0], [10.0, 10.0], [10.0, 0.0]])
        ends = np.array([[0, 1], [0, 2], [1, 2]])
        assert count(pos, ends) == 0

    def test_matches_scalar_test(self):
        """Test vectorised count agrees with pairwise scalar test."""
        rng = np.random.default_rng(3)
        pos = rng.uniform(0, 100, size=(8, 2))
        ends = np.array([(i, j) for i in range(8) for j in range(i + 1, 8) if (i + j) % 3 == 0])
        assert count(pos, ends) == brute_force_crossings(pos, ends)

    @pytest.mark.parametrize("block_size", [1, 2, 7, 64, 10_000])
    def test_block_size_does_not_change_count(self, block_size):
        """Test counting in row blocks matches a single full block."""
        rng = np.random.default_rng(11)
        pos = rng.uniform(0, 500, size=(30, 2))
        ends = rng.integers(0, 30, size=(90, 2))
        ends = ends[ends[:, 0] != ends[:, 1]]

        full = count(pos, ends, block_size=len(ends))
        assert full == brute_force_crossings(pos, ends)
        assert count(pos, ends, block_size=block_size) == full

    def test_default_block_spans_several_blocks(self):
        """Test an edge count above one block is counted exactly."""
        # 600 disjoint horizontal segments crossed by one vertical segment
        n = 600
        src = np.array([[0.0, float(i)] for i in range(n)] + [[5.0, -1.0]])
        dst = np.array([[10.0, float(i)] for i in range(n)] + [[5.0, float(n)]])
        src_ids = np.arange(0, 2 * n + 2, 2)
        dst_ids = src_ids + 1
        assert count_crossings(src, dst, src_ids, dst_ids) == n

    def test_invalid_block_size(self):
        """Test a non-positive block size is rejected."""
        pos, ends = self.square_with_diagonals()
        with pytest.raises(ValueError):
            count(pos, ends, block_size=0)

    def test_fewer_than_two_edges(self):
        """Test zero or one edge has no crossings."""
        src = np.array([[0.0, 0.0]])
        dst = np.array([[1.0, 1.0]])
        ids = np.array([0])
        assert count_crossings(src, dst, ids, ids + 1) == 0
        assert count_crossings(src[:0], dst[:0], ids[:0], ids[:0]) == 0
