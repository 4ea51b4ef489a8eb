"""
Geometric utilities for layout quality measurement.

This module provides the point primitive used for edge routes and
edge-crossing detection vectorised over every pair of edges in a layout.
Crossings are computed a block of rows at a time so memory stays linear in
the number of edges.
"""

from __future__ import annotations

import numpy as np

# Source edges tested per block by count_crossings
CROSSING_BLOCK_SIZE = 512


class Point:
    """2D point."""

    def __init__(self, x: float = 0.0, y: float = 0.0):
        self.x = x
        self.y = y

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __repr__(self) -> str:
        return f"Point({self.x}, {self.y})"


def _orientation(
    ax: np.ndarray, ay: np.ndarray,
    bx: np.ndarray, by: np.ndarray,
    cx: np.ndarray, cy: np.ndarray
) -> np.ndarray:
    """
    Vectorised Left|On|Right test of c against the line through a and b.

    Returns >0 where c is left of the line, 0 where it is on it and <0
    where it is right of it.
    """
    return (bx - ax) * (cy - ay) - (cx - ax) * (by - ay)


def _crossing_rows(
    src: np.ndarray,
    dst: np.ndarray,
    src_ids: np.ndarray,
    dst_ids: np.ndarray,
    start: int,
    stop: int
) -> np.ndarray:
    """
    Crossing mask for edges start..stop against every later edge.

    Returns:
        Boolean (stop - start, E - start) array; entry [r, c] is True when
        edge start + r crosses edge start + c, the latter comes after the
        former, and the two share no endpoint node
    """
    rows = slice(start, stop)
    cols = slice(start, None)

    # A=src_i, B=dst_i, C=src_j, D=dst_j
    ax, ay = src[rows, 0][:, None], src[rows, 1][:, None]
    bx, by = dst[rows, 0][:, None], dst[rows, 1][:, None]
    cx, cy = src[cols, 0][None, :], src[cols, 1][None, :]
    dx, dy = dst[cols, 0][None, :], dst[cols, 1][None, :]

    crosses = _orientation(ax, ay, cx, cy, dx, dy) * _orientation(bx, by, cx, cy, dx, dy) < 0
    crosses &= _orientation(cx, cy, ax, ay, bx, by) * _orientation(dx, dy, ax, ay, bx, by) < 0

    si, ti = src_ids[rows][:, None], dst_ids[rows][:, None]
    sj, tj = src_ids[cols][None, :], dst_ids[cols][None, :]
    crosses &= ~((si == sj) | (si == tj) | (ti == sj) | (ti == tj))

    crosses &= np.arange(start, src.shape[0])[None, :] > np.arange(start, stop)[:, None]
    return crosses


def count_crossings(
    src: np.ndarray,
    dst: np.ndarray,
    src_ids: np.ndarray,
    dst_ids: np.ndarray,
    block_size: int = CROSSING_BLOCK_SIZE
) -> int:
    """
    Count crossing edge pairs, skipping pairs that share a node.

    Touching and collinear segments do not count as crossing.

    Args:
        src: Source endpoint coordinates, shape (E, 2)
        dst: Target endpoint coordinates, shape (E, 2)
        src_ids: Integer node index of each edge's source, shape (E,)
        dst_ids: Integer node index of each edge's target, shape (E,)
        block_size: Number of source edges tested at once

    Returns:
        Number of unordered crossing pairs
    """
    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")
    e = src.shape[0]
    total = 0
    for start in range(0, max(e - 1, 0), block_size):
        stop = min(start + block_size, e)
        total += int(np.count_nonzero(_crossing_rows(src, dst, src_ids, dst_ids, start, stop)))
    return total
