"""
Deterministic grid placement.

Every node gets its own cell of a regular grid whose cells are at least as
large as the biggest node plus a margin, so the result can never contain
overlapping nodes. This is the engine's correctness backstop: it trades area
and edge crossings for a guaranteed overlap-free layout.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Optional, Sequence

from .errors import OverlapGuaranteeViolation
from .layout import DiagramLayout, LayoutConfig, LayoutEdge, LayoutResult, PositionedNode
from .strategy import build_result, check_cancelled

logger = logging.getLogger(__name__)

ROW_MAJOR = 'row-major'
NEAREST = 'nearest'


class GridSnapStrategy:
    """
    Snap nodes into grid cells.

    Args:
        order: ``'row-major'`` fills a square-ish grid centred on the canvas
            in input order; ``'nearest'`` moves each node, in input order,
            to the free cell closest to its current centre so the existing
            arrangement is kept
    """

    name = 'grid-snap'
    can_escape_local_minimum = True

    def __init__(self, order: str = ROW_MAJOR):
        if order not in (ROW_MAJOR, NEAREST):
            raise ValueError(f"Unknown grid order: {order!r}")
        self.order = order

    def estimate_complexity(self, node_count: int, edge_count: int) -> float:
        return float(node_count)

    def cell_size(self, nodes: Sequence[PositionedNode], config: LayoutConfig) -> tuple[float, float]:
        """Cell width and height: largest node dimension plus the grid margin."""
        margin = max(config.grid_margin, 1.0)
        max_w = max((n.width for n in nodes), default=0.0)
        max_h = max((n.height for n in nodes), default=0.0)
        return max_w + margin, max_h + margin

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

        cell_w, cell_h = self.cell_size(nodes, config)
        if self.order == ROW_MAJOR:
            placed = self._row_major(nodes, config, cell_w, cell_h)
        else:
            placed = self._nearest(nodes, config, cell_w, cell_h)

        result = build_result(self.name, placed, edges, config, started)
        if result.metrics.overlap_count:
            raise OverlapGuaranteeViolation(result.metrics.overlap_count)

        logger.debug(
            "Grid snap (%s) placed %d nodes in %.0fx%.0f cells",
            self.order, len(placed), cell_w, cell_h
        )
        return result

    def _row_major(
        self,
        nodes: Sequence[PositionedNode],
        config: LayoutConfig,
        cell_w: float,
        cell_h: float
    ) -> list[PositionedNode]:
        n = len(nodes)
        cols = math.ceil(math.sqrt(n))
        rows = math.ceil(n / cols)
        cx, cy = config.centre
        x0 = cx - cols * cell_w / 2.0
        y0 = cy - rows * cell_h / 2.0

        placed = []
        for i, node in enumerate(nodes):
            row, col = divmod(i, cols)
            placed.append(node.moved_to(x0 + (col + 0.5) * cell_w, y0 + (row + 0.5) * cell_h))
        return placed

    def _nearest(
        self,
        nodes: Sequence[PositionedNode],
        config: LayoutConfig,
        cell_w: float,
        cell_h: float
    ) -> list[PositionedNode]:
        # Lattice cell (i, j) is centred at (cx + i*cell_w, cy + j*cell_h)
        cx, cy = config.centre
        occupied: set[tuple[int, int]] = set()

        placed = []
        for node in nodes:
            x = node.x if math.isfinite(node.x) else cx
            y = node.y if math.isfinite(node.y) else cy
            ci = round((x - cx) / cell_w)
            cj = round((y - cy) / cell_h)

            i, j = self._nearest_free_cell(ci, cj, x - cx, y - cy, cell_w, cell_h, occupied)
            occupied.add((i, j))
            placed.append(node.moved_to(cx + i * cell_w, cy + j * cell_h))
        return placed

    @staticmethod
    def _nearest_free_cell(
        ci: int,
        cj: int,
        dx: float,
        dy: float,
        cell_w: float,
        cell_h: float,
        occupied: set[tuple[int, int]]
    ) -> tuple[int, int]:
        """Search square rings around (ci, cj) for the closest free cell."""
        if (ci, cj) not in occupied:
            return ci, cj

        radius = 1
        while True:
            free = []
            for di in range(-radius, radius + 1):
                for dj in range(-radius, radius + 1):
                    if max(abs(di), abs(dj)) != radius:
                        continue
                    cell = (ci + di, cj + dj)
                    if cell not in occupied:
                        free.append(cell)
            if free:
                return min(
                    free,
                    key=lambda c: ((c[0] * cell_w - dx) ** 2 + (c[1] * cell_h - dy) ** 2, c[1], c[0])
                )
            radius += 1
