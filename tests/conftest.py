"""
Shared test fixtures for unoverlap tests.

Provides small graphs and configs reused across strategy and resolver tests.
"""

import pytest

from unoverlap.layout import EdgeDatum, LayoutConfig, LayoutEdge, NodeDatum, PositionedNode


def chain_nodes(count: int, width: float = 100.0, height: float = 50.0) -> list[NodeDatum]:
    return [NodeDatum(f"n{i}", width, height) for i in range(count)]


def chain_edges(count: int) -> list[EdgeDatum]:
    return [EdgeDatum(f"e{i}", f"n{i}", f"n{i + 1}") for i in range(count - 1)]


def positioned(coords: list[tuple[float, float]], width: float = 100.0, height: float = 50.0) -> list[PositionedNode]:
    return [PositionedNode(f"n{i}", x, y, width, height) for i, (x, y) in enumerate(coords)]


def layout_edges(pairs: list[tuple[int, int]]) -> list[LayoutEdge]:
    return [LayoutEdge(f"e{i}", f"n{s}", f"n{t}") for i, (s, t) in enumerate(pairs)]


@pytest.fixture
def config() -> LayoutConfig:
    """Default canvas with a fixed seed."""
    return LayoutConfig(seed=7)


@pytest.fixture
def stacked_nodes() -> list[PositionedNode]:
    """Six nodes piled up near the canvas centre."""
    return positioned([(960 + 5 * i, 540 + 3 * i) for i in range(6)])


@pytest.fixture
def spread_nodes() -> list[PositionedNode]:
    """Four nodes far apart, no overlaps."""
    return positioned([(600, 300), (1300, 300), (600, 800), (1300, 800)])
