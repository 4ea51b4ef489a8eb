"""
unoverlap: overlap-free diagram layout under a time budget

Positions the sized nodes of a diagram graph so that no two overlap, keeping
edge crossings low, by racing force-directed, simulated annealing and grid
strategies against a deadline.
"""

from .annealing import SimulatedAnnealingStrategy
from .errors import (
    LayoutError,
    NoValidLayout,
    OverlapGuaranteeViolation,
    StrategyCancelled,
    StrategyException,
    StrategyTimeout,
)
from .force import ProgressiveForceStrategy
from .geom import Point
from .gridsnap import GridSnapStrategy
from .layout import (
    Bounds,
    DiagramLayout,
    EdgeDatum,
    LayoutConfig,
    LayoutEdge,
    LayoutMetrics,
    LayoutResult,
    NodeDatum,
    PositionedNode,
)
from .metrics import EnergyWeights, calculate_energy, compute_metrics
from .rectangle import Rectangle
from .resolver import OverlapResolver, ResolverConfig, resolve_overlaps
from .strategy import LayoutStrategy, OverlapPair, detect_overlaps

__version__ = "0.1.0"

__all__ = [
    "Bounds",
    "DiagramLayout",
    "EdgeDatum",
    "EnergyWeights",
    "GridSnapStrategy",
    "LayoutConfig",
    "LayoutEdge",
    "LayoutError",
    "LayoutMetrics",
    "LayoutResult",
    "LayoutStrategy",
    "NoValidLayout",
    "NodeDatum",
    "OverlapGuaranteeViolation",
    "OverlapPair",
    "OverlapResolver",
    "Point",
    "PositionedNode",
    "ProgressiveForceStrategy",
    "Rectangle",
    "ResolverConfig",
    "SimulatedAnnealingStrategy",
    "StrategyCancelled",
    "StrategyException",
    "StrategyTimeout",
    "calculate_energy",
    "compute_metrics",
    "detect_overlaps",
    "resolve_overlaps",
]
