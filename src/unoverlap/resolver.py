"""
Overlap resolution orchestrator.

The resolver runs a fixed chain of strategies, force-directed simulation,
then simulated annealing, then grid snapping, under a per-strategy and a
global time budget. Each strategy starts from the positions the previous
one produced. Every attempt is scored with the shared energy function and
the best one is kept. If any attempt left overlapping nodes, a final grid
pass removes them, so a successful result never contains overlaps.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

import numpy as np

from .annealing import SimulatedAnnealingStrategy
from .errors import NoValidLayout, OverlapGuaranteeViolation, StrategyException, StrategyTimeout
from .force import ProgressiveForceStrategy
from .gridsnap import NEAREST, GridSnapStrategy
from .layout import (
    DiagramLayout,
    EdgeInput,
    LayoutConfig,
    LayoutEdge,
    LayoutMetrics,
    LayoutResult,
    NODE_FIELDS,
    NodeInput,
    PositionedNode,
    as_edge_datum,
    as_node_datum,
    is_valid_size,
)
from .metrics import EnergyWeights, MetricsEvaluator, calculate_bounds, calculate_energy
from .strategy import LayoutStrategy, copy_nodes

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """Time budgets and thresholds of the resolver."""
    max_time_per_strategy: float = 2.0  # seconds
    max_total_time: float = 5.0  # seconds
    min_improvement: float = 0.1  # fraction a result must beat the best energy by
    advance_ratio: float = 0.9  # move on when energy > best_energy * advance_ratio
    max_attempts_per_strategy: int = 3  # consecutive runs of one strategy
    fallback_order: str = NEAREST  # grid order used by the overlap fallback
    weights: EnergyWeights = field(default_factory=EnergyWeights)


def default_strategies() -> list[LayoutStrategy]:
    """The strategy chain in order of preference."""
    return [
        ProgressiveForceStrategy(),
        SimulatedAnnealingStrategy(),
        GridSnapStrategy(),
    ]


class OverlapResolver:
    """
    Resolve node overlaps using the best available strategy.

    Args:
        config: Time budgets and thresholds
        strategies: Strategy chain to run in order; defaults to
            force-directed, simulated annealing, grid snap
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        strategies: Optional[Iterable[LayoutStrategy]] = None
    ):
        self.config = config or ResolverConfig()
        self.strategies: list[LayoutStrategy] = (
            list(strategies) if strategies is not None else default_strategies()
        )

    def resolve(
        self,
        nodes: Sequence[NodeInput],
        edges: Sequence[EdgeInput],
        config: Optional[LayoutConfig] = None,
        existing_layout: Optional[DiagramLayout] = None
    ) -> LayoutResult:
        """
        Compute an overlap-free layout.

        Args:
            nodes: Nodes to place, as NodeDatum objects or mappings
            edges: Edges between them; edges with a missing endpoint are dropped
            config: Layout configuration passed to every strategy
            existing_layout: Previous layout whose positions seed this one

        Returns:
            LayoutResult; ``success`` is False only when no strategy produced
            a layout or the overlap fallback failed
        """
        started = time.perf_counter()
        layout_config = config or LayoutConfig()
        rng = np.random.default_rng(layout_config.seed)

        current_nodes = self.initialize_nodes(nodes, layout_config, existing_layout, rng)
        current_edges = self.initialize_edges(edges, current_nodes)

        if not current_nodes:
            return LayoutResult(
                layout=DiagramLayout([], current_edges),
                bounds=calculate_bounds([]),
                processing_time=(time.perf_counter() - started) * 1000.0,
                success=True,
                metrics=LayoutMetrics(layout_balance=1.0),
            )

        attempts: list[LayoutMetrics] = []
        best_result: Optional[LayoutResult] = None
        best_energy = math.inf
        index = 0
        runs = 0

        # Try each strategy in sequence until a good solution is found or time runs out
        while index < len(self.strategies) and not self._is_timeout(started):
            strategy = self.strategies[index]
            runs += 1
            logger.info("Trying strategy: %s", strategy.name)

            try:
                result = self._apply_with_timeout(
                    strategy, current_nodes, current_edges, layout_config, existing_layout, started
                )
                self._check_identity(strategy, current_nodes, current_edges, result)
                metrics = self._measure(result.layout.nodes, result.layout.edges, layout_config)
            except StrategyTimeout as exc:
                logger.warning("%s", exc)
                index, runs = index + 1, 0
                continue
            except Exception as exc:
                logger.error("%s", StrategyException(strategy.name, exc), exc_info=exc)
                index, runs = index + 1, 0
                continue

            attempts.append(metrics)
            energy = calculate_energy(metrics, self.config.weights)
            logger.debug(
                "%s: energy %.2f, %d overlaps, %d crossings",
                strategy.name, energy, metrics.overlap_count, metrics.edge_crossings
            )

            # Next strategy refines this one's output
            current_nodes = result.layout.nodes
            current_edges = result.layout.edges

            if energy < best_energy * (1 - self.config.min_improvement):
                best_energy = energy
                best_result = result

                if metrics.overlap_count == 0 and metrics.edge_crossings < len(current_nodes) / 2:
                    logger.info("Found good solution with %s, early termination", strategy.name)
                    break

            # Move on if this strategy did not help much
            if energy > best_energy * self.config.advance_ratio or runs >= self.config.max_attempts_per_strategy:
                index, runs = index + 1, 0

        degraded = best_result is None
        if best_result is None:
            logger.warning("No valid layout found, using fallback positions")
            best_result = LayoutResult(
                layout=DiagramLayout(current_nodes, current_edges),
                bounds=calculate_bounds(current_nodes),
                processing_time=0.0,
                success=False,
                error=str(NoValidLayout(len(attempts))),
            )

        gate_metrics: Optional[LayoutMetrics] = None
        if any(m.overlap_count > 0 for m in attempts):
            logger.info("Falling back to grid layout to remove overlaps")
            grid = GridSnapStrategy(order=self.config.fallback_order)
            try:
                best_result = grid.apply(
                    best_result.layout.nodes, best_result.layout.edges, layout_config, best_result.layout
                )
                gate_metrics = self._measure(best_result.layout.nodes, best_result.layout.edges, layout_config)
            except OverlapGuaranteeViolation as exc:
                logger.error("Grid fallback failed: %s", exc)
                best_result = replace(best_result, success=False, error=str(exc))
                degraded = True
            except Exception as exc:
                logger.error("%s", StrategyException(grid.name, exc), exc_info=exc)
                best_result = replace(best_result, success=False, error=str(exc))
                degraded = True

        final_nodes = best_result.layout.nodes
        final_metrics: Optional[LayoutMetrics] = None
        try:
            final_metrics = self._measure(final_nodes, best_result.layout.edges, layout_config)
        except Exception as exc:
            logger.error("Could not measure final layout: %s", exc, exc_info=exc)
            best_result = replace(best_result, error=best_result.error or str(exc))
            degraded = True

        if gate_metrics is not None:
            metrics = gate_metrics
        elif attempts:
            metrics = min(attempts, key=lambda m: calculate_energy(m, self.config.weights))
        else:
            metrics = final_metrics or LayoutMetrics()

        success = not degraded and final_metrics is not None and final_metrics.overlap_count == 0
        processing_time = (time.perf_counter() - started) * 1000.0
        if not success:
            logger.warning(
                "Layout degraded after %.0fms: %s", processing_time, best_result.error or "overlaps remain"
            )

        return LayoutResult(
            layout=best_result.layout,
            bounds=calculate_bounds(final_nodes),
            processing_time=processing_time,
            success=success,
            error=best_result.error if not success else None,
            metrics=metrics,
            strategy=best_result.strategy,
        )

    def initialize_nodes(
        self,
        nodes: Sequence[NodeInput],
        config: LayoutConfig,
        existing_layout: Optional[DiagramLayout],
        rng: np.random.Generator
    ) -> list[PositionedNode]:
        """
        Create positioned copies of the input nodes.

        Positions come from existing_layout where the id is present there,
        otherwise they are drawn uniformly from the canvas. Sizes fall back
        to the previous layout's size and then to the config defaults.
        """
        previous = existing_layout.node_map() if existing_layout is not None else {}

        positioned = []
        for raw in nodes:
            datum = as_node_datum(raw)
            prev = previous.get(datum.id)

            width = next(
                (w for w in (datum.width, prev.width if prev else None) if is_valid_size(w)),
                config.node_width
            )
            height = next(
                (h for h in (datum.height, prev.height if prev else None) if is_valid_size(h)),
                config.node_height
            )

            if prev is not None and math.isfinite(prev.x) and math.isfinite(prev.y):
                x, y = prev.x, prev.y
            else:
                x = float(rng.uniform(0.0, config.width))
                y = float(rng.uniform(0.0, config.height))

            data = {k: v for k, v in vars(datum).items() if k not in NODE_FIELDS}
            positioned.append(PositionedNode(datum.id, x, y, width, height, data))
        return positioned

    def initialize_edges(self, edges: Sequence[EdgeInput], nodes: Sequence[PositionedNode]) -> list[LayoutEdge]:
        """Drop edges that reference missing nodes and reset their routes."""
        node_ids = {n.id for n in nodes}
        result = []
        for raw in edges:
            edge = as_edge_datum(raw)
            if edge.source in node_ids and edge.target in node_ids:
                result.append(LayoutEdge(edge.id, edge.source, edge.target, edge.label))
        dropped = len(edges) - len(result)
        if dropped:
            logger.debug("Dropped %d edges with missing endpoints", dropped)
        return result

    def _apply_with_timeout(
        self,
        strategy: LayoutStrategy,
        nodes: list[PositionedNode],
        edges: list[LayoutEdge],
        config: LayoutConfig,
        existing_layout: Optional[DiagramLayout],
        started: float
    ) -> LayoutResult:
        """
        Race a strategy against its time slice.

        The strategy runs on its own worker thread. If the slice runs out
        first, its cancel event is set and the worker is abandoned without
        waiting for it.
        """
        elapsed = time.perf_counter() - started
        timeout = min(self.config.max_time_per_strategy, self.config.max_total_time - elapsed)
        if timeout <= 0:
            raise StrategyTimeout(strategy.name, 0.0)

        cancel = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"unoverlap-{strategy.name}")
        try:
            future = executor.submit(
                strategy.apply,
                copy_nodes(nodes),
                [e.copy() for e in edges],
                config,
                existing_layout,
                cancel,
            )
            try:
                return future.result(timeout=timeout)
            except FuturesTimeoutError:
                cancel.set()
                raise StrategyTimeout(strategy.name, timeout) from None
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def _check_identity(
        strategy: LayoutStrategy,
        nodes: Sequence[PositionedNode],
        edges: Sequence[LayoutEdge],
        result: LayoutResult
    ) -> None:
        """Reject results that add, drop or rename nodes or edges."""
        out_nodes = result.layout.nodes
        out_edges = result.layout.edges
        if (
            len(out_nodes) != len(nodes)
            or {n.id for n in out_nodes} != {n.id for n in nodes}
            or {e.id for e in out_edges} != {e.id for e in edges}
        ):
            raise ValueError(f"{strategy.name} changed the node or edge set")

    @staticmethod
    def _measure(
        nodes: Sequence[PositionedNode],
        edges: Sequence[LayoutEdge],
        config: LayoutConfig
    ) -> LayoutMetrics:
        evaluator = MetricsEvaluator(nodes, edges, config)
        return evaluator.evaluate(evaluator.positions_of(nodes))

    def _is_timeout(self, started: float) -> bool:
        return time.perf_counter() - started >= self.config.max_total_time


def resolve_overlaps(
    nodes: Sequence[NodeInput],
    edges: Sequence[EdgeInput],
    config: Optional[LayoutConfig] = None,
    existing_layout: Optional[DiagramLayout] = None,
    resolver_config: Optional[ResolverConfig] = None
) -> LayoutResult:
    """Run a default OverlapResolver once."""
    return OverlapResolver(resolver_config).resolve(nodes, edges, config, existing_layout)
