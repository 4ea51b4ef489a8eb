"""
Simulated annealing refinement.

Each step moves one randomly chosen node and scores the layout with the
shared energy function. Improvements are always kept; a worse layout is
kept with the Metropolis probability exp(-delta / T). The temperature T
cools geometrically, so the search starts out accepting uphill moves
(escaping the local minima a force simulation settles in) and ends as a
greedy local search. Usually seeded with the force strategy's output.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Optional, Sequence

import numpy as np

from .layout import DiagramLayout, LayoutConfig, LayoutEdge, LayoutMetrics, LayoutResult, PositionedNode
from .metrics import DEFAULT_WEIGHTS, EnergyWeights, MetricsEvaluator, calculate_energy
from .strategy import apply_positions, build_result, check_cancelled, seed_positions

logger = logging.getLogger(__name__)


class SimulatedAnnealingStrategy:
    """
    Stochastic single-node perturbation search with a cooling schedule.

    Args:
        initial_temperature: Starting temperature T0
        cooling_rate: Factor applied to T after each batch of perturbations
        min_temperature: Search stops once T falls to this value
        max_iterations: Upper bound on the number of temperature steps
        iterations_per_temp: Perturbations tried at each temperature
        overlap_area_weight: Weight of the summed overlap area, which gives
            partial separation a gradient the overlap count lacks
        weights: Weights of the shared energy function
    """

    name = 'simulated-annealing'
    can_escape_local_minimum = True

    def __init__(
        self,
        initial_temperature: float = 10.0,
        cooling_rate: float = 0.95,
        min_temperature: float = 0.1,
        max_iterations: int = 1000,
        iterations_per_temp: int = 10,
        overlap_area_weight: float = 0.0005,
        weights: EnergyWeights = DEFAULT_WEIGHTS
    ):
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.min_temperature = min_temperature
        self.max_iterations = max_iterations
        self.iterations_per_temp = iterations_per_temp
        self.overlap_area_weight = overlap_area_weight
        self.weights = weights

        # Keep perturbed nodes this far inside the canvas
        self.boundary_padding = 10.0

    def estimate_complexity(self, node_count: int, edge_count: int) -> float:
        # O(iterations * (nodes + edges))
        return self.max_iterations * self.iterations_per_temp * (node_count + edge_count) * 0.5

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

        rng = np.random.default_rng(config.seed)
        evaluator = MetricsEvaluator(nodes, edges, config)
        anchors, anchored = seed_positions(nodes, seed_layout)

        pos = evaluator.positions_of(nodes)
        bad = ~np.all(np.isfinite(pos), axis=1)
        if bad.any():
            pos[bad] = rng.uniform((0.0, 0.0), (config.width, config.height), size=(int(bad.sum()), 2))

        best = self._anneal(pos, evaluator, config, anchors, anchored, rng, cancel)
        return build_result(self.name, apply_positions(nodes, best), edges, config, started)

    def objective(
        self,
        evaluator: MetricsEvaluator,
        pos: np.ndarray,
        config: LayoutConfig,
        anchors: np.ndarray,
        anchored: np.ndarray
    ) -> tuple[float, LayoutMetrics]:
        """Shared energy plus the overlap-area and continuity terms."""
        metrics = evaluator.evaluate(pos)
        energy = calculate_energy(metrics, self.weights)
        if metrics.overlap_count:
            energy += self.overlap_area_weight * evaluator.overlap_area(pos)
        if anchored.any():
            drift = np.linalg.norm(pos[anchored] - anchors[anchored], axis=1)
            energy += config.continuity_strength * float(drift.mean())
        return energy, metrics

    def _anneal(
        self,
        pos: np.ndarray,
        evaluator: MetricsEvaluator,
        config: LayoutConfig,
        anchors: np.ndarray,
        anchored: np.ndarray,
        rng: np.random.Generator,
        cancel: Optional[threading.Event]
    ) -> np.ndarray:
        n = pos.shape[0]
        lo, hi = self._canvas_limits(evaluator, config)
        max_delta_base = 0.1 * min(config.width, config.height)

        current, metrics = self.objective(evaluator, pos, config, anchors, anchored)
        best_pos = pos.copy()
        best_energy = current
        best_metrics = metrics
        node_temperature = np.ones(n)

        temperature = self.initial_temperature
        step = 0
        while temperature > self.min_temperature and step < self.max_iterations:
            check_cancelled(cancel, self.name)
            tried = np.zeros(n)
            accepted = np.zeros(n)

            for _ in range(self.iterations_per_temp):
                k = int(rng.integers(n))
                before = pos[k].copy()

                max_delta = max_delta_base * (temperature / self.initial_temperature) * node_temperature[k]
                pos[k] += rng.uniform(-max_delta, max_delta, size=2)
                pos[k] = np.clip(pos[k], lo[k], hi[k])

                energy, metrics = self.objective(evaluator, pos, config, anchors, anchored)
                tried[k] += 1
                if self._accept(energy - current, temperature, rng):
                    current = energy
                    accepted[k] += 1
                    if energy < best_energy:
                        best_energy = energy
                        best_pos = pos.copy()
                        best_metrics = metrics
                else:
                    pos[k] = before

            temperature *= self.cooling_rate
            step += 1
            self._update_node_temperatures(node_temperature, tried, accepted)

            if best_metrics.overlap_count == 0 and best_metrics.edge_crossings == 0:
                break

        logger.debug(
            "Annealing stopped after %d temperature steps at T=%.3f (best energy %.2f)",
            step, temperature, best_energy
        )
        return best_pos

    def _canvas_limits(self, evaluator: MetricsEvaluator, config: LayoutConfig) -> tuple[np.ndarray, np.ndarray]:
        half = np.column_stack((evaluator.half_w, evaluator.half_h))
        centre = np.array(config.centre)
        lo = self.boundary_padding + half
        hi = np.array([config.width, config.height]) - self.boundary_padding - half
        squeezed = lo > hi
        return np.where(squeezed, centre, lo), np.where(squeezed, centre, hi)

    @staticmethod
    def _accept(delta: float, temperature: float, rng: np.random.Generator) -> bool:
        """Metropolis criterion."""
        if delta <= 0:
            return True
        return rng.random() < math.exp(-delta / temperature)

    @staticmethod
    def _update_node_temperatures(node_temperature: np.ndarray, tried: np.ndarray, accepted: np.ndarray) -> None:
        # Nodes whose moves keep being accepted cool down, rejected ones heat up
        moved = tried > 0
        rate = np.divide(accepted, tried, out=np.zeros_like(accepted), where=moved)
        factor = np.where(rate > 0.5, 0.95, 1.05)
        node_temperature[moved] = np.clip(node_temperature[moved] * factor[moved], 0.1, 2.0)
