"""
Profiling script for unoverlap strategy performance analysis.

Strategies run on worker threads inside the resolver, which cProfile does not
follow, so each strategy is profiled by calling it directly. The resolver
itself is only timed end to end.
"""

import cProfile
import pstats
import io
from pstats import SortKey
import time

import numpy as np
from unoverlap import (
    GridSnapStrategy,
    LayoutConfig,
    OverlapResolver,
    ProgressiveForceStrategy,
    SimulatedAnnealingStrategy,
)
from unoverlap.layout import LayoutEdge, PositionedNode


def create_graph(n_nodes, n_edges, seed=42):
    """Create a random graph of piled-up nodes with approximately n_edges edges."""
    rng = np.random.default_rng(seed)
    nodes = [
        PositionedNode(f"n{i}", 960 + rng.normal(0, 20), 540 + rng.normal(0, 20),
                       rng.uniform(60, 160), rng.uniform(30, 60))
        for i in range(n_nodes)
    ]

    edges = []
    for k in range(n_edges):
        source = int(rng.integers(n_nodes))
        target = int(rng.integers(n_nodes))
        if source != target:
            edges.append(LayoutEdge(f"e{k}", f"n{source}", f"n{target}"))

    return nodes, edges


def profile_strategy(strategy, n_nodes, n_edges):
    nodes, edges = create_graph(n_nodes, n_edges)
    return lambda: strategy.apply(nodes, edges, LayoutConfig(seed=1))


def benchmark_scenario(name, func):
    """Benchmark a scenario and print timing."""
    print(f"\n{'='*60}")
    print(f"Profiling: {name}")
    print('='*60)

    profiler = cProfile.Profile()

    start_time = time.time()
    profiler.enable()
    result = func()
    profiler.disable()
    elapsed = time.time() - start_time

    print(f"\nTotal time: {elapsed:.3f}s")
    if result.metrics is not None:
        print(f"Overlaps: {result.metrics.overlap_count}, crossings: {result.metrics.edge_crossings}")

    s = io.StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE)
    ps.print_stats(20)

    print("\nTop 20 functions by cumulative time:")
    print(s.getvalue())

    return profiler


def time_resolver(n_nodes, n_edges):
    nodes, edges = create_graph(n_nodes, n_edges)
    start_time = time.time()
    result = OverlapResolver().resolve(nodes, edges, LayoutConfig(seed=1))
    elapsed = time.time() - start_time
    print(
        f"Resolver ({n_nodes} nodes, {len(edges)} edges): {elapsed:.3f}s, "
        f"strategy={result.strategy}, success={result.success}, "
        f"overlaps={result.metrics.overlap_count}, crossings={result.metrics.edge_crossings}"
    )


def main():
    """Run all profiling scenarios."""
    print("unoverlap Performance Profiling")
    print("=" * 60)

    scenarios = [
        ("Force Small (20 nodes, 30 edges)", profile_strategy(ProgressiveForceStrategy(), 20, 30)),
        ("Force Large (400 nodes, 600 edges)", profile_strategy(ProgressiveForceStrategy(), 400, 600)),
        ("Annealing Small (20 nodes, 30 edges)", profile_strategy(SimulatedAnnealingStrategy(), 20, 30)),
        ("Annealing Medium (60 nodes, 120 edges)", profile_strategy(SimulatedAnnealingStrategy(), 60, 120)),
        ("Grid Large (500 nodes, 1000 edges)", profile_strategy(GridSnapStrategy(), 500, 1000)),
    ]

    profilers = {}
    for name, func in scenarios:
        profilers[name] = benchmark_scenario(name, func)

    print("\n" + "="*60)
    print("Resolver wall time")
    print("="*60)
    for n_nodes, n_edges in [(20, 30), (100, 200), (300, 500)]:
        time_resolver(n_nodes, n_edges)

    print("\n" + "="*60)
    print("Saving detailed profiles...")
    print("="*60)

    for name, profiler in profilers.items():
        filename = f"profile_{name.lower().replace(' ', '_').replace('(', '').replace(')', '').replace(',', '')}.prof"
        profiler.dump_stats(filename)
        print(f"Saved: {filename}")

    print("\nTo view detailed profile, use:")
    print("  python -m pstats <profile_file>")
    print("  then type 'stats' or 'sort cumulative' and 'stats 50'")


if __name__ == "__main__":
    main()
