#!/usr/bin/env python3
"""
Micro-benchmark for Depth Viewer performance.

Tests:
1. Normalization throughput (decoded dict -> Snapshot)
2. View derivation speed (pressure + scaling + ticks)
3. Full per-update pipeline, JSON frame to history append

The feed pushes every 100ms; the pipeline must stay far below that.

Usage:
    python -m depth_viewer.benchmark
"""

from __future__ import annotations

import random
import time
from statistics import mean, stdev

import orjson

from .datafeed.normalizer import normalize_depth
from .engine.pipeline import DepthEngine, derive_view

UPDATE_INTERVAL_MS = 100.0


def generate_mock_depth(base_price: float = 60000.0, levels: int = 20, update_id: int = 1) -> dict:
    """Generate a mock depth20 partial book message."""
    tick_size = 0.01

    bids = []
    asks = []

    for i in range(levels):
        bid_price = base_price - (i + 1) * tick_size
        ask_price = base_price + (i + 1) * tick_size

        bids.append([f"{bid_price:.2f}", f"{random.uniform(0.001, 5):.5f}"])
        asks.append([f"{ask_price:.2f}", f"{random.uniform(0.001, 5):.5f}"])

    return {
        'lastUpdateId': update_id,
        'bids': bids,
        'asks': asks,
    }


def _report(times: list[float]) -> float:
    avg_time = mean(times) * 1000
    std_time = stdev(times) * 1000
    print(f"  Iterations: {len(times)}")
    print(f"  Avg time: {avg_time:.4f}ms")
    print(f"  Std dev: {std_time:.4f}ms")
    return avg_time


def benchmark_normalize(iterations: int = 10000) -> None:
    """Benchmark normalization of decoded updates."""
    print("\n=== Normalization Benchmark ===")

    updates = [generate_mock_depth(update_id=i + 1) for i in range(iterations)]

    start = time.perf_counter()
    for u in updates:
        normalize_depth(u)
    elapsed = time.perf_counter() - start

    rate = iterations / elapsed
    print(f"  Updates normalized: {iterations:,}")
    print(f"  Time: {elapsed*1000:.1f}ms")
    print(f"  Rate: {rate:,.0f} updates/sec")
    print(f"  Per update: {elapsed/iterations*1_000_000:.1f}µs")


def benchmark_derive(iterations: int = 2000) -> None:
    """Benchmark pressure + scaling + tick derivation."""
    print("\n=== View Derivation Benchmark ===")

    snapshots = [normalize_depth(generate_mock_depth(update_id=i + 1)) for i in range(iterations)]

    times = []
    for snap in snapshots:
        start = time.perf_counter()
        derive_view(snap)
        times.append(time.perf_counter() - start)

    avg_time = _report(times)
    print(f"  Rate: {1000/avg_time:,.0f} views/sec")


def benchmark_full_pipeline(iterations: int = 2000) -> None:
    """Benchmark JSON frame -> engine (normalize, derive, history append)."""
    print("\n=== Full Pipeline Benchmark ===")

    engine = DepthEngine()
    frames = [orjson.dumps(generate_mock_depth(update_id=i + 1)) for i in range(iterations)]

    times = []
    for frame in frames:
        start = time.perf_counter()
        engine.process_message(frame)
        times.append(time.perf_counter() - start)

    avg_time = _report(times)
    print(f"  Budget used at 100ms cadence: {avg_time / UPDATE_INTERVAL_MS * 100:.3f}%")
    print(f"  History depth: {engine.history_depth}")


def main() -> None:
    """Run all benchmarks."""
    print("=" * 60)
    print("Depth Viewer Performance Benchmark")
    print("=" * 60)

    benchmark_normalize()
    benchmark_derive()
    benchmark_full_pipeline()

    print("\n" + "=" * 60)
    print("Benchmark complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()
