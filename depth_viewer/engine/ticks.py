"""
Axis tick generation.

X axis: a handful of price labels sampled evenly across the present slots.
Y axis: evenly spaced quantity labels from 0 to the current max quantity.
"""

from __future__ import annotations

from ..types import Snapshot, TickSet

X_TICK_COUNT = 7
Y_TICK_COUNT = 6


def slot_x(slot: int, depth: int) -> float:
    """Horizontal position of a slot, centred on the spread."""
    return slot - depth + 0.5


def _sample_index(i: int, n: int, count: int) -> int:
    """round(i * (n - 1) / (count - 1)) with halves rounded up, in exact integer math."""
    steps = count - 1
    return (2 * i * (n - 1) + steps) // (2 * steps)


def x_ticks(snapshot: Snapshot, count: int = X_TICK_COUNT) -> tuple[tuple[float, float], ...]:
    """Sample `count` (x, price) labels, deduplicated by price in selection order."""
    depth = snapshot.depth
    candidates = [(slot_x(slot, depth), level.price) for slot, level in snapshot.present()]
    if not candidates:
        return ()

    n = len(candidates)
    if count == 1:
        picked = [candidates[0]]
    else:
        picked = [candidates[_sample_index(i, n, count)] for i in range(count)]

    seen: set[float] = set()
    result = []
    for x, price in picked:
        if not price or price in seen:
            continue
        seen.add(price)
        result.append((x, price))
    return tuple(result)


def y_ticks(max_quantity: float, count: int = Y_TICK_COUNT) -> tuple[float, ...]:
    steps = count - 1
    return tuple(round(max_quantity * i / steps, 3) for i in range(count))


def generate_ticks(snapshot: Snapshot, max_quantity: float) -> TickSet:
    return TickSet(x_ticks=x_ticks(snapshot), y_ticks=y_ticks(max_quantity))
