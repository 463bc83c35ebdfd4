"""
Dynamic vertical scaling.

Pure function of the current snapshot: no smoothing across updates, so the
scale can jump between frames. Smoothing, if wanted, belongs in the renderer.
"""

from __future__ import annotations

from ..types import Snapshot

TARGET_HEIGHT = 7.0       # Visual height of the tallest bar
MIN_MAX_QUANTITY = 2.5    # Floor so sparse early books don't get over-amplified
MIN_BAR_HEIGHT = 0.05     # Near-zero quantities stay visible


def max_quantity(snapshot: Snapshot) -> float:
    """Largest present quantity, floored at MIN_MAX_QUANTITY."""
    return max(max(snapshot.quantities(), default=0.0), MIN_MAX_QUANTITY)


def scale_factor(snapshot: Snapshot) -> float:
    return TARGET_HEIGHT / max_quantity(snapshot)


def bar_height(quantity: float, factor: float) -> float:
    return max(quantity * factor, MIN_BAR_HEIGHT)
