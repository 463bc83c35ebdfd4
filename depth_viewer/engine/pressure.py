"""
Pressure zone detection.

A level is a pressure zone when its quantity is an outlier within the current
snapshot. Recomputed from scratch for every snapshot; nothing carries over.

Threshold rules:
- SIGMA_RULE:       mean + 1.2 * std (population std)
- SIGMA_TOP15_RULE: max(mean + 1.2 * std, quantity at the top-15% rank)

Comparison is strictly greater-than: uniform books (std == 0) flag nothing.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ..types import PressureSummary, Snapshot

SIGMA_MULTIPLIER = 1.2
TOP_PERCENT = 15

SIGMA_RULE = "mean+1.2*std"
SIGMA_TOP15_RULE = "max(mean+1.2*std, top15%)"

PRESSURE_METHODS = frozenset({SIGMA_RULE, SIGMA_TOP15_RULE})


def pressure_threshold(quantities: Sequence[float], method: str = SIGMA_RULE) -> Optional[float]:
    """Return the flagging threshold, or None for an empty input."""
    if method not in PRESSURE_METHODS:
        raise ValueError(f"unknown pressure method: {method!r}")
    if len(quantities) == 0:
        return None

    qtys = np.asarray(quantities, dtype=np.float64)
    threshold = float(qtys.mean() + SIGMA_MULTIPLIER * qtys.std())

    if method == SIGMA_TOP15_RULE:
        # sorted_desc[floor(N * 0.15)], integer arithmetic keeps the floor exact
        rank = len(qtys) * TOP_PERCENT // 100
        top = float(np.sort(qtys)[::-1][rank])
        threshold = max(threshold, top)

    return threshold


def pressure_flags(quantities: Sequence[float], method: str = SIGMA_RULE) -> list[bool]:
    """Flag each quantity strictly above the threshold. Output aligns 1:1 with input."""
    threshold = pressure_threshold(quantities, method)
    if threshold is None:
        return []
    return [bool(q > threshold) for q in quantities]


def detect_pressure_zones(
    snapshot: Snapshot,
    method: str = SIGMA_TOP15_RULE,
) -> tuple[tuple[bool, ...], PressureSummary]:
    """
    Flag pressure levels of a snapshot and summarize them.

    Returns (flags aligned to every slot, summary). Empty slots are never flagged.
    """
    present = list(snapshot.present())
    flags = pressure_flags([level.quantity for _, level in present], method)

    slot_flags = [False] * len(snapshot.levels)
    flagged = []
    for (slot, level), is_pressure in zip(present, flags):
        if is_pressure:
            slot_flags[slot] = True
            flagged.append(level)

    if not flagged:
        return tuple(slot_flags), PressureSummary(0, None, 0.0, method)

    prices = [level.price for level in flagged]
    avg_qty = sum(level.quantity for level in flagged) / len(flagged)
    summary = PressureSummary(
        count=len(flagged),
        price_range=(min(prices), max(prices)),
        avg_quantity=round(avg_qty, 4),
        method=method,
    )
    return tuple(slot_flags), summary
