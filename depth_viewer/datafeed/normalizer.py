"""
Depth update normalization.

HOT PATH: normalize_depth() runs once per partial-depth message (~10x per second).

Turns a raw {bids, asks} payload into a fixed-shape Snapshot:
1. Truncate each side to `depth` entries in feed order (feed ordering is trusted)
2. Parse price/qty text to float; non-finite or unparseable entries become empty slots
3. Reverse bids so they read ascending, right-align them against the spread
4. Left-align asks, pad the far end with empty slots
"""

from __future__ import annotations

import math
from typing import Optional

import orjson

from ..exceptions import MalformedUpdate
from ..types import DEPTH, PriceLevel, Side, Snapshot


def parse_message(raw: bytes | str) -> dict:
    """
    Decode a WebSocket text frame.

    Combined stream format {stream: "...", data: {...}} is unwrapped.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedUpdate(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedUpdate(f"expected JSON object, got {type(data).__name__}")

    payload = data.get('data', data) if 'stream' in data else data
    if not isinstance(payload, dict):
        raise MalformedUpdate("stream envelope without object payload")
    return payload


def _parse_number(value: object) -> Optional[float]:
    """Decimal text or a plain JSON number. Booleans and Python-only literals ("1_000") are rejected."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    if isinstance(value, str) and "_" in value:
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _parse_level(entry: object, side: Side) -> Optional[PriceLevel]:
    """Parse one [priceText, qtyText] pair. Returns None if it isn't usable."""
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        return None
    price, qty = _parse_number(entry[0]), _parse_number(entry[1])
    if price is None or qty is None:
        return None
    return PriceLevel(price, qty, side)


def normalize_depth(update: dict, depth: int = DEPTH) -> Snapshot:
    """
    Build a Snapshot from a partial-depth update.

    Expected format: {lastUpdateId?, bids: [[price, qty], ...], asks: [[price, qty], ...]}
    with bids best (highest) first and asks best (lowest) first.

    Raises MalformedUpdate if either side is missing.
    """
    bids_raw = update.get('bids')
    asks_raw = update.get('asks')
    if not isinstance(bids_raw, list) or not isinstance(asks_raw, list):
        raise MalformedUpdate("update must carry both 'bids' and 'asks' lists")

    bids = [_parse_level(entry, Side.BID) for entry in bids_raw[:depth]]
    asks = [_parse_level(entry, Side.ASK) for entry in asks_raw[:depth]]
    excluded = sum(1 for lvl in bids if lvl is None) + sum(1 for lvl in asks if lvl is None)

    # Best bid sits next to best ask: ascending bids, empty padding on the far left
    bids.reverse()
    levels = [None] * (depth - len(bids)) + bids + asks + [None] * (depth - len(asks))

    update_id = update.get('lastUpdateId')
    if not isinstance(update_id, int) or isinstance(update_id, bool):
        update_id = None

    return Snapshot(levels=tuple(levels), update_id=update_id, excluded=excluded)


def placeholder_snapshot(depth: int = DEPTH) -> Snapshot:
    """
    Seed shown before the first live update: a V of bars growing away from the spread.

    Prices are zero, so no X ticks are generated from it.
    """
    levels = tuple(
        PriceLevel(0.0, 0.1 + abs(slot - depth), Side.BID if slot < depth else Side.ASK)
        for slot in range(depth * 2)
    )
    return Snapshot(levels=levels)
