"""
Data types for Depth Viewer.

Performance notes:
- Using NamedTuple for immutable, memory-efficient structures
- A Snapshot is never mutated; every accepted update builds a fresh one
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, NamedTuple, Optional

# Levels retained per side
DEPTH = 20

# Snapshots retained by the history buffer
HISTORY_CAPACITY = 30


class Side(Enum):
    BID = "bid"
    ASK = "ask"


class ConnectionStatus(Enum):
    CONNECTING = "connecting"
    LIVE = "live"
    DISCONNECTED = "disconnected"


class PriceLevel(NamedTuple):
    """Single price level from the depth feed."""
    price: float
    quantity: float
    side: Side


class Snapshot(NamedTuple):
    """
    Fixed-shape view of the book: exactly 2 * depth slots.

    Slots [0, depth) hold bids ascending by price (best bid at depth - 1),
    slots [depth, 2 * depth) hold asks ascending by price (best ask at depth).
    Empty slots are None and keep their index.
    """
    levels: tuple[Optional[PriceLevel], ...]
    update_id: Optional[int] = None
    excluded: int = 0  # Entries dropped for non-numeric price/qty

    @property
    def depth(self) -> int:
        return len(self.levels) // 2

    def present(self) -> Iterator[tuple[int, PriceLevel]]:
        """Yield (slot, level) for every non-empty slot, left to right."""
        for slot, level in enumerate(self.levels):
            if level is not None:
                yield slot, level

    def quantities(self) -> list[float]:
        return [level.quantity for _, level in self.present()]

    def copy(self) -> Snapshot:
        """Independent value copy; shares no level objects with self."""
        return Snapshot(
            levels=tuple(
                PriceLevel(lvl.price, lvl.quantity, lvl.side) if lvl is not None else None
                for lvl in self.levels
            ),
            update_id=self.update_id,
            excluded=self.excluded,
        )

    @property
    def best_bid(self) -> float:
        """Best bid price. Returns 0.0 if no bids."""
        level = self.levels[self.depth - 1] if self.levels else None
        return level.price if level is not None else 0.0

    @property
    def best_ask(self) -> float:
        """Best ask price. Returns 0.0 if no asks."""
        level = self.levels[self.depth] if self.levels else None
        return level.price if level is not None else 0.0

    @property
    def mid_price(self) -> float:
        bb, ba = self.best_bid, self.best_ask
        if bb > 0 and ba > 0:
            return (bb + ba) / 2.0
        return bb or ba

    @property
    def spread(self) -> float:
        bb, ba = self.best_bid, self.best_ask
        if bb > 0 and ba > 0:
            return ba - bb
        return 0.0


class PressureSummary(NamedTuple):
    """Aggregate over the levels flagged as pressure zones."""
    count: int
    price_range: Optional[tuple[float, float]]  # (low, high), None if nothing flagged
    avg_quantity: float
    method: str


class TickSet(NamedTuple):
    """Axis labels: (slot_x, price) pairs for X, quantities for Y."""
    x_ticks: tuple[tuple[float, float], ...]
    y_ticks: tuple[float, ...]


class Bar(NamedTuple):
    """One present slot, ready for rendering."""
    slot: int
    x: float                  # slot - depth + 0.5
    price: float
    quantity: float
    side: Side
    pressure: bool
    height: float             # Visual height after scaling


class DepthView(NamedTuple):
    """
    Everything derived from one Snapshot.

    This is what the UI consumes. Replaced wholesale on every accepted update.
    """
    snapshot: Snapshot
    flags: tuple[bool, ...]               # Aligned 1:1 with snapshot slots
    summary: PressureSummary
    max_quantity: float
    scale_factor: float
    bars: tuple[Optional[Bar], ...]       # Aligned 1:1 with snapshot slots
    ticks: TickSet
    timestamp_ms: int
