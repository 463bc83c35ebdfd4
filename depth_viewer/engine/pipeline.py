"""
Per-update derivation pipeline.

HOT PATH: process() is called for every depth message (~10x per second).

raw update -> normalize -> Snapshot -> {pressure, scaling, ticks} -> DepthView
                                    -> history (value copy)

Everything except the history buffer is a pure function of the current
Snapshot. The engine holds exactly three pieces of state: the current
Snapshot, the HistoryBuffer, and the DepthView derived from that snapshot.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..config import Config
from ..datafeed.normalizer import normalize_depth, parse_message, placeholder_snapshot
from ..exceptions import MalformedUpdate
from ..types import Bar, DepthView, PressureSummary, PriceLevel, Snapshot, TickSet
from .history import HistoryBuffer
from .pressure import SIGMA_TOP15_RULE, detect_pressure_zones
from .scaling import bar_height, max_quantity, scale_factor
from .ticks import generate_ticks, slot_x

logger = logging.getLogger(__name__)


def derive_view(
    snapshot: Snapshot,
    pressure_method: str = SIGMA_TOP15_RULE,
    timestamp_ms: int = 0,
) -> DepthView:
    """Compute everything the renderer needs from one snapshot. Pure."""
    flags, summary = detect_pressure_zones(snapshot, pressure_method)
    max_qty = max_quantity(snapshot)
    factor = scale_factor(snapshot)

    depth = snapshot.depth
    bars: list[Optional[Bar]] = [None] * len(snapshot.levels)
    for slot, level in snapshot.present():
        bars[slot] = Bar(
            slot=slot,
            x=slot_x(slot, depth),
            price=level.price,
            quantity=level.quantity,
            side=level.side,
            pressure=flags[slot],
            height=bar_height(level.quantity, factor),
        )

    return DepthView(
        snapshot=snapshot,
        flags=flags,
        summary=summary,
        max_quantity=max_qty,
        scale_factor=factor,
        bars=tuple(bars),
        ticks=generate_ticks(snapshot, max_qty),
        timestamp_ms=timestamp_ms,
    )


@dataclass
class EngineStats:
    accepted: int = 0
    rejected: int = 0         # Malformed updates (missing side, bad JSON)
    out_of_order: int = 0     # Stale lastUpdateId
    excluded_levels: int = 0  # Non-numeric entries dropped inside accepted updates


class DepthEngine:
    """
    Owns the current Snapshot, the history buffer and the derived view.

    Thread-safety: one lock spans the whole per-update pipeline, so updates
    never interleave. Readers get immutable values and can use them freely
    after the accessor returns.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self._lock = threading.Lock()
        self._history = HistoryBuffer(self.config.history_capacity)
        self._snapshot: Optional[Snapshot] = None
        self._view: Optional[DepthView] = None
        self._last_update_id: Optional[int] = None
        self._has_connected = False
        self.stats = EngineStats()

        if self.config.seed_placeholder:
            # Not recorded in history: it isn't market data
            self._install(placeholder_snapshot(self.config.depth))

    def _install(self, snapshot: Snapshot) -> DepthView:
        view = derive_view(
            snapshot,
            self.config.pressure_method,
            timestamp_ms=int(time.time() * 1000),
        )
        self._snapshot = snapshot
        self._view = view
        return view

    def process(self, update: dict) -> bool:
        """
        Run the full pipeline for one decoded update.

        Returns True if accepted. Malformed and out-of-order updates are dropped
        and the previous state is kept untouched.
        """
        with self._lock:
            try:
                snapshot = normalize_depth(update, self.config.depth)
            except MalformedUpdate as e:
                self.stats.rejected += 1
                logger.debug(f"Rejected depth update: {e}")
                return False

            if (
                snapshot.update_id is not None
                and self._last_update_id is not None
                and snapshot.update_id <= self._last_update_id
            ):
                self.stats.out_of_order += 1
                logger.debug(
                    f"Dropped stale update {snapshot.update_id} (last {self._last_update_id})"
                )
                return False

            if snapshot.excluded:
                self.stats.excluded_levels += snapshot.excluded
                logger.debug(f"Excluded {snapshot.excluded} non-numeric levels")

            self._install(snapshot)
            self._history.append(snapshot)
            if snapshot.update_id is not None:
                self._last_update_id = snapshot.update_id
            self.stats.accepted += 1
            return True

    def process_message(self, raw: bytes | str) -> bool:
        """Decode a WebSocket frame and process it."""
        try:
            update = parse_message(raw)
        except MalformedUpdate as e:
            with self._lock:
                self.stats.rejected += 1
            logger.debug(f"Rejected depth message: {e}")
            return False
        return self.process(update)

    # --- Connection lifecycle ---

    def on_connected(self) -> None:
        """
        Called when a feed connection is established.

        On a reconnect, history is reset (if configured) so trails never
        splice data from both sides of a gap.
        """
        with self._lock:
            if self._has_connected and self.config.reset_history_on_reconnect:
                self._history.clear()
                self._last_update_id = None
                logger.info("Reconnected: history reset")
            self._has_connected = True

    def on_disconnected(self) -> None:
        """Feed went away. Last snapshot, view and history stay readable."""
        logger.info("Feed disconnected; holding last snapshot")

    def reset_history(self) -> None:
        with self._lock:
            self._history.clear()

    # --- Read surface ---

    @property
    def snapshot(self) -> Optional[Snapshot]:
        with self._lock:
            return self._snapshot

    @property
    def view(self) -> Optional[DepthView]:
        with self._lock:
            return self._view

    @property
    def summary(self) -> Optional[PressureSummary]:
        view = self.view
        return view.summary if view else None

    @property
    def scale_factor(self) -> Optional[float]:
        view = self.view
        return view.scale_factor if view else None

    @property
    def ticks(self) -> Optional[TickSet]:
        view = self.view
        return view.ticks if view else None

    @property
    def history(self) -> tuple[Snapshot, ...]:
        """History entries, oldest first."""
        with self._lock:
            return self._history.snapshots()

    @property
    def history_depth(self) -> int:
        with self._lock:
            return len(self._history)

    def read_history(self, k: int) -> Optional[Snapshot]:
        """Snapshot k updates behind the newest, or None if not available."""
        with self._lock:
            return self._history.read_from_most_recent(k)

    def level_at(self, slot: int) -> Optional[PriceLevel]:
        """Hover lookup: the level in `slot`, or None for an empty slot."""
        n_slots = self.config.depth * 2
        if not 0 <= slot < n_slots:
            raise IndexError(f"slot {slot} out of range [0, {n_slots})")
        snapshot = self.snapshot
        if snapshot is None:
            return None
        return snapshot.levels[slot]
