"""
Depth chart TUI using Textual.

Displays:
- Top: status bar (symbol, connection status, scale, mid/spread, pressure summary)
- Middle: one row per slot, asks on top, bars sized by visual height
- Right: ghost column with the quantity from a past snapshot
- Bottom: quantity and price axis ticks

Performance notes:
- Polls the view queue at ~10 FPS and keeps only the latest view
- Pressure summary is sampled once per second
"""

from __future__ import annotations

import queue
from typing import TYPE_CHECKING, Optional

from rich.console import Group, RenderableType
from rich.style import Style
from rich.table import Table
from rich.text import Text

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Footer, Static

from ..engine.scaling import TARGET_HEIGHT
from ..types import ConnectionStatus, Side

if TYPE_CHECKING:
    from ..datafeed.binance_client import BinanceDepthClient
    from ..types import DepthView, PressureSummary, Snapshot

# Color scheme (dark theme)
BID_COLOR = "#3aff43"
ASK_COLOR = "#ff2842"
PRESSURE_COLOR = "#facc15"
GHOST_COLOR = "#64748b"
HEADER_COLOR = "#94a3b8"
BAR_BG = "#18171e"

STATUS_STYLES = {
    ConnectionStatus.CONNECTING: "bold black on yellow",
    ConnectionStatus.LIVE: "bold black on green",
    ConnectionStatus.DISCONNECTED: "bold white on red",
}

BAR_WIDTH = 40
GHOST_OFFSET = 10  # Updates back (~1s at 100ms cadence)


def format_qty(qty: float) -> str:
    """Format quantity for display."""
    if qty >= 1000:
        return f"{qty/1000:.1f}K"
    elif qty >= 1:
        return f"{qty:.2f}"
    else:
        return f"{qty:.4f}"


def make_bar(height: float, width: int, color: str) -> Text:
    """Horizontal bar whose length is height relative to the tallest possible bar."""
    fill_ratio = max(0.0, min(1.0, height / TARGET_HEIGHT))
    fill_width = max(1, int(fill_ratio * width))
    bar = "█" * fill_width + " " * (width - fill_width)
    return Text(bar, style=Style(color=color, bgcolor=BAR_BG))


def format_summary(summary: Optional[PressureSummary]) -> Text:
    if summary is None or summary.count == 0:
        return Text("no pressure zones", style="dim")
    low, high = summary.price_range
    return Text(
        f"{summary.count} zones {low:.2f}-{high:.2f} avg {format_qty(summary.avg_quantity)}",
        style=PRESSURE_COLOR,
    )


def format_book(snapshot: Optional[Snapshot]) -> Text:
    """Mid price and spread; dashes while a side is missing or only the placeholder is shown."""
    if snapshot is None or snapshot.mid_price <= 0:
        return Text("Mid: -  Spread: -", style="dim")
    two_sided = snapshot.best_bid > 0 and snapshot.best_ask > 0
    result = Text()
    result.append("Mid: ", style="dim")
    result.append(f"{snapshot.mid_price:.2f}", style="cyan")
    result.append("  Spread: ", style="dim")
    result.append(f"{snapshot.spread:.2f}" if two_sided else "-", style="cyan")
    return result


class DepthChart(Static):
    """Slot-per-row depth chart."""

    DEFAULT_CSS = """
    DepthChart {
        width: 100%;
        height: auto;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        self._view: DepthView | None = None
        self._ghost: Snapshot | None = None

    def update_view(self, view: DepthView, ghost: Snapshot | None) -> None:
        self._view = view
        self._ghost = ghost
        self.refresh(layout=True)

    def render(self) -> RenderableType:
        if self._view is None:
            return Text("Waiting for data...", style="dim")

        view = self._view
        table = Table(
            show_header=True,
            header_style=HEADER_COLOR,
            box=None,
            padding=(0, 1),
            collapse_padding=True,
        )
        table.add_column("Slot", justify="right", width=4)
        table.add_column("Price", justify="right", width=12)
        table.add_column("Qty", justify="right", width=10)
        table.add_column("Depth", justify="left", width=BAR_WIDTH, no_wrap=True)
        table.add_column("", justify="center", width=1)
        table.add_column("Ghost", justify="right", width=10)

        # Highest price on top: walk slots right to left
        for bar in reversed(view.bars):
            if bar is None:
                continue
            color = BID_COLOR if bar.side is Side.BID else ASK_COLOR
            ghost_text = ""
            if self._ghost is not None:
                past = self._ghost.levels[bar.slot]
                if past is not None:
                    ghost_text = format_qty(past.quantity)
            table.add_row(
                Text(str(bar.slot), style="dim"),
                Text(f"{bar.price:.2f}", style=color),
                Text(format_qty(bar.quantity), style=color),
                make_bar(bar.height, BAR_WIDTH, PRESSURE_COLOR if bar.pressure else color),
                Text("◆" if bar.pressure else "", style=PRESSURE_COLOR),
                Text(ghost_text, style=GHOST_COLOR),
            )

        y_axis = Text("Qty axis: ", style="dim")
        y_axis.append("  ".join(format_qty(y) for y in view.ticks.y_ticks), style=HEADER_COLOR)
        x_axis = Text("Price axis: ", style="dim")
        x_axis.append(
            "  ".join(f"{price:.2f}@{x:+.1f}" for x, price in view.ticks.x_ticks),
            style=HEADER_COLOR,
        )
        return Group(table, Text(""), y_axis, x_axis)


class StatusBar(Static):
    """Status bar: symbol, connection state, scale, mid/spread, pressure summary, history depth."""

    DEFAULT_CSS = """
    StatusBar {
        dock: top;
        height: 3;
        padding: 0 2;
        background: #0f172a;
    }
    """

    def __init__(self, symbol: str) -> None:
        super().__init__()
        self.symbol = symbol.upper()
        self.connection_status = ConnectionStatus.CONNECTING
        self.summary: PressureSummary | None = None
        self.book: Snapshot | None = None
        self.scale_factor: float | None = None
        self.history_depth = 0

    def render(self) -> RenderableType:
        result = Text()
        result.append(f" {self.symbol} ", style="bold white on #1e40af")
        result.append("  ")
        result.append(f" {self.connection_status.value} ", style=STATUS_STYLES[self.connection_status])
        result.append("  Scale: ", style="dim")
        result.append("-" if self.scale_factor is None else f"{self.scale_factor:.3f}", style="cyan")
        result.append("  │  ", style="dim")
        result.append(format_book(self.book))
        result.append("  │  ", style="dim")
        result.append(format_summary(self.summary))
        result.append("  │  History: ", style="dim")
        result.append(str(self.history_depth), style="cyan")
        return result


class DepthApp(App):
    """Main Depth Viewer application."""

    CSS = """
    Screen {
        background: #0f172a;
    }

    #main-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
        overflow-y: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reconnect", "Reconnect"),
    ]

    def __init__(self, client: BinanceDepthClient) -> None:
        super().__init__()
        self.client = client
        self._status_bar: StatusBar | None = None
        self._chart: DepthChart | None = None

    def compose(self) -> ComposeResult:
        self._status_bar = StatusBar(self.client.config.symbol)
        self._chart = DepthChart()

        yield self._status_bar
        yield Container(self._chart, id="main-container")
        yield Footer()

    def on_mount(self) -> None:
        self.set_interval(0.1, self._poll_views)
        self.set_interval(1.0, self._sample_summary)
        # Show the seeded placeholder before the first live update
        view = self.client.engine.view
        if view is not None:
            self._chart.update_view(view, None)

    def _poll_views(self) -> None:
        """Drain queue, keep only latest."""
        latest = None
        while True:
            try:
                latest = self.client.view_queue.get_nowait()
            except queue.Empty:
                break

        engine = self.client.engine
        if latest is not None:
            self._chart.update_view(latest, engine.read_history(GHOST_OFFSET))
            self._status_bar.scale_factor = latest.scale_factor
            self._status_bar.book = latest.snapshot
            self._status_bar.history_depth = engine.history_depth
        self._status_bar.connection_status = self.client.status
        self._status_bar.refresh()

    def _sample_summary(self) -> None:
        self._status_bar.summary = self.client.engine.summary
        self._status_bar.refresh()

    def action_reconnect(self) -> None:
        """Manual reconnect (bound to 'r' key)."""
        if self.client.status is ConnectionStatus.DISCONNECTED:
            self.client.reconnect()


async def run_ui(client: BinanceDepthClient) -> None:
    """Run the TUI application."""
    app = DepthApp(client)
    await app.run_async()
