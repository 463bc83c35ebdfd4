"""
Depth Viewer - Live order-book depth chart with pressure zones for Binance.

Architecture:
- datafeed/: WebSocket connection and depth normalization
- engine/: Per-update derivations (pressure zones, scaling, ticks, history)
- ui/: Depth chart visualization (Textual TUI)
"""

__version__ = "0.1.0"
