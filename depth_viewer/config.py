import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .engine.pressure import PRESSURE_METHODS, SIGMA_TOP15_RULE
from .exceptions import ConfigError
from .types import DEPTH, HISTORY_CAPACITY


def _check_int(name: str, value, minimum: int) -> None:
    # bool is an int subclass; JSON true must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")


def _check_number(name: str, value, minimum: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if not value >= minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")


def _check_type(name: str, value, kind: type) -> None:
    if not isinstance(value, kind):
        raise ConfigError(f"{name} must be {kind.__name__}, got {value!r}")


@dataclass(frozen=True)
class FeedConfig:
    symbol: str = "btcusdt"
    ws_base: str = "wss://stream.binance.com:9443/ws"
    stream: str = "depth20@100ms"
    queue_size: int = 5
    auto_reconnect: bool = False  # Source behaviour: reconnect is a manual action
    reconnect_max_attempts: int = 5
    reconnect_base_delay_s: float = 0.5
    reconnect_max_delay_s: float = 8.0

    def __post_init__(self) -> None:
        for name in ("symbol", "ws_base", "stream"):
            _check_type(name, getattr(self, name), str)
        if not self.symbol:
            raise ConfigError("symbol must not be empty")
        _check_int("queue_size", self.queue_size, 1)
        _check_type("auto_reconnect", self.auto_reconnect, bool)
        _check_int("reconnect_max_attempts", self.reconnect_max_attempts, 0)
        _check_number("reconnect_base_delay_s", self.reconnect_base_delay_s, 0.0)
        _check_number("reconnect_max_delay_s", self.reconnect_max_delay_s, self.reconnect_base_delay_s)

    @property
    def url(self) -> str:
        return f"{self.ws_base}/{self.symbol.lower()}@{self.stream}"


@dataclass(frozen=True)
class Config:
    feed: FeedConfig = field(default_factory=FeedConfig)
    depth: int = DEPTH
    history_capacity: int = HISTORY_CAPACITY
    pressure_method: str = SIGMA_TOP15_RULE
    reset_history_on_reconnect: bool = True
    seed_placeholder: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        _check_type("feed", self.feed, FeedConfig)
        _check_int("depth", self.depth, 1)
        _check_int("history_capacity", self.history_capacity, 1)
        if not isinstance(self.pressure_method, str) or self.pressure_method not in PRESSURE_METHODS:
            raise ConfigError(
                f"unknown pressure_method {self.pressure_method!r}, "
                f"expected one of {sorted(PRESSURE_METHODS)}"
            )
        _check_type("reset_history_on_reconnect", self.reset_history_on_reconnect, bool)
        _check_type("seed_placeholder", self.seed_placeholder, bool)
        _check_type("log_level", self.log_level, str)


def load_config(path: Optional[Path] = None, **overrides) -> Config:
    """Load an optional JSON config file and return a validated Config.

    All fields are optional; missing ones take the defaults above.
    Feed fields: symbol, ws_base, stream, queue_size, auto_reconnect,
                 reconnect_max_attempts, reconnect_base_delay_s, reconnect_max_delay_s
    Top-level fields: depth, history_capacity, pressure_method,
                      reset_history_on_reconnect, seed_placeholder, log_level

    Keyword overrides (e.g. from the CLI) win over the file; None means "not set".
    Wrongly typed or out-of-range values raise ConfigError.
    """
    raw: dict = {}
    if path is not None:
        try:
            raw = json.loads(Path(path).read_text())
        except (OSError, ValueError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"config {path} must contain a JSON object")

    raw.update({k: v for k, v in overrides.items() if v is not None})

    defaults = FeedConfig()
    feed_raw = raw.get("feed", {})
    if not isinstance(feed_raw, dict):
        raise ConfigError(f"feed must be a JSON object, got {feed_raw!r}")
    feed = FeedConfig(
        symbol=raw.get("symbol", feed_raw.get("symbol", defaults.symbol)),
        ws_base=feed_raw.get("ws_base", defaults.ws_base),
        stream=feed_raw.get("stream", defaults.stream),
        queue_size=feed_raw.get("queue_size", defaults.queue_size),
        auto_reconnect=raw.get("auto_reconnect", feed_raw.get("auto_reconnect", defaults.auto_reconnect)),
        reconnect_max_attempts=feed_raw.get("reconnect_max_attempts", defaults.reconnect_max_attempts),
        reconnect_base_delay_s=feed_raw.get("reconnect_base_delay_s", defaults.reconnect_base_delay_s),
        reconnect_max_delay_s=feed_raw.get("reconnect_max_delay_s", defaults.reconnect_max_delay_s),
    )

    return Config(
        feed=feed,
        depth=raw.get("depth", DEPTH),
        history_capacity=raw.get("history_capacity", HISTORY_CAPACITY),
        pressure_method=raw.get("pressure_method", SIGMA_TOP15_RULE),
        reset_history_on_reconnect=raw.get("reset_history_on_reconnect", True),
        seed_placeholder=raw.get("seed_placeholder", True),
        log_level=raw.get("log_level", "INFO"),
    )
