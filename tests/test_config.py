import json

import pytest

from depth_viewer.config import Config, FeedConfig, load_config
from depth_viewer.engine.pressure import SIGMA_RULE, SIGMA_TOP15_RULE
from depth_viewer.exceptions import ConfigError
from depth_viewer.main import cli
from depth_viewer.types import DEPTH, HISTORY_CAPACITY


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config.depth == DEPTH
        assert config.history_capacity == HISTORY_CAPACITY
        assert config.pressure_method == SIGMA_TOP15_RULE
        assert config.reset_history_on_reconnect is True
        assert config.feed.auto_reconnect is False
        assert config.feed.url == "wss://stream.binance.com:9443/ws/btcusdt@depth20@100ms"

    def test_load_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "symbol": "ETHUSDT",
            "history_capacity": 60,
            "pressure_method": SIGMA_RULE,
            "feed": {"auto_reconnect": True, "reconnect_max_attempts": 3},
        }))
        config = load_config(path)
        assert config.feed.symbol == "ETHUSDT"
        assert config.feed.url.endswith("/ethusdt@depth20@100ms")
        assert config.feed.auto_reconnect is True
        assert config.feed.reconnect_max_attempts == 3
        assert config.history_capacity == 60
        assert config.pressure_method == SIGMA_RULE

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"symbol": "ethusdt", "depth": 10}))
        config = load_config(path, symbol="solusdt", depth=None, log_level="DEBUG")
        assert config.feed.symbol == "solusdt"
        assert config.depth == 10
        assert config.log_level == "DEBUG"

    def test_unknown_pressure_method(self):
        with pytest.raises(ConfigError):
            Config(pressure_method="median")

    @pytest.mark.parametrize("field", ["depth", "history_capacity"])
    def test_non_positive_sizes(self, field):
        with pytest.raises(ConfigError):
            Config(**{field: 0})

    def test_bad_queue_size(self):
        with pytest.raises(ConfigError):
            Config(feed=FeedConfig(queue_size=0))

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{nope")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_frozen(self):
        config = Config()
        with pytest.raises(AttributeError):
            config.depth = 5

    @pytest.mark.parametrize("raw", [
        {"depth": "20"},
        {"depth": 20.0},
        {"history_capacity": True},
        {"seed_placeholder": "yes"},
        {"pressure_method": ["mean+1.2*std"]},
        {"symbol": 5},
        {"auto_reconnect": 1},
        {"feed": {"queue_size": "5"}},
        {"feed": {"reconnect_max_attempts": -1}},
        {"feed": {"reconnect_base_delay_s": -1}},
        {"feed": {"reconnect_base_delay_s": "0.5"}},
        {"feed": {"reconnect_base_delay_s": 2.0, "reconnect_max_delay_s": 1.0}},
        {"feed": "wss://example"},
    ])
    def test_invalid_values_raise_config_error(self, tmp_path, raw):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(raw))
        with pytest.raises(ConfigError):
            load_config(path)

    def test_integer_delays_accepted(self):
        feed = FeedConfig(reconnect_base_delay_s=1, reconnect_max_delay_s=4)
        assert (feed.reconnect_base_delay_s, feed.reconnect_max_delay_s) == (1, 4)

    def test_zero_attempts_allowed(self):
        assert FeedConfig(reconnect_max_attempts=0).reconnect_max_attempts == 0


class TestCli:
    def test_wrongly_typed_file_exits_with_config_error(self, tmp_path, capsys):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"depth": "20"}))
        with pytest.raises(SystemExit) as exc:
            cli(["--config", str(path)])
        assert exc.value.code == 2
        assert "depth must be an integer" in capsys.readouterr().err
