import pytest

from depth_viewer.config import Config
from depth_viewer.datafeed.normalizer import normalize_depth
from depth_viewer.engine.pipeline import DepthEngine


def _make_depth(bids, asks, update_id=None):
    update = {
        "bids": [[str(p), str(q)] for p, q in bids],
        "asks": [[str(p), str(q)] for p, q in asks],
    }
    if update_id is not None:
        update["lastUpdateId"] = update_id
    return update


@pytest.fixture
def make_depth():
    """Build a raw depth update from (price, qty) tuples of numbers."""
    return _make_depth


@pytest.fixture
def sample_depth():
    """Raw depth20 partial-book payload as received from Binance."""
    return {
        "lastUpdateId": 160,
        "bids": [["100.5", "1.0"], ["100.4", "2.0"], ["100.3", "0.5"]],
        "asks": [["100.6", "1.5"], ["100.7", "3.0"], ["100.8", "0.2"]],
    }


@pytest.fixture
def sample_snapshot(sample_depth):
    return normalize_depth(sample_depth)


@pytest.fixture
def full_depth():
    """Twenty integer-priced levels per side: bid slot s -> 80 + s, ask slot s -> 80 + s."""
    return _make_depth(
        bids=[(99 - i, 1) for i in range(20)],
        asks=[(100 + i, 1) for i in range(20)],
    )


@pytest.fixture
def config():
    return Config(seed_placeholder=False)


@pytest.fixture
def engine(config):
    return DepthEngine(config)
