import pytest

from depth_viewer.datafeed.normalizer import normalize_depth
from depth_viewer.engine.scaling import (
    MIN_BAR_HEIGHT,
    MIN_MAX_QUANTITY,
    bar_height,
    max_quantity,
    scale_factor,
)


class TestScaling:
    def test_floor_engaged_for_small_books(self, make_depth):
        snap = normalize_depth(make_depth([(100, 0.4), (99, 1.0)], [(101, 0.7)]))
        assert max_quantity(snap) == MIN_MAX_QUANTITY
        assert scale_factor(snap) == pytest.approx(2.8)

    def test_large_max(self, make_depth):
        snap = normalize_depth(make_depth([(100, 3.0)], [(101, 14.0), (102, 0.5)]))
        assert max_quantity(snap) == 14.0
        assert scale_factor(snap) == pytest.approx(0.5)

    def test_empty_snapshot(self):
        snap = normalize_depth({"bids": [], "asks": []})
        assert max_quantity(snap) == MIN_MAX_QUANTITY
        assert scale_factor(snap) == pytest.approx(2.8)

    def test_bar_height(self):
        assert bar_height(4.0, 0.5) == pytest.approx(2.0)
        assert bar_height(14.0, 0.5) == pytest.approx(7.0)

    def test_bar_height_floor(self):
        assert bar_height(0.0, 0.5) == MIN_BAR_HEIGHT
        assert bar_height(0.001, 2.8) == MIN_BAR_HEIGHT

    def test_no_memory_between_snapshots(self, make_depth):
        big = normalize_depth(make_depth([(100, 70.0)], [(101, 1.0)]))
        small = normalize_depth(make_depth([(100, 1.0)], [(101, 1.0)]))
        assert scale_factor(big) == pytest.approx(0.1)
        assert scale_factor(small) == pytest.approx(2.8)
