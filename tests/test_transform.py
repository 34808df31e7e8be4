"""Tests for the pan/zoom view transform."""

import pytest

from mindcanvas.layout import Rect
from mindcanvas.transform import ViewTransform, MIN_SCALE, MAX_SCALE


class TestConversions:
    """screen = canvas * scale + translation, and back."""

    def test_round_trip(self):
        t = ViewTransform(x=40, y=-10, scale=2.0)
        assert t.to_screen(5, 5) == (50, 0)
        assert t.to_canvas(50, 0) == (5, 5)

    def test_rect_conversion_scales_size(self):
        t = ViewTransform(x=10, y=20, scale=2.0)
        assert t.rect_to_canvas(Rect(30, 60, 200, 100)) == Rect(10, 20, 100, 50)
        assert t.rect_to_screen(Rect(10, 20, 100, 50)) == Rect(30, 60, 200, 100)


class TestPan:
    """Pan moves by raw screen pixels."""

    def test_pan_ignores_scale(self):
        t = ViewTransform(scale=2.5)
        t.pan(30, -12)
        assert (t.x, t.y, t.scale) == (30, -12, 2.5)

    def test_pan_notifies(self):
        t = ViewTransform()
        seen = []
        t.on_changed = seen.append
        t.pan(1, 1)
        t.pan(0, 0)
        assert seen == [t]


class TestZoom:
    """Wheel zoom keeps the cursor anchor fixed and clamps the scale."""

    def test_wheel_up_zooms_in(self):
        t = ViewTransform()
        assert t.zoom_at(0, 0, -120)
        assert t.scale == pytest.approx(1.1)

    def test_wheel_down_zooms_out(self):
        t = ViewTransform()
        assert t.zoom_at(0, 0, 3)
        assert t.scale == pytest.approx(1 / 1.1)

    def test_zero_direction_noop(self):
        t = ViewTransform(x=5, y=5)
        assert not t.zoom_at(100, 100, 0)
        assert t.as_tuple() == (5, 5, 1.0)

    @pytest.mark.parametrize("direction", [-1, 1])
    def test_anchor_fixed(self, direction):
        t = ViewTransform(x=37, y=-80, scale=1.3)
        cursor = (412.0, 255.0)
        before = t.to_canvas(*cursor)
        t.zoom_at(*cursor, direction)
        after = t.to_canvas(*cursor)
        assert after == pytest.approx(before)

    def test_scale_clamped_after_many_ticks(self):
        t = ViewTransform()
        for _ in range(200):
            t.zoom_at(300, 300, -1)
            assert MIN_SCALE <= t.scale <= MAX_SCALE
        assert t.scale == MAX_SCALE
        for _ in range(200):
            t.zoom_at(300, 300, 1e9)
            assert MIN_SCALE <= t.scale <= MAX_SCALE
        assert t.scale == MIN_SCALE

    def test_clamped_zoom_reports_no_change(self):
        t = ViewTransform(scale=MAX_SCALE)
        seen = []
        t.on_changed = seen.append
        assert not t.zoom_at(0, 0, -1)
        assert seen == []

    def test_constructor_clamps(self):
        assert ViewTransform(scale=50).scale == MAX_SCALE
        assert ViewTransform(scale=0).scale == MIN_SCALE

    def test_custom_limits(self):
        t = ViewTransform(min_scale=0.5, max_scale=2.0)
        t.zoom_to(10, 0, 0)
        assert t.scale == 2.0


class TestViewHelpers:
    """Centre and fit."""

    def test_center_on(self):
        t = ViewTransform(scale=2.0)
        t.center_on(100, 50, 800, 600)
        assert t.to_screen(100, 50) == (400, 300)

    def test_fit_never_beyond_100_percent(self):
        t = ViewTransform(scale=0.3)
        t.fit(Rect(0, 0, 100, 100), 1000, 1000)
        assert t.scale == 1.0
        assert t.to_screen(50, 50) == (500, 500)

    def test_fit_shrinks_large_maps(self):
        t = ViewTransform()
        t.fit(Rect(-1000, 0, 2000, 100), 800, 600, padding=0)
        assert t.scale == pytest.approx(0.4)
        assert t.to_screen(0, 50) == pytest.approx((400, 300))

    @pytest.mark.parametrize("viewport", [(0, 0), (0, 600), (800, -1)])
    def test_fit_ignores_empty_viewport(self, viewport):
        t = ViewTransform(x=5, y=6, scale=1.5, min_scale=0.0001)
        t.fit(Rect(0, 0, 100, 100), *viewport)
        assert t.as_tuple() == (5, 6, 1.5)
        assert t.to_canvas(10, 10) == pytest.approx((5 / 1.5, 4 / 1.5))

    def test_fit_line_without_padding(self):
        t = ViewTransform()
        t.fit(Rect(0, 0, 0, 400), 800, 200, padding=0)
        assert t.scale == pytest.approx(0.5)

    def test_reset(self):
        t = ViewTransform(x=4, y=4, scale=2)
        t.reset()
        assert t.as_tuple() == (0.0, 0.0, 1.0)
