from __future__ import annotations

import math

import pytest

from caseboard.models import ColorDomain
from caseboard.scales import GRADIENTS, color_for, hex_to_rgb, interpolate_rgb, make_color_scale, radius


class TestRadius:
    def test_floor(self):
        assert radius(0) == 4
        assert radius(-5) == 4
        assert radius(None) == 4
        assert radius(math.nan) == 4
        assert radius(1) == 4

    def test_log_compression(self):
        assert radius(999) == pytest.approx(3 * 3.5)
        assert radius(10**6 - 1) == pytest.approx(6 * 3.5)

    def test_monotonic(self):
        values = [0, 0.5, 1, 2, 10, 11, 100, 1_000, 54_321, 10**7, 10**9]
        radii = [radius(v) for v in values]
        assert radii == sorted(radii)

    def test_stateless(self):
        assert [radius(12345) for _ in range(3)] == [radius(12345)] * 3


class TestColor:
    domain = ColorDomain(min=0, max=100)

    @pytest.mark.parametrize("metric", sorted(GRADIENTS))
    def test_endpoints(self, metric):
        start, end = GRADIENTS[metric]
        assert color_for(0, self.domain, GRADIENTS[metric]) == start.lower()
        assert color_for(100, self.domain, GRADIENTS[metric]) == end.lower()

    def test_out_of_domain_clamps(self):
        gradient = GRADIENTS["death"]
        assert color_for(-10, self.domain, gradient) == gradient[0]
        assert color_for(1_000, self.domain, gradient) == gradient[1]

    def test_midpoint_is_linear_rgb(self):
        assert interpolate_rgb("#000000", "#ffffff", 0.5) == "#808080"
        assert color_for(50, self.domain, ("#000000", "#c8c8c8")) == "#646464"

    def test_degenerate_domain_uses_start(self):
        assert color_for(5, ColorDomain(min=5, max=5), ("#000000", "#ffffff")) == "#000000"

    def test_nan_has_no_color(self):
        assert color_for(math.nan, self.domain, GRADIENTS["active"]) is None

    def test_scale_factory(self):
        scale = make_color_scale(ColorDomain(min=0, max=10), "recovered")
        assert scale(10) == "#31a354"
        assert scale(10) == scale(10)

    def test_hex_parsing(self):
        assert hex_to_rgb("#fff") == (255, 255, 255)
        with pytest.raises(ValueError):
            hex_to_rgb("#12")
