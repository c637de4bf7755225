"""
Scale functions
===============

Pure mappings from a magnitude to a marker radius and to a color on a
two-stop gradient. No state is kept between calls.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Optional, Tuple

from caseboard.metrics import normalize_metric
from caseboard.models import ColorDomain


MIN_RADIUS = 4.0
RADIUS_FACTOR = 3.5

Gradient = Tuple[str, str]

GRADIENTS: Dict[str, Gradient] = {
    "active": ("#e0f7fa", "#006064"),
    "confirmed": ("#e0f2fe", "#1e40af"),
    "death": ("#fee5d9", "#67000d"),
    "recovered": ("#e0f3db", "#31a354"),
}


def radius(value: Optional[float]) -> float:
    """Log-compressed marker radius with a floor of 4."""
    if value is None or math.isnan(value) or value <= 0:
        return MIN_RADIUS
    return max(MIN_RADIUS, math.log10(value + 1) * RADIUS_FACTOR)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    s = color.strip().lstrip("#")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        raise ValueError(f"expected #rgb or #rrggbb color, got {color!r}")
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


def rgb_to_hex(rgb: Tuple[float, float, float]) -> str:
    channels = [max(0, min(255, int(round(c)))) for c in rgb]
    return "#{:02x}{:02x}{:02x}".format(*channels)


def interpolate_rgb(start: str, end: str, t: float) -> str:
    a = hex_to_rgb(start)
    b = hex_to_rgb(end)
    t = min(1.0, max(0.0, t))
    return rgb_to_hex(tuple(x + (y - x) * t for x, y in zip(a, b)))


def domain_position(value: float, domain: ColorDomain) -> float:
    """Position of `value` in the domain, clamped to [0, 1]; 0 for a degenerate domain."""
    span = domain.max - domain.min
    if span == 0:
        return 0.0
    return min(1.0, max(0.0, (value - domain.min) / span))


def color_for(value: Optional[float], domain: ColorDomain, gradient: Gradient) -> Optional[str]:
    if value is None or math.isnan(value):
        return None
    return interpolate_rgb(gradient[0], gradient[1], domain_position(value, domain))


def make_color_scale(domain: ColorDomain, metric: str) -> Callable[[Optional[float]], Optional[str]]:
    gradient = GRADIENTS[normalize_metric(metric)]

    def scale(value: Optional[float]) -> Optional[str]:
        return color_for(value, domain, gradient)

    return scale
