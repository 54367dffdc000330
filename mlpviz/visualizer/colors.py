"""
Diverging Color Mapping
=======================

Maps scalar values to colors across three stops:

    low  -> negative color (cold)
    mid  -> zero color (white)
    high -> positive color (warm)

Interpolation is piecewise linear within each half of the domain, and values
outside [low, high] clamp to the nearest end color. Everything here is a pure
function of its arguments.
"""

import math
from typing import Optional, Tuple

from config import Config

Color = Tuple[int, int, int]
Domain = Tuple[float, float, float]

# Fixed domains: gradients are typically an order of magnitude smaller
WEIGHT_DOMAIN: Domain = (-1.0, 0.0, 1.0)
GRADIENT_DOMAIN: Domain = (-0.1, 0.0, 0.1)


def interpolate_color(color1: Color, color2: Color, t: float) -> Color:
    """Linear blend between two colors; t is clamped to [0, 1]."""
    t = max(0.0, min(1.0, t))
    return (
        int(round(color1[0] + (color2[0] - color1[0]) * t)),
        int(round(color1[1] + (color2[1] - color1[1]) * t)),
        int(round(color1[2] + (color2[2] - color1[2]) * t)),
    )


class ColorMapper:
    """
    Three-stop diverging palette.

    Example:
        >>> mapper = ColorMapper.from_config(Config())
        >>> mapper.map(0.0, WEIGHT_DOMAIN)
        (255, 255, 255)
    """

    def __init__(
        self,
        negative: Color = (0, 116, 217),
        zero: Color = (255, 255, 255),
        positive: Color = (255, 65, 54)
    ):
        self.negative = tuple(negative)
        self.zero = tuple(zero)
        self.positive = tuple(positive)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> 'ColorMapper':
        config = config or Config()
        return cls(config.COLOR_NEGATIVE, config.COLOR_ZERO, config.COLOR_POSITIVE)

    @property
    def stops(self) -> Tuple[Color, Color, Color]:
        return (self.negative, self.zero, self.positive)

    def map(self, value: float, domain: Domain = WEIGHT_DOMAIN) -> Color:
        """
        Color for value within domain (low, mid, high).

        NaN maps to the zero color.
        """
        low, mid, high = domain
        if math.isnan(value):
            return self.zero

        value = max(low, min(high, value))
        if value <= mid:
            span = mid - low
            t = (value - low) / span if span > 0 else 1.0
            return interpolate_color(self.negative, self.zero, t)

        span = high - mid
        t = (value - mid) / span if span > 0 else 1.0
        return interpolate_color(self.zero, self.positive, t)
