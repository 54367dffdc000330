"""
Tests for the diverging color mapper.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mlpviz.visualizer.colors import (
    GRADIENT_DOMAIN,
    WEIGHT_DOMAIN,
    ColorMapper,
    interpolate_color,
)

BLUE = (0, 116, 217)
WHITE = (255, 255, 255)
RED = (255, 65, 54)


@pytest.fixture
def mapper(config):
    return ColorMapper.from_config(config)


class TestColorStops:
    """Test the three anchor colors."""

    def test_exact_stops(self, mapper):
        assert mapper.map(-1.0, WEIGHT_DOMAIN) == BLUE
        assert mapper.map(0.0, WEIGHT_DOMAIN) == WHITE
        assert mapper.map(1.0, WEIGHT_DOMAIN) == RED

    def test_gradient_domain_stops(self, mapper):
        assert mapper.map(-0.1, GRADIENT_DOMAIN) == BLUE
        assert mapper.map(0.0, GRADIENT_DOMAIN) == WHITE
        assert mapper.map(0.1, GRADIENT_DOMAIN) == RED

    def test_stops_property(self, mapper):
        assert mapper.stops == (BLUE, WHITE, RED)


class TestColorInterpolation:
    """Test values between and beyond the stops."""

    def test_out_of_domain_clamps(self, mapper):
        assert mapper.map(-7.5, WEIGHT_DOMAIN) == BLUE
        assert mapper.map(42.0, WEIGHT_DOMAIN) == RED
        assert mapper.map(0.5, GRADIENT_DOMAIN) == RED

    def test_midpoint_of_positive_half(self, mapper):
        assert mapper.map(0.5, WEIGHT_DOMAIN) == interpolate_color(WHITE, RED, 0.5)

    def test_midpoint_of_negative_half(self, mapper):
        assert mapper.map(-0.05, GRADIENT_DOMAIN) == interpolate_color(BLUE, WHITE, 0.5)

    def test_nan_maps_to_zero_color(self, mapper):
        assert mapper.map(float('nan')) == WHITE

    def test_green_channel_monotonic_on_positive_half(self, mapper):
        greens = [mapper.map(v / 10, WEIGHT_DOMAIN)[1] for v in range(11)]
        assert greens == sorted(greens, reverse=True)

    def test_red_channel_monotonic_across_domain(self, mapper):
        reds = [mapper.map(v / 10, WEIGHT_DOMAIN)[0] for v in range(-10, 11)]
        assert reds == sorted(reds)

    def test_pure_function(self, mapper):
        assert mapper.map(0.3) == mapper.map(0.3)
        assert ColorMapper().map(0.3) == mapper.map(0.3)


class TestInterpolateColor:
    """Test the two-color blend."""

    def test_endpoints(self):
        assert interpolate_color(BLUE, RED, 0.0) == BLUE
        assert interpolate_color(BLUE, RED, 1.0) == RED

    def test_t_is_clamped(self):
        assert interpolate_color(BLUE, RED, -1.0) == BLUE
        assert interpolate_color(BLUE, RED, 2.0) == RED

    def test_integer_channels(self):
        color = interpolate_color((0, 0, 0), (255, 255, 255), 0.33)
        assert all(isinstance(channel, int) for channel in color)
