"""Tests for great-circle distance."""

import pytest

from app.utils.geo import EARTH_RADIUS_METERS, haversine_meters


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_meters(-6.2, 106.8, -6.2, 106.8) == 0

    def test_one_degree_latitude(self):
        # pi * R / 180
        assert haversine_meters(0, 0, 1, 0) == pytest.approx(111_194.9, abs=1)

    def test_symmetric(self):
        a = haversine_meters(-6.175392, 106.827153, -6.2, 106.85)
        b = haversine_meters(-6.2, 106.85, -6.175392, 106.827153)
        assert a == pytest.approx(b)

    def test_short_distance(self):
        # 0.0002 degrees of latitude is roughly 22 m
        assert haversine_meters(-6.175392, 106.827153, -6.175192, 106.827153) == pytest.approx(22.24, abs=0.1)

    def test_antipodes(self):
        assert haversine_meters(0, 0, 0, 180) == pytest.approx(3.141592653589793 * EARTH_RADIUS_METERS)
