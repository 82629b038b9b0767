"""
Tests for geographic utilities
"""

import math
import pytest

from autopilot.utils.geo import (
    Coordinate,
    bearing_between,
    cross_track_distance,
    distance_between,
    from_local,
    headings_match,
    to_local,
    wrap_angle_180,
    wrap_angle_360,
)


class TestDistanceAndBearing:

    def test_distance_same_point(self, origin):
        assert distance_between(origin, origin) == 0.0

    def test_distance_north(self, offset, origin):
        assert distance_between(origin, offset(100, 0)) == pytest.approx(100.0, rel=1e-3)

    def test_distance_east(self, offset, origin):
        assert distance_between(origin, offset(0, 100)) == pytest.approx(100.0, rel=1e-3)

    @pytest.mark.parametrize("north,east,expected", [
        (100, 0, 0.0),
        (0, 100, 90.0),
        (-100, 0, 180.0),
        (0, -100, 270.0),
        (100, 100, 45.0),
    ])
    def test_bearing(self, offset, origin, north, east, expected):
        bearing = bearing_between(origin, offset(north, east))
        assert abs(wrap_angle_180(bearing - expected)) < 0.1

    def test_bearing_range(self, offset, origin):
        bearing = bearing_between(origin, offset(-10, -1))
        assert 0 <= bearing < 360


class TestLocalProjection:

    def test_round_trip(self, origin):
        point = from_local(25.0, -40.0, origin)
        east, north = to_local(point, origin)
        assert east == pytest.approx(25.0, abs=1e-6)
        assert north == pytest.approx(-40.0, abs=1e-6)

    def test_origin_is_zero(self, origin):
        assert to_local(origin, origin) == (0.0, 0.0)


class TestCrossTrack:

    def test_on_line(self, offset):
        start, end = offset(0, 0), offset(100, 0)
        assert cross_track_distance(offset(50, 0), start, end) == pytest.approx(0.0, abs=1e-6)

    def test_left_is_positive(self, offset):
        start, end = offset(0, 0), offset(100, 0)
        assert cross_track_distance(offset(50, -3), start, end) == pytest.approx(3.0, abs=1e-3)

    def test_right_is_negative(self, offset):
        start, end = offset(0, 0), offset(100, 0)
        assert cross_track_distance(offset(50, 3), start, end) == pytest.approx(-3.0, abs=1e-3)

    def test_degenerate_line(self, offset):
        assert cross_track_distance(offset(5, 5), offset(0, 0), offset(0, 0)) == 0.0


class TestAngles:

    @pytest.mark.parametrize("angle,expected", [
        (0, 0), (190, -170), (-190, 170), (540, 180), (180, 180),
    ])
    def test_wrap_180(self, angle, expected):
        assert wrap_angle_180(angle) == expected

    @pytest.mark.parametrize("angle,expected", [
        (0, 0), (360, 0), (-10, 350), (725, 5),
    ])
    def test_wrap_360(self, angle, expected):
        assert wrap_angle_360(angle) == expected

    def test_headings_match_within_tolerance(self):
        assert headings_match(90.0, 90.5)
        assert not headings_match(90.0, 91.5)

    def test_headings_match_across_seam(self):
        assert headings_match(359.6, 0.2)
        assert headings_match(-0.3, 0.3)
        assert headings_match(-179.8, 179.9)

    def test_headings_match_custom_tolerance(self):
        assert headings_match(10, 14, tolerance=5)
        assert not headings_match(10, 16, tolerance=5)


class TestCoordinate:

    def test_valid(self):
        assert Coordinate(48.0, 2.0).is_valid

    def test_invalid(self):
        assert not Coordinate(91.0, 2.0).is_valid
        assert not Coordinate(0.0, 181.0).is_valid
        assert not Coordinate(math.nan, 0.0).is_valid
