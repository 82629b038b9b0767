"""
Geographic utilities

Coordinates, local plane projection, distances, bearings and
angle helpers used by the navigation engine.
"""

import math
from typing import NamedTuple, Tuple

# WGS84 equatorial radius
EARTH_RADIUS_M = 6378137.0


class Coordinate(NamedTuple):
    """Latitude/longitude pair in degrees"""
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return (-90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0
                and not (math.isnan(self.latitude) or math.isnan(self.longitude)))


def to_local(point: Coordinate, origin: Coordinate) -> Tuple[float, float]:
    """
    Project a coordinate onto the local tangent plane at origin

    Uses flat Earth approximation, accurate for distances < 10km

    Returns:
        Tuple of (east, north) in meters
    """
    d_lat = math.radians(point.latitude - origin.latitude)
    d_lon = math.radians(point.longitude - origin.longitude)

    north = d_lat * EARTH_RADIUS_M
    east = d_lon * EARTH_RADIUS_M * math.cos(math.radians(origin.latitude))

    return east, north


def from_local(east: float, north: float, origin: Coordinate) -> Coordinate:
    """Inverse of to_local"""
    d_lat_rad = north / EARTH_RADIUS_M
    d_lon_rad = east / (EARTH_RADIUS_M * math.cos(math.radians(origin.latitude)))

    return Coordinate(origin.latitude + math.degrees(d_lat_rad),
                      origin.longitude + math.degrees(d_lon_rad))


def distance_between(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points (haversine)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (math.sin(d_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def bearing_between(a: Coordinate, b: Coordinate) -> float:
    """
    Initial bearing from a to b

    Returns:
        Bearing in degrees (0-360, 0=North)
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    x = math.sin(d_lon) * math.cos(lat2_rad)
    y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(d_lon))

    return (math.degrees(math.atan2(x, y)) + 360) % 360


def cross_track_distance(position: Coordinate, start: Coordinate, end: Coordinate) -> float:
    """
    Signed perpendicular distance from position to the line start -> end

    Positive when position is left of the line (seen travelling start -> end),
    so a positive value calls for a correction to the right.
    """
    end_e, end_n = to_local(end, start)
    pos_e, pos_n = to_local(position, start)
    length = math.hypot(end_e, end_n)
    if length < 1e-6:
        return 0.0
    return (end_e * pos_n - end_n * pos_e) / length


def wrap_angle_180(angle: float) -> float:
    """Wrap angle to -180 to 180 degrees"""
    while angle > 180:
        angle -= 360
    while angle < -180:
        angle += 360
    return angle


def wrap_angle_360(angle: float) -> float:
    """Wrap angle to 0 to 360 degrees"""
    while angle >= 360:
        angle -= 360
    while angle < 0:
        angle += 360
    return angle


def headings_match(a: float, b: float, tolerance: float = 1.0) -> bool:
    """True when two headings are within tolerance, across the 0/360 seam"""
    delta = abs(wrap_angle_360(a) - wrap_angle_360(b))
    return delta < tolerance or delta > 360 - tolerance
