"""
Latitude/longitude rectangles.

A LatLngRect is the input region of the covering engine: a closed latitude
interval and a longitude interval on the circle. When lng_lo > lng_hi the
longitude interval wraps across the antimeridian.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Tuple
import math
import random

from .intervals import Interval, LngInterval
from .projection import (
    Point,
    clamp_lat_lng,
    lat_lng_to_point,
    point_latitude,
    point_longitude,
)

if TYPE_CHECKING:
    from .cell import Cell


@dataclass(frozen=True)
class LatLngRect:
    """
    An immutable lat/lng rectangle, stored in radians.

    Invariants are checked at construction time: latitudes lie within
    [-pi/2, pi/2], the longitude interval is valid, and either both
    intervals are empty or neither is.
    """
    lat: Interval
    lng: LngInterval

    def __post_init__(self):
        lat, lng = self.lat, self.lng
        if not (math.isfinite(lat.lo) and math.isfinite(lat.hi)):
            raise ValueError(f"Latitude bounds must be finite: {lat}")
        if not lat.is_empty() and (abs(lat.lo) > math.pi / 2 or abs(lat.hi) > math.pi / 2):
            raise ValueError(
                f"Latitude out of range: [{math.degrees(lat.lo)}, {math.degrees(lat.hi)}]"
            )
        if not lng.is_valid():
            raise ValueError(f"Invalid longitude interval: {lng}")
        if lat.is_empty() != lng.is_empty():
            raise ValueError(
                f"Latitude and longitude must both be empty or both non-empty: {lat}, {lng}"
            )

    @classmethod
    def from_degrees(
        cls, lat_lo: float, lng_lo: float, lat_hi: float, lng_hi: float
    ) -> LatLngRect:
        """
        Build a rectangle from corner coordinates in degrees.

        Args:
            lat_lo: Southern latitude in [-90, 90]
            lng_lo: Western longitude
            lat_hi: Northern latitude in [-90, 90], >= lat_lo
            lng_hi: Eastern longitude; less than lng_lo means the rectangle
                crosses the antimeridian

        Raises:
            ValueError: If a latitude is out of range, lat_lo > lat_hi, or
                any value is not finite
        """
        values = (lat_lo, lng_lo, lat_hi, lng_hi)
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"Coordinates must be finite: {values}")
        if not (-90.0 <= lat_lo <= 90.0 and -90.0 <= lat_hi <= 90.0):
            raise ValueError(f"Latitude out of range: lat_lo={lat_lo}, lat_hi={lat_hi}")
        if lat_lo > lat_hi:
            raise ValueError(f"Invalid latitude ordering: lat_lo={lat_lo} > lat_hi={lat_hi}")

        _, lng_lo = clamp_lat_lng(lat_lo, lng_lo)
        _, lng_hi = clamp_lat_lng(lat_hi, lng_hi)
        return cls(
            Interval(_to_radians(lat_lo, 90.0), _to_radians(lat_hi, 90.0)),
            LngInterval(_to_radians(lng_lo, 180.0), _to_radians(lng_hi, 180.0)),
        )

    @classmethod
    def from_point(cls, lat: float, lng: float) -> LatLngRect:
        """A degenerate rectangle containing a single point."""
        return cls.from_degrees(lat, lng, lat, lng)

    @classmethod
    def empty(cls) -> LatLngRect:
        return cls(Interval.empty(), LngInterval.empty())

    @classmethod
    def full(cls) -> LatLngRect:
        return cls(cls.full_lat(), LngInterval.full())

    @staticmethod
    def full_lat() -> Interval:
        return Interval(-math.pi / 2, math.pi / 2)

    @property
    def lat_lo(self) -> float:
        """Southern latitude in degrees."""
        return math.degrees(self.lat.lo)

    @property
    def lat_hi(self) -> float:
        """Northern latitude in degrees."""
        return math.degrees(self.lat.hi)

    @property
    def lng_lo(self) -> float:
        """Western longitude in degrees."""
        return math.degrees(self.lng.lo)

    @property
    def lng_hi(self) -> float:
        """Eastern longitude in degrees."""
        return math.degrees(self.lng.hi)

    def is_empty(self) -> bool:
        return self.lat.is_empty()

    def is_full(self) -> bool:
        return self.lat == self.full_lat() and self.lng.is_full()

    def crosses_antimeridian(self) -> bool:
        return self.lng.is_inverted() and not self.is_empty()

    def center(self) -> Tuple[float, float]:
        """Center as (lat, lng) degrees."""
        lat = 0.5 * (self.lat.lo + self.lat.hi)
        lng = math.remainder(self.lng.lo + 0.5 * self.lng.length, 2 * math.pi)
        return math.degrees(lat), math.degrees(lng)

    def contains_point(self, lat: float, lng: float) -> bool:
        """Check if a point (degrees) is inside the rectangle."""
        return self.lat.contains_point(math.radians(lat)) and self.lng.contains_point(
            math.radians(lng)
        )

    def contains(self, other: LatLngRect) -> bool:
        return self.lat.contains(other.lat) and self.lng.contains(other.lng)

    def intersects(self, other: LatLngRect) -> bool:
        return self.lat.intersects(other.lat) and self.lng.intersects(other.lng)

    def contains_cell(self, cell: Cell) -> bool:
        """
        Conservative containment test: true only if the whole cell is inside.

        Compares against the cell's lat/lng bound, which contains the cell.
        """
        return self.contains(cell.rect_bound())

    def may_intersect(self, cell: Cell) -> bool:
        """
        Exact intersection test between the rectangle and a cell.

        Once the cases where one region contains a point of the other are
        ruled out, the two intersect only if their boundaries cross. The
        cell's lat/lng bound serves as a quick reject.
        """
        if self.is_empty():
            return False
        if not self.intersects(cell.rect_bound()):
            return False
        if self._contains_unit_point(cell.cell_id.to_point()):
            return True
        if cell.contains_point(lat_lng_to_point(*self.center())):
            return True

        # The edge tests below only catch crossings in the edge interiors,
        # so vertices of either region inside the other are checked first.
        vertices = [_normalized(cell.vertex(k)) for k in range(4)]
        for v in vertices:
            if self._contains_unit_point(v):
                return True
        for lat in (self.lat.lo, self.lat.hi):
            for lng in (self.lng.lo, self.lng.hi):
                if cell.contains_point(_point(lat, lng)):
                    return True

        for k in range(4):
            a = vertices[k]
            b = vertices[(k + 1) & 3]
            edge_lng = LngInterval.from_point_pair(point_longitude(a), point_longitude(b))
            if not self.lng.intersects(edge_lng):
                continue
            for lng in (self.lng.lo, self.lng.hi):
                if edge_lng.contains_point(lng) and _crosses_lng_edge(a, b, self.lat, lng):
                    return True
            if _crosses_lat_edge(a, b, self.lat.lo, self.lng):
                return True
            if _crosses_lat_edge(a, b, self.lat.hi, self.lng):
                return True
        return False

    def _contains_unit_point(self, p: Point) -> bool:
        return self.lat.contains_point(point_latitude(p)) and self.lng.contains_point(
            point_longitude(p)
        )

    def sample_points(self, count: int, seed: int) -> List[Tuple[float, float]]:
        """
        Generate deterministic sample points inside the rectangle.

        Corners, the center and points at 1/3 and 2/3 along each axis come
        first, followed by seeded random points.

        Args:
            count: Number of sample points to generate
            seed: Random seed for deterministic sampling

        Returns:
            List of (lat, lng) tuples in degrees
        """
        if self.is_empty() or count <= 0:
            return []

        rng = random.Random(seed)
        lat_lo, lat_hi = self.lat.lo, self.lat.hi
        lng_lo, lng_len = self.lng.lo, self.lng.length

        def at(fy: float, fx: float) -> Tuple[float, float]:
            lat = lat_hi if fy == 1 else lat_lo + fy * (lat_hi - lat_lo)
            if fx == 1:
                lng = self.lng.hi
            else:
                lng = math.remainder(lng_lo + fx * lng_len, 2 * math.pi)
            return math.degrees(lat), math.degrees(lng)

        points = [at(0, 0), at(0, 1), at(1, 0), at(1, 1), at(0.5, 0.5)]
        for f in (1 / 3, 2 / 3):
            points.append(at(0.5, f))
            points.append(at(f, 0.5))

        while len(points) < count:
            points.append(at(rng.random(), rng.random()))

        # Remove duplicates while preserving order
        seen = set()
        unique_points = []
        for p in points:
            if p not in seen:
                seen.add(p)
                unique_points.append(p)

        return unique_points[:count]


def _to_radians(degrees: float, limit: float) -> float:
    """Convert degrees to radians, mapping +/-limit exactly onto the radian bound."""
    bound = math.radians(limit)
    if limit == 180.0:
        bound = math.pi
    elif limit == 90.0:
        bound = math.pi / 2
    if degrees >= limit:
        return bound
    if degrees <= -limit:
        return -bound
    return max(-bound, min(bound, math.radians(degrees)))


def _point(lat: float, lng: float) -> Point:
    """Unit vector for a latitude and longitude in radians."""
    cos_lat = math.cos(lat)
    return (cos_lat * math.cos(lng), cos_lat * math.sin(lng), math.sin(lat))


def _dot(a: Point, b: Point) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _cross(a: Point, b: Point) -> Point:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _robust_cross(a: Point, b: Point) -> Point:
    # (b + a) x (b - a) is 2 (a x b) but loses less precision when a and b
    # are nearly parallel.
    return _cross(
        (b[0] + a[0], b[1] + a[1], b[2] + a[2]),
        (b[0] - a[0], b[1] - a[1], b[2] - a[2]),
    )


def _normalized(p: Point) -> Point:
    norm = math.sqrt(_dot(p, p))
    if norm == 0:
        return p
    return (p[0] / norm, p[1] / norm, p[2] / norm)


def _simple_crossing(a: Point, b: Point, c: Point, d: Point) -> bool:
    """True if edges AB and CD cross at a point interior to both."""
    ab = _cross(a, b)
    acb = -_dot(ab, c)
    bda = _dot(ab, d)
    if acb * bda <= 0:
        return False
    cd = _cross(c, d)
    cbd = -_dot(cd, b)
    dac = _dot(cd, a)
    return acb * cbd > 0 and acb * dac > 0


def _crosses_lng_edge(a: Point, b: Point, lat: Interval, lng: float) -> bool:
    """Check if edge AB crosses the meridian segment at lng spanning lat."""
    return _simple_crossing(a, b, _point(lat.lo, lng), _point(lat.hi, lng))


def _crosses_lat_edge(a: Point, b: Point, lat: float, lng: LngInterval) -> bool:
    """
    Check if edge AB crosses the parallel at lat within lng.

    A parallel is not a great circle, so it can meet AB at zero, one or
    two points. The great circle through AB is written in a frame (x, y, z)
    where z is its normal pointing north and x is where it peaks in
    latitude; the candidate points then sit at +/-theta from x.
    """
    z = _normalized(_robust_cross(a, b))
    if z[2] < 0:
        z = (-z[0], -z[1], -z[2])
    y = _robust_cross(z, (0.0, 0.0, 1.0))
    if y == (0.0, 0.0, 0.0):
        # AB lies on the equator and never leaves latitude 0.
        return False
    y = _normalized(y)
    x = _cross(y, z)

    sin_lat = math.sin(lat)
    if abs(sin_lat) >= x[2]:
        return False
    cos_theta = sin_lat / x[2]
    sin_theta = math.sqrt(1 - cos_theta * cos_theta)
    theta = math.atan2(sin_theta, cos_theta)

    ab_theta = LngInterval.from_point_pair(
        math.atan2(_dot(a, y), _dot(a, x)), math.atan2(_dot(b, y), _dot(b, x))
    )
    for sign in (1, -1):
        if ab_theta.contains_point(sign * theta):
            isect = tuple(x[n] * cos_theta + sign * y[n] * sin_theta for n in range(3))
            if lng.contains_point(math.atan2(isect[1], isect[0])):
                return True
    return False
