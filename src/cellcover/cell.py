"""
Geometric view of a cell.

A Cell decodes a CellId once and keeps its face, level and (u, v) bounds,
which is what the covering search needs to compare the cell against a
region.
"""

from __future__ import annotations
from typing import List, Tuple
import math
import sys

from .cellid import CellId, size_ij
from .intervals import Interval, LngInterval
from .projection import (
    Point,
    face_uv_to_xyz,
    ij_to_st_min,
    point_latitude,
    point_longitude,
    st_to_uv,
    u_axis_z,
    v_axis_z,
    valid_face_xyz_to_uv,
)
from .rect import LatLngRect

# Padding applied to computed latitude/longitude bounds to absorb rounding.
MAX_ERROR = 2 * sys.float_info.epsilon

# Latitude of the vertices of the polar faces, which bound their extent.
POLE_MIN_LAT = math.asin(math.sqrt(1.0 / 3.0)) - MAX_ERROR

_QUARTER_PI = math.pi / 4

# Level 0 cells have closed form bounds. The four equatorial faces reach
# +/-45 degrees latitude at the midpoints of their top and bottom edges.
_FACE_BOUNDS = (
    (Interval(-_QUARTER_PI, _QUARTER_PI), LngInterval(-_QUARTER_PI, _QUARTER_PI)),
    (Interval(-_QUARTER_PI, _QUARTER_PI), LngInterval(_QUARTER_PI, 3 * _QUARTER_PI)),
    (Interval(POLE_MIN_LAT, math.pi / 2), LngInterval.full()),
    (Interval(-_QUARTER_PI, _QUARTER_PI), LngInterval(3 * _QUARTER_PI, -3 * _QUARTER_PI)),
    (Interval(-_QUARTER_PI, _QUARTER_PI), LngInterval(-3 * _QUARTER_PI, -_QUARTER_PI)),
    (Interval(-math.pi / 2, -POLE_MIN_LAT), LngInterval.full()),
)


class Cell:
    """A cell with its decoded face coordinates and (u, v) bounds."""

    __slots__ = ("cell_id", "face", "level", "uv")

    def __init__(self, cell_id: CellId):
        face, i, j, _ = cell_id.to_face_ij_orientation()
        level = cell_id.level
        size = size_ij(level)

        self.cell_id = cell_id
        self.face = face
        self.level = level
        # uv[0] is the u range, uv[1] the v range.
        self.uv: Tuple[Tuple[float, float], Tuple[float, float]] = (
            _uv_range(i, size),
            _uv_range(j, size),
        )

    @classmethod
    def from_face(cls, face: int) -> Cell:
        return cls(CellId.from_face(face))

    def __repr__(self) -> str:
        return f"Cell({self.cell_id.to_token()}, face={self.face}, level={self.level})"

    def is_leaf(self) -> bool:
        return self.cell_id.is_leaf()

    def subdivide(self) -> List[Cell]:
        """Return the 4 child cells in curve order."""
        return [Cell(child) for child in self.cell_id.children()]

    def vertex(self, k: int) -> Point:
        """
        Return vertex k (counter-clockwise from the lower-left corner).

        The result is not unit length.
        """
        i = (k >> 1) ^ (k & 1)
        j = k >> 1
        return face_uv_to_xyz(self.face, self.uv[0][i], self.uv[1][j])

    def contains_point(self, p: Point) -> bool:
        """
        Check if a vector (not necessarily unit length) lies in the cell.

        Points on a shared edge belong to both cells. The (u, v) bounds are
        padded so the cell containing a point's leaf always contains it.
        """
        sign = 1 if self.face < 3 else -1
        if sign * p[self.face % 3] <= 0:
            return False
        u, v = valid_face_xyz_to_uv(self.face, p)
        (u_lo, u_hi), (v_lo, v_hi) = self.uv
        return (
            u_lo - MAX_ERROR <= u <= u_hi + MAX_ERROR
            and v_lo - MAX_ERROR <= v <= v_hi + MAX_ERROR
        )

    def latitude(self, i: int, j: int) -> float:
        """Latitude in radians of the (u[i], v[j]) corner."""
        return point_latitude(face_uv_to_xyz(self.face, self.uv[0][i], self.uv[1][j]))

    def longitude(self, i: int, j: int) -> float:
        """Longitude in radians of the (u[i], v[j]) corner."""
        return point_longitude(face_uv_to_xyz(self.face, self.uv[0][i], self.uv[1][j]))

    def rect_bound(self) -> LatLngRect:
        """
        Return a lat/lng rectangle that contains the cell.

        Below level 0 the latitude and longitude extremes are attained at
        the vertices: one diagonal pair bounds latitude, the other pair
        bounds longitude.
        """
        if self.level == 0:
            lat, lng = _FACE_BOUNDS[self.face]
            return LatLngRect(lat, lng)

        u = self.uv[0][0] + self.uv[0][1]
        v = self.uv[1][0] + self.uv[1][1]
        if u_axis_z(self.face) == 0:
            i = 1 if u < 0 else 0
        else:
            i = 1 if u > 0 else 0
        if v_axis_z(self.face) == 0:
            j = 1 if v < 0 else 0
        else:
            j = 1 if v > 0 else 0

        lat = Interval.from_point_pair(self.latitude(i, j), self.latitude(1 - i, 1 - j))
        lat = lat.expanded(MAX_ERROR).intersection(LatLngRect.full_lat())
        if lat.lo == -math.pi / 2 or lat.hi == math.pi / 2:
            return LatLngRect(lat, LngInterval.full())

        lng = LngInterval.from_point_pair(self.longitude(i, 1 - j), self.longitude(1 - i, j))
        return LatLngRect(lat, lng.expanded(MAX_ERROR))


def _uv_range(ij: int, size: int) -> Tuple[float, float]:
    lo = ij & -size
    hi = lo + size
    return st_to_uv(ij_to_st_min(lo)), st_to_uv(ij_to_st_min(hi))
