"""
Projection module for converting between lat/lng and cube-face coordinates.

Points on the sphere are projected onto the six faces of a circumscribed
cube. Each face has its own (u, v) coordinates in [-1, 1], which are warped
by a quadratic transform into (s, t) in [0, 1] so that cells at the same
level have roughly equal area. (s, t) is then discretized into integer leaf
coordinates (i, j) in [0, 2^30).

Coordinate chain:
    (lat, lng) degrees -> (x, y, z) unit vector -> (face, u, v) -> (s, t) -> (i, j)
"""

import math
from typing import Tuple

MAX_LEVEL = 30
"""Finest cell level; leaf cells live here."""

NUM_FACES = 6

MAX_SIZE = 1 << MAX_LEVEL
"""Number of leaf cells along one edge of a face."""

Point = Tuple[float, float, float]

# Face axis z components (u axis, v axis). Used when picking the vertices
# that bound a cell's latitude and longitude range.
_U_AXIS_Z = (0, 0, 0, -1, -1, 0)
_V_AXIS_Z = (1, 1, 0, 0, 0, 0)


def clamp_lat_lng(lat: float, lng: float) -> Tuple[float, float]:
    """
    Clamp latitude to [-90, 90] and wrap longitude into [-180, 180].

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees

    Returns:
        Tuple of (clamped_lat, wrapped_lng)
    """
    clamped_lat = max(-90.0, min(90.0, lat))
    if -180.0 <= lng <= 180.0:
        return clamped_lat, lng
    return clamped_lat, math.remainder(lng, 360.0)


def lat_lng_to_point(lat: float, lng: float) -> Point:
    """
    Convert degrees to a unit vector.

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees

    Returns:
        (x, y, z) on the unit sphere
    """
    phi = math.radians(lat)
    theta = math.radians(lng)
    cos_phi = math.cos(phi)
    return (cos_phi * math.cos(theta), cos_phi * math.sin(theta), math.sin(phi))


def point_to_lat_lng(p: Point) -> Tuple[float, float]:
    """Convert a (not necessarily unit) vector to (lat, lng) degrees."""
    return math.degrees(point_latitude(p)), math.degrees(point_longitude(p))


def point_latitude(p: Point) -> float:
    """Latitude of a vector in radians."""
    x, y, z = p
    return math.atan2(z, math.hypot(x, y))


def point_longitude(p: Point) -> float:
    """Longitude of a vector in radians."""
    return math.atan2(p[1], p[0])


def largest_abs_component(p: Point) -> int:
    """Index of the component with the largest magnitude (ties go to the later axis)."""
    ax, ay, az = abs(p[0]), abs(p[1]), abs(p[2])
    if ax > ay:
        return 0 if ax > az else 2
    return 1 if ay > az else 2


def point_face(p: Point) -> int:
    """Return the cube face (0..5) a vector projects onto."""
    axis = largest_abs_component(p)
    if p[axis] < 0:
        axis += 3
    return axis


def valid_face_xyz_to_uv(face: int, p: Point) -> Tuple[float, float]:
    """
    Project a vector onto (u, v) of a given face.

    The vector must point at the face's hemisphere (its face component must
    be positive after orientation), otherwise the result is meaningless.
    """
    x, y, z = p
    if face == 0:
        return y / x, z / x
    if face == 1:
        return -x / y, z / y
    if face == 2:
        return -x / z, -y / z
    if face == 3:
        return z / x, y / x
    if face == 4:
        return z / y, -x / y
    return -y / z, -x / z


def xyz_to_face_uv(p: Point) -> Tuple[int, float, float]:
    """Return (face, u, v) for a vector."""
    face = point_face(p)
    u, v = valid_face_xyz_to_uv(face, p)
    return face, u, v


def face_uv_to_xyz(face: int, u: float, v: float) -> Point:
    """Return the (non unit length) vector for (face, u, v)."""
    if face == 0:
        return (1.0, u, v)
    if face == 1:
        return (-u, 1.0, v)
    if face == 2:
        return (-u, -v, 1.0)
    if face == 3:
        return (-1.0, -v, -u)
    if face == 4:
        return (v, -1.0, -u)
    return (v, u, -1.0)


def uv_to_st(u: float) -> float:
    """Quadratic transform from u in [-1, 1] to s in [0, 1]."""
    if u >= 0:
        return 0.5 * math.sqrt(1 + 3 * u)
    return 1 - 0.5 * math.sqrt(1 - 3 * u)


def st_to_uv(s: float) -> float:
    """Inverse of uv_to_st."""
    if s >= 0.5:
        return (1.0 / 3.0) * (4 * s * s - 1)
    return (1.0 / 3.0) * (1 - 4 * (1 - s) * (1 - s))


def st_to_ij(s: float) -> int:
    """
    Discretize s in [0, 1] into a leaf coordinate.

    Values outside [0, 1] are clamped to the first or last leaf.
    """
    return max(0, min(MAX_SIZE - 1, int(math.floor(MAX_SIZE * s))))


def ij_to_st_min(i: int) -> float:
    """Lower s coordinate of leaf coordinate i."""
    return i / MAX_SIZE


def si_ti_to_st(si: int) -> float:
    """Convert a half-leaf coordinate (0..2*MAX_SIZE) to s."""
    return si / (2 * MAX_SIZE)


def u_axis_z(face: int) -> int:
    """z component of the face's u axis."""
    return _U_AXIS_Z[face]


def v_axis_z(face: int) -> int:
    """z component of the face's v axis."""
    return _V_AXIS_Z[face]
