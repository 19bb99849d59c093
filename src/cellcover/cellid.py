"""
Cell identifiers for the quadtree-on-sphere hierarchy.

A CellId is a 64-bit integer. The top 3 bits select one of the six cube
faces. The remaining 61 bits hold the position of the cell along a Hilbert
curve that fills the face: two bits per level, followed by a single marker
bit and then zeros. The marker position encodes the level, so a level-L cell
uses 2*L + 1 position bits and leaf cells (level 30) end in a 1.

Because the curve visits every descendant of a cell before leaving it, all
descendants occupy the contiguous integer range [range_min, range_max].
Ancestor/descendant tests are therefore integer comparisons.

Layout:
    face (3 bits) | child index per level (2 bits x level) | 1 | 0...0
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
import math
import string
import sys

from .projection import (
    MAX_LEVEL,
    MAX_SIZE,
    NUM_FACES,
    Point,
    face_uv_to_xyz,
    lat_lng_to_point,
    point_to_lat_lng,
    si_ti_to_st,
    st_to_ij,
    st_to_uv,
    uv_to_st,
    xyz_to_face_uv,
)

FACE_BITS = 3
POS_BITS = 2 * MAX_LEVEL + 1
ID_MASK = (1 << 64) - 1
POS_MASK = (1 << POS_BITS) - 1

# Hilbert curve orientation bits. SWAP exchanges the i and j axes,
# INVERT reverses the direction of traversal.
SWAP_MASK = 0x01
INVERT_MASK = 0x02

# For each orientation, the (i, j) quadrant visited at each curve position.
# Quadrants are encoded as (i_bit << 1) | j_bit.
POS_TO_IJ = (
    (0, 1, 3, 2),  # canonical
    (0, 2, 3, 1),  # swapped
    (3, 2, 0, 1),  # inverted
    (3, 1, 0, 2),  # swapped and inverted
)
POS_TO_ORIENTATION = (SWAP_MASK, 0, 0, INVERT_MASK | SWAP_MASK)

# Lookup tables translating 4 levels (8 bits of i/j, 8 bits of position)
# at a time, keyed together with the current orientation.
LOOKUP_BITS = 4
_LOOKUP_MASK = (1 << LOOKUP_BITS) - 1
_LOOKUP_POS = [0] * (1 << (2 * LOOKUP_BITS + 2))
_LOOKUP_IJ = [0] * (1 << (2 * LOOKUP_BITS + 2))


def _init_lookup_cell(
    level: int, i: int, j: int, orig_orientation: int, pos: int, orientation: int
) -> None:
    if level == LOOKUP_BITS:
        ij = (i << LOOKUP_BITS) + j
        _LOOKUP_POS[(ij << 2) + orig_orientation] = (pos << 2) + orientation
        _LOOKUP_IJ[(pos << 2) + orig_orientation] = (ij << 2) + orientation
        return

    level += 1
    i <<= 1
    j <<= 1
    pos <<= 2
    quadrants = POS_TO_IJ[orientation]
    for index in range(4):
        _init_lookup_cell(
            level,
            i + (quadrants[index] >> 1),
            j + (quadrants[index] & 1),
            orig_orientation,
            pos + index,
            orientation ^ POS_TO_ORIENTATION[index],
        )


for _orientation in range(4):
    _init_lookup_cell(0, 0, 0, _orientation, 0, _orientation)


def lowest_on_bit_for_level(level: int) -> int:
    """Marker bit of a cell at the given level."""
    return 1 << (2 * (MAX_LEVEL - level))


def size_ij(level: int) -> int:
    """Edge length of a level's cells in leaf coordinates."""
    return 1 << (MAX_LEVEL - level)


def _check_level(level: int) -> None:
    if not 0 <= level <= MAX_LEVEL:
        raise ValueError(f"level must be in [0, {MAX_LEVEL}], got {level}")


@dataclass(frozen=True, order=True)
class CellId:
    """
    An immutable 64-bit cell identifier.

    Ordering follows the integer value, which is Hilbert curve order within
    a face and face order across faces.
    """
    id: int

    def __post_init__(self):
        if not 0 <= self.id <= ID_MASK:
            raise ValueError(f"CellId out of 64-bit range: {self.id}")

    # -- construction -----------------------------------------------------

    @classmethod
    def none(cls) -> CellId:
        """The invalid id 0."""
        return cls(0)

    @classmethod
    def from_face_pos_level(cls, face: int, pos: int, level: int) -> CellId:
        """
        Build a cell from a face, a raw 61-bit curve position and a level.

        The position may point anywhere inside the cell; it is truncated to
        the requested level.
        """
        if not 0 <= face < NUM_FACES:
            raise ValueError(f"face must be in [0, {NUM_FACES - 1}], got {face}")
        _check_level(level)
        return cls((face << POS_BITS) + (pos | 1)).parent(level)

    @classmethod
    def from_face_level_position(cls, face: int, level: int, position: int) -> CellId:
        """Build the position-th cell (curve order) of a face at a level."""
        if not 0 <= face < NUM_FACES:
            raise ValueError(f"face must be in [0, {NUM_FACES - 1}], got {face}")
        _check_level(level)
        if not 0 <= position < 4 ** level:
            raise ValueError(
                f"position must be in [0, 4^{level}), got {position}"
            )
        lsb = lowest_on_bit_for_level(level)
        return cls((face << POS_BITS) | (position * 2 * lsb) | lsb)

    @classmethod
    def from_face(cls, face: int) -> CellId:
        return cls.from_face_pos_level(face, 0, 0)

    @classmethod
    def from_face_ij(cls, face: int, i: int, j: int) -> CellId:
        """Return the leaf cell at leaf coordinates (i, j) of a face."""
        n = face << (POS_BITS - 1)
        bits = face & SWAP_MASK
        for k in range(7, -1, -1):
            bits += ((i >> (k * LOOKUP_BITS)) & _LOOKUP_MASK) << (LOOKUP_BITS + 2)
            bits += ((j >> (k * LOOKUP_BITS)) & _LOOKUP_MASK) << 2
            bits = _LOOKUP_POS[bits]
            n |= (bits >> 2) << (k * 2 * LOOKUP_BITS)
            bits &= SWAP_MASK | INVERT_MASK
        return cls(n * 2 + 1)

    @classmethod
    def from_point(cls, p: Point) -> CellId:
        """Return the leaf cell containing a vector."""
        face, u, v = xyz_to_face_uv(p)
        return cls.from_face_ij(face, st_to_ij(uv_to_st(u)), st_to_ij(uv_to_st(v)))

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float, level: int = MAX_LEVEL) -> CellId:
        """
        Return the cell at the given level containing a point.

        Args:
            lat: Latitude in degrees
            lng: Longitude in degrees
            level: Target level (default: leaf)
        """
        _check_level(level)
        leaf = cls.from_point(lat_lng_to_point(lat, lng))
        return leaf if level == MAX_LEVEL else leaf.parent(level)

    @classmethod
    def from_token(cls, token: str) -> CellId:
        """
        Parse a hex token as produced by to_token().

        Raises:
            ValueError: If the token is not 1-16 hex digits (or "X")
        """
        if token in ("X", "x"):
            return cls.none()
        if not 0 < len(token) <= 16 or not all(c in string.hexdigits for c in token):
            raise ValueError(f"Invalid cell token: {token!r}")
        return cls(int(token.ljust(16, "0"), 16))

    @classmethod
    def begin(cls, level: int) -> CellId:
        """First cell of a level in curve order."""
        return cls.from_face(0).child_begin(level)

    @classmethod
    def end(cls, level: int) -> CellId:
        """One past the last cell of a level in curve order."""
        return cls.from_face(NUM_FACES - 1).child_end(level)

    # -- accessors --------------------------------------------------------

    @property
    def face(self) -> int:
        return self.id >> POS_BITS

    @property
    def pos(self) -> int:
        """Raw curve position, marker bit included."""
        return self.id & POS_MASK

    @property
    def level(self) -> int:
        if self.id & 1:
            return MAX_LEVEL
        return MAX_LEVEL - ((self.lowest_on_bit().bit_length() - 1) >> 1)

    @property
    def position(self) -> int:
        """Index of this cell among the 4^level cells of its face."""
        return self.pos >> (2 * (MAX_LEVEL - self.level) + 1)

    def lowest_on_bit(self) -> int:
        return self.id & -self.id

    def is_valid(self) -> bool:
        return self.face < NUM_FACES and bool(self.lowest_on_bit() & 0x1555555555555555)

    def is_face(self) -> bool:
        return (self.id & (lowest_on_bit_for_level(0) - 1)) == 0

    def is_leaf(self) -> bool:
        return bool(self.id & 1)

    def child_position(self, level: int) -> int:
        """Which child (0..3) of its parent the level ancestor of this cell is."""
        if not 1 <= level <= self.level:
            raise ValueError(f"level must be in [1, {self.level}], got {level}")
        return (self.id >> (2 * (MAX_LEVEL - level) + 1)) & 3

    def range_min(self) -> CellId:
        return CellId(self.id - (self.lowest_on_bit() - 1))

    def range_max(self) -> CellId:
        return CellId(self.id + (self.lowest_on_bit() - 1))

    # -- hierarchy --------------------------------------------------------

    def parent(self, level: Optional[int] = None) -> CellId:
        """
        Return the ancestor at a given level (default: the direct parent).

        Raises:
            ValueError: If level is finer than this cell, or this is a face
                cell and no level is given
        """
        if level is None:
            if self.is_face():
                raise ValueError("Face cells have no parent")
            new_lsb = self.lowest_on_bit() << 2
        else:
            if not 0 <= level <= self.level:
                raise ValueError(
                    f"Parent level must be in [0, {self.level}], got {level}"
                )
            new_lsb = lowest_on_bit_for_level(level)
        return CellId((self.id & -new_lsb) | new_lsb)

    def child(self, position: int) -> CellId:
        """Return one of the 4 children (0..3, curve order)."""
        if self.is_leaf():
            raise ValueError("Leaf cells have no children")
        if not 0 <= position < 4:
            raise ValueError(f"Child position must be in [0, 3], got {position}")
        new_lsb = self.lowest_on_bit() >> 2
        return CellId(self.id + (2 * position + 1 - 4) * new_lsb)

    def children(self) -> List[CellId]:
        """The 4 cells one level finer that partition this cell."""
        return [self.child(k) for k in range(4)]

    def child_begin(self, level: Optional[int] = None) -> CellId:
        """First descendant at a level (default: first child)."""
        lsb = self.lowest_on_bit()
        if level is None:
            if self.is_leaf():
                raise ValueError("Leaf cells have no children")
            return CellId(self.id - lsb + (lsb >> 2))
        if not self.level <= level <= MAX_LEVEL:
            raise ValueError(f"Child level must be in [{self.level}, {MAX_LEVEL}], got {level}")
        return CellId(self.id - lsb + lowest_on_bit_for_level(level))

    def child_end(self, level: Optional[int] = None) -> CellId:
        """
        One past the last descendant at a level (default: children).

        The result is only meant to be compared against, and may be an
        invalid id when this is the last cell of face 5.
        """
        lsb = self.lowest_on_bit()
        if level is None:
            if self.is_leaf():
                raise ValueError("Leaf cells have no children")
            return _unchecked(self.id + lsb + (lsb >> 2))
        if not self.level <= level <= MAX_LEVEL:
            raise ValueError(f"Child level must be in [{self.level}, {MAX_LEVEL}], got {level}")
        return _unchecked(self.id + lsb + lowest_on_bit_for_level(level))

    def next(self) -> CellId:
        """Next cell at the same level in curve order (may run off face 5)."""
        return _unchecked(self.id + (self.lowest_on_bit() << 1))

    def prev(self) -> CellId:
        """Previous cell at the same level in curve order."""
        return CellId((self.id - (self.lowest_on_bit() << 1)) & ID_MASK)

    def iter_descendants(self, level: int) -> Iterator[CellId]:
        """Iterate over all descendants at a level, in curve order."""
        end = self.child_end(level)
        cell = self.child_begin(level)
        while cell != end:
            yield cell
            cell = cell.next()

    def contains(self, other: CellId) -> bool:
        """True iff other is this cell or one of its descendants."""
        return self.range_min().id <= other.id <= self.range_max().id

    def intersects(self, other: CellId) -> bool:
        """True iff one of the two cells contains the other."""
        return (
            other.range_min().id <= self.range_max().id
            and other.range_max().id >= self.range_min().id
        )

    # -- geometry ---------------------------------------------------------

    def to_face_ij_orientation(self) -> Tuple[int, int, int, int]:
        """
        Decode the cell into (face, i, j, orientation).

        (i, j) are the leaf coordinates of the leaf cell at the center of
        the curve range; orientation is the Hilbert curve orientation of
        this cell.
        """
        face = self.face
        i = 0
        j = 0
        bits = face & SWAP_MASK
        for k in range(7, -1, -1):
            nbits = MAX_LEVEL - 7 * LOOKUP_BITS if k == 7 else LOOKUP_BITS
            bits += ((self.id >> (k * 2 * LOOKUP_BITS + 1)) & ((1 << (2 * nbits)) - 1)) << 2
            bits = _LOOKUP_IJ[bits]
            i += (bits >> (LOOKUP_BITS + 2)) << (k * LOOKUP_BITS)
            j += ((bits >> 2) & _LOOKUP_MASK) << (k * LOOKUP_BITS)
            bits &= SWAP_MASK | INVERT_MASK

        # Cells at odd levels flip orientation relative to their leaf.
        if self.lowest_on_bit() & 0x1111111111111110:
            bits ^= SWAP_MASK
        return face, i, j, bits

    def to_point(self) -> Point:
        """Center of the cell as a (non unit length) vector."""
        face, i, j, _ = self.to_face_ij_orientation()
        if self.is_leaf():
            delta = 1
        elif (i ^ (self.id >> 2)) & 1:
            delta = 2
        else:
            delta = 0
        u = st_to_uv(si_ti_to_st(2 * i + delta))
        v = st_to_uv(si_ti_to_st(2 * j + delta))
        return face_uv_to_xyz(face, u, v)

    def to_lat_lng(self) -> Tuple[float, float]:
        """Center of the cell as (lat, lng) degrees."""
        return point_to_lat_lng(self.to_point())

    def to_token(self) -> str:
        """Hex encoding with trailing zeros stripped ("X" for the invalid id)."""
        if self.id == 0:
            return "X"
        return f"{self.id:016x}".rstrip("0")

    # -- neighbors --------------------------------------------------------

    def edge_neighbors(self) -> List[CellId]:
        """The four same-level neighbors across the S, E, N and W edges."""
        level = self.level
        size = size_ij(level)
        face, i, j, _ = self.to_face_ij_orientation()
        return [
            _from_face_ij_same(face, i, j - size, j - size >= 0).parent(level),
            _from_face_ij_same(face, i + size, j, i + size < MAX_SIZE).parent(level),
            _from_face_ij_same(face, i, j + size, j + size < MAX_SIZE).parent(level),
            _from_face_ij_same(face, i - size, j, i - size >= 0).parent(level),
        ]

    def all_neighbors(self, level: int) -> List[CellId]:
        """
        Return every cell at a level that touches this cell's boundary.

        Includes edge and vertex neighbors. The level must not be coarser
        than this cell. Near cube vertices the same neighbor can appear
        twice; callers normalize.
        """
        if not self.level <= level <= MAX_LEVEL:
            raise ValueError(
                f"Neighbor level must be in [{self.level}, {MAX_LEVEL}], got {level}"
            )
        face, i, j, _ = self.to_face_ij_orientation()

        # Snap (i, j) to the lower-left leaf of this cell.
        size = size_ij(self.level)
        i &= -size
        j &= -size

        nbr_size = size_ij(level)
        output = []
        k = -nbr_size
        while True:
            if k < 0:
                same_face = j + k >= 0
            elif k >= size:
                same_face = j + k < MAX_SIZE
            else:
                same_face = True
                # South and north neighbors.
                output.append(
                    _from_face_ij_same(face, i + k, j - nbr_size, j - size >= 0).parent(level)
                )
                output.append(
                    _from_face_ij_same(face, i + k, j + size, j + size < MAX_SIZE).parent(level)
                )
            # West, east and diagonal neighbors.
            output.append(
                _from_face_ij_same(face, i - nbr_size, j + k, same_face and i - size >= 0).parent(level)
            )
            output.append(
                _from_face_ij_same(face, i + size, j + k, same_face and i + size < MAX_SIZE).parent(level)
            )
            if k >= size:
                break
            k += nbr_size
        return output


def _unchecked(value: int) -> CellId:
    """Wrap an end-of-range sentinel that may exceed the valid id space."""
    return CellId(value & ID_MASK)


def _from_face_ij_same(face: int, i: int, j: int, same_face: bool) -> CellId:
    if same_face:
        return CellId.from_face_ij(face, i, j)
    return _from_face_ij_wrap(face, i, j)


_WRAP_LIMIT = 1.0 + sys.float_info.epsilon


def _from_face_ij_wrap(face: int, i: int, j: int) -> CellId:
    """
    Return the leaf cell at (i, j) when (i, j) lies just beyond a face edge.

    The coordinates are mapped to a point slightly outside the face using
    the linear projection, then reprojected onto whichever face that point
    falls on.
    """
    i = max(-1, min(MAX_SIZE, i))
    j = max(-1, min(MAX_SIZE, j))

    scale = 1.0 / MAX_SIZE
    u = max(-_WRAP_LIMIT, min(_WRAP_LIMIT, scale * (2 * (i - MAX_SIZE // 2) + 1)))
    v = max(-_WRAP_LIMIT, min(_WRAP_LIMIT, scale * (2 * (j - MAX_SIZE // 2) + 1)))

    new_face, u, v = xyz_to_face_uv(face_uv_to_xyz(face, u, v))
    return CellId.from_face_ij(new_face, st_to_ij(0.5 * (u + 1)), st_to_ij(0.5 * (v + 1)))


AVG_EDGE_DERIV = 1.459213746386106
"""Average cell edge length at level 0, in radians, for the quadratic projection."""


def average_edge_degrees(level: int) -> float:
    """Approximate edge length of a cell at a level, in degrees of arc."""
    _check_level(level)
    return math.degrees(math.ldexp(AVG_EDGE_DERIV, -level))
