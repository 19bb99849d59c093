"""
Closed intervals on the line (latitude) and on the circle (longitude).

All values are in radians. A latitude interval is empty when lo > hi. A
longitude interval lives on [-pi, pi] and is "inverted" when lo > hi, which
means it wraps across the antimeridian; the empty interval is (pi, -pi) and
the full interval is (-pi, pi).
"""

from __future__ import annotations
from dataclasses import dataclass
import math
import sys

_DBL_EPSILON = sys.float_info.epsilon


@dataclass(frozen=True)
class Interval:
    """A closed interval [lo, hi] on the real line."""
    lo: float
    hi: float

    @classmethod
    def empty(cls) -> Interval:
        return cls(1.0, 0.0)

    @classmethod
    def from_point_pair(cls, a: float, b: float) -> Interval:
        return cls(min(a, b), max(a, b))

    def is_empty(self) -> bool:
        return self.lo > self.hi

    @property
    def length(self) -> float:
        return self.hi - self.lo

    def contains_point(self, p: float) -> bool:
        return self.lo <= p <= self.hi

    def contains(self, other: Interval) -> bool:
        if other.is_empty():
            return True
        return self.lo <= other.lo and other.hi <= self.hi

    def intersects(self, other: Interval) -> bool:
        if self.lo <= other.lo:
            return other.lo <= self.hi and other.lo <= other.hi
        return self.lo <= other.hi and self.lo <= self.hi

    def intersection(self, other: Interval) -> Interval:
        return Interval(max(self.lo, other.lo), min(self.hi, other.hi))

    def expanded(self, margin: float) -> Interval:
        if self.is_empty():
            return self
        return Interval(self.lo - margin, self.hi + margin)


@dataclass(frozen=True)
class LngInterval:
    """
    A closed interval on the unit circle.

    Endpoints are angles in [-pi, pi]. The point -pi is stored as pi, except
    in the full interval (-pi, pi).
    """
    lo: float
    hi: float

    def __post_init__(self):
        lo, hi = self.lo, self.hi
        if lo == -math.pi and hi != math.pi:
            lo = math.pi
        if hi == -math.pi and lo != math.pi:
            hi = math.pi
        object.__setattr__(self, "lo", lo)
        object.__setattr__(self, "hi", hi)

    @classmethod
    def empty(cls) -> LngInterval:
        return cls(math.pi, -math.pi)

    @classmethod
    def full(cls) -> LngInterval:
        return cls(-math.pi, math.pi)

    @classmethod
    def from_point_pair(cls, a: float, b: float) -> LngInterval:
        """Return the shorter interval that contains both points."""
        if a == -math.pi:
            a = math.pi
        if b == -math.pi:
            b = math.pi
        if _positive_distance(a, b) <= math.pi:
            return cls(a, b)
        return cls(b, a)

    def is_valid(self) -> bool:
        return (
            abs(self.lo) <= math.pi
            and abs(self.hi) <= math.pi
            and not (self.lo == -math.pi and self.hi != math.pi)
            and not (self.hi == -math.pi and self.lo != math.pi)
        )

    def is_full(self) -> bool:
        return self.hi - self.lo == 2 * math.pi

    def is_empty(self) -> bool:
        return self.lo - self.hi == 2 * math.pi

    def is_inverted(self) -> bool:
        return self.lo > self.hi

    @property
    def length(self) -> float:
        """Arc length; negative for the empty interval."""
        length = self.hi - self.lo
        if length >= 0:
            return length
        length += 2 * math.pi
        return length if length > 0 else -1.0

    def contains_point(self, p: float) -> bool:
        if p == -math.pi:
            p = math.pi
        if self.is_inverted():
            return (p >= self.lo or p <= self.hi) and not self.is_empty()
        return self.lo <= p <= self.hi

    def contains(self, other: LngInterval) -> bool:
        if self.is_inverted():
            if other.is_inverted():
                return other.lo >= self.lo and other.hi <= self.hi
            return (other.lo >= self.lo or other.hi <= self.hi) and not self.is_empty()
        if other.is_inverted():
            return self.is_full() or other.is_empty()
        return other.lo >= self.lo and other.hi <= self.hi

    def intersects(self, other: LngInterval) -> bool:
        if self.is_empty() or other.is_empty():
            return False
        if self.is_inverted():
            return other.is_inverted() or other.lo <= self.hi or other.hi >= self.lo
        if other.is_inverted():
            return other.lo <= self.hi or other.hi >= self.lo
        return other.lo <= self.hi and other.hi >= self.lo

    def expanded(self, margin: float) -> LngInterval:
        """Grow both ends by a non-negative margin, saturating at full."""
        if self.is_empty():
            return self
        if self.length + 2 * margin + 2 * _DBL_EPSILON >= 2 * math.pi:
            return LngInterval.full()
        lo = math.remainder(self.lo - margin, 2 * math.pi)
        hi = math.remainder(self.hi + margin, 2 * math.pi)
        if lo <= -math.pi:
            lo = math.pi
        return LngInterval(lo, hi)


def _positive_distance(a: float, b: float) -> float:
    """Distance walking counter-clockwise from a to b, in [0, 2*pi)."""
    d = b - a
    if d >= 0:
        return d
    return (b + math.pi) - (a - math.pi)
