"""
Oracle interface for coverage checks.

An oracle answers "is this point inside some cell of a covering". It gives
ground truth for verifying a covering by sampling points of the covered
rectangle, independently of the search that produced the covering.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from .cellid import CellId
from .cellunion import CellUnion
from .rect import LatLngRect


class CoverageOracle(ABC):
    """Abstract base class for coverage oracles."""

    @abstractmethod
    def covers(self, lat: float, lng: float) -> bool:
        """
        Check whether a point is covered.

        Args:
            lat: Latitude in degrees
            lng: Longitude in degrees

        Returns:
            True if the point lies in some cell
        """
        pass

    def covers_batch(self, points: List[Tuple[float, float]]) -> List[bool]:
        """
        Check several points.

        Default implementation calls covers() for each point.
        Subclasses may override for better performance (e.g., batch SQL queries).

        Args:
            points: List of (lat, lng) tuples in degrees

        Returns:
            List of booleans in the same order as input points
        """
        return [self.covers(lat, lng) for lat, lng in points]

    @abstractmethod
    def get_cell_count(self) -> int:
        """Number of cells the oracle checks against."""
        pass


class UnionOracle(CoverageOracle):
    """
    In-memory oracle backed by a CellUnion.

    Cells of mixed levels are fine; overlapping cells are merged.
    """

    def __init__(self, cells: Iterable[CellId]):
        cells = list(cells)
        self._count = len(cells)
        self._union = CellUnion(cells)

    def covers(self, lat: float, lng: float) -> bool:
        return self._union.contains(CellId.from_lat_lng(lat, lng))

    def get_cell_count(self) -> int:
        return self._count


def find_uncovered(
    rect: LatLngRect,
    cells: Iterable[CellId],
    oracle: Optional[CoverageOracle] = None,
    sample_count: int = 64,
    seed: int = 42,
) -> List[Tuple[float, float]]:
    """
    Sample points of a rectangle and return those no cell covers.

    Args:
        rect: Rectangle that should be covered
        cells: Covering to check (ignored when an oracle is given)
        oracle: Oracle to use (default: UnionOracle over cells)
        sample_count: Number of sample points
        seed: Random seed for deterministic sampling

    Returns:
        Uncovered (lat, lng) points; empty when the covering is complete
    """
    if oracle is None:
        oracle = UnionOracle(cells)
    points = rect.sample_points(sample_count, seed)
    results = oracle.covers_batch(points)
    return [p for p, covered in zip(points, results) if not covered]
