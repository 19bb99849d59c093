"""
DuckDB-based coverage oracle.

This module loads the id ranges of a covering into an in-memory DuckDB
table and answers point queries with a range join, the same lookup an index
keyed by cell id performs: a point is covered when its leaf cell id falls in
[range_min, range_max] of some stored cell.
"""

from typing import Iterable, List, Tuple

import duckdb

from .cellid import CellId
from .oracle import CoverageOracle

# Cell ids are unsigned 64-bit; shifting by 2^63 maps them onto BIGINT
# while preserving order.
_SIGN_SHIFT = 1 << 63


def _to_signed(cell_id: CellId) -> int:
    return cell_id.id - _SIGN_SHIFT


class DuckDBOracle(CoverageOracle):
    """
    Oracle implementation using a DuckDB range table.

    Each cell is stored as its leaf range; queries are batched into a single
    SQL statement.
    """

    def __init__(self, cells: Iterable[CellId], database: str = ":memory:"):
        """
        Initialize the DuckDB oracle.

        Args:
            cells: Covering to load
            database: DuckDB database path (default: in-memory)
        """
        self._con = duckdb.connect(database)
        self._count = 0
        self._load_cells(list(cells))

    def _load_cells(self, cells: List[CellId]) -> None:
        """Create the range table and load the cells into it."""
        self._con.execute("""
            CREATE OR REPLACE TABLE cells (lo BIGINT, hi BIGINT)
        """)
        self._count = len(cells)
        if not cells:
            return

        values_list = ", ".join(
            f"({_to_signed(c.range_min())}, {_to_signed(c.range_max())})" for c in cells
        )
        self._con.execute(f"""
            INSERT INTO cells
            SELECT CAST(col0 AS BIGINT), CAST(col1 AS BIGINT)
            FROM (VALUES {values_list})
        """)

    def covers(self, lat: float, lng: float) -> bool:
        leaf = _to_signed(CellId.from_lat_lng(lat, lng))
        result = self._con.execute("""
            SELECT COUNT(*) FROM cells WHERE ? BETWEEN lo AND hi
        """, [leaf]).fetchone()
        return result[0] > 0

    def covers_batch(self, points: List[Tuple[float, float]]) -> List[bool]:
        """
        Check several points in a single query.

        This is much faster than calling covers() repeatedly due to reduced
        Python<->DuckDB round-trip overhead.
        """
        if not points:
            return []

        values_list = ", ".join(
            f"({_to_signed(CellId.from_lat_lng(lat, lng))}, {idx})"
            for idx, (lat, lng) in enumerate(points)
        )
        query = f"""
            WITH points AS (
                SELECT CAST(col0 AS BIGINT) AS leaf, col1 AS idx
                FROM (VALUES {values_list})
            )
            SELECT p.idx, COUNT(c.lo) > 0
            FROM points p
            LEFT JOIN cells c ON p.leaf BETWEEN c.lo AND c.hi
            GROUP BY p.idx
            ORDER BY p.idx
        """
        rows = self._con.execute(query).fetchall()
        covered = {idx: bool(hit) for idx, hit in rows}
        return [covered.get(i, False) for i in range(len(points))]

    def get_cell_count(self) -> int:
        return self._count

    def close(self) -> None:
        """Close the database connection."""
        if getattr(self, "_con", None) is not None:
            self._con.close()
            self._con = None

    def __del__(self):
        """Cleanup on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
