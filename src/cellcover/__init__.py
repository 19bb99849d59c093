"""
cellcover: Multi-resolution cell coverings of lat/lng rectangles.

This package computes the cell identifiers that index a viewport rectangle
on a quadtree-on-sphere hierarchy. Each level of the index is a uniform
layer of cells that fully contains the rectangle, so a viewport query turns
into range scans over cell ids.
"""

__version__ = "0.1.0"

from .cellid import CellId
from .cell import Cell
from .rect import LatLngRect
from .cellunion import CellUnion
from .coverer import RegionCoverer, CovererConfig, CovererStats, get_covering
from .engine import (
    HIGHEST_INDEX_LEVEL,
    DEFAULT_MAX_CELLS,
    cover,
    cover_level,
    cover_by_level,
)
from .serialize import encode_cells, decode_cells, cells_to_tokens, tokens_to_cells
from .oracle import CoverageOracle, UnionOracle, find_uncovered
from .duckdb_oracle import DuckDBOracle

__all__ = [
    "CellId",
    "Cell",
    "LatLngRect",
    "CellUnion",
    "RegionCoverer",
    "CovererConfig",
    "CovererStats",
    "get_covering",
    "HIGHEST_INDEX_LEVEL",
    "DEFAULT_MAX_CELLS",
    "cover",
    "cover_level",
    "cover_by_level",
    "encode_cells",
    "decode_cells",
    "cells_to_tokens",
    "tokens_to_cells",
    "CoverageOracle",
    "UnionOracle",
    "find_uncovered",
    "DuckDBOracle",
]
