"""
Multi-resolution covering of a viewport rectangle.

For each level from HIGHEST_INDEX_LEVEL down to 0 the rectangle is covered
with cells of exactly that level, grown by one cell in every direction, and
the per-level layers are concatenated finest first. A record indexed under
any cell of a layer can then be found by scanning the layer's cell ranges.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
import logging

from .cellid import CellId
from .coverer import CovererConfig, RegionCoverer
from .projection import MAX_LEVEL
from .rect import LatLngRect

logger = logging.getLogger(__name__)

HIGHEST_INDEX_LEVEL = 13
"""Finest level of the index."""

LOWEST_INDEX_LEVEL = 0
"""Coarsest level of the index."""

DEFAULT_MAX_CELLS = 1000
"""Cell budget handed to the coverer for each level."""


def cover_level(
    rect: LatLngRect, level: int, max_cells: int = DEFAULT_MAX_CELLS
) -> List[CellId]:
    """
    Cover a rectangle with cells of exactly one level.

    The covering is expanded by one neighbor ring at the level so that
    records near cell edges still match, then split into cells of exactly
    that level.

    Args:
        rect: Rectangle to cover
        level: Cell level in [0, 30]
        max_cells: Cell budget for the coverer

    Returns:
        Cells at the given level in curve order (empty for an empty rect)
    """
    coverer = RegionCoverer(CovererConfig.fixed_level(level, max_cells=max_cells))
    union = coverer.get_covering(rect)
    union.expand(level)
    cells = union.denormalize(level, 1)
    logger.debug(
        "Level %d: %d covering cells, %d after expansion", level, coverer.stats.cells_accepted, len(cells)
    )
    return cells


def index_levels(
    highest_level: int = HIGHEST_INDEX_LEVEL, lowest_level: int = LOWEST_INDEX_LEVEL
) -> List[int]:
    """Levels of the index, finest first."""
    if not 0 <= lowest_level <= highest_level <= MAX_LEVEL:
        raise ValueError(
            f"Need 0 <= lowest_level <= highest_level <= {MAX_LEVEL}, "
            f"got lowest_level={lowest_level}, highest_level={highest_level}"
        )
    return list(range(highest_level, lowest_level - 1, -1))


def cover_by_level(
    rect: LatLngRect,
    highest_level: int = HIGHEST_INDEX_LEVEL,
    lowest_level: int = LOWEST_INDEX_LEVEL,
    max_cells: int = DEFAULT_MAX_CELLS,
    workers: Optional[int] = None,
) -> Dict[int, List[CellId]]:
    """
    Cover a rectangle at every index level.

    Levels are independent. With workers > 1 they are computed on a thread
    pool; the result does not depend on the number of workers.

    Returns:
        Mapping of level -> cells, in finest-first insertion order
    """
    levels = index_levels(highest_level, lowest_level)

    if workers is not None and workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            layers = list(executor.map(lambda lvl: cover_level(rect, lvl, max_cells), levels))
    else:
        layers = [cover_level(rect, level, max_cells) for level in levels]

    return dict(zip(levels, layers))


def cover(
    rect: LatLngRect,
    highest_level: int = HIGHEST_INDEX_LEVEL,
    lowest_level: int = LOWEST_INDEX_LEVEL,
    max_cells: int = DEFAULT_MAX_CELLS,
    workers: Optional[int] = None,
) -> List[CellId]:
    """
    Compute the multi-resolution index keys for a rectangle.

    Args:
        rect: Viewport rectangle
        highest_level: Finest level (default 13)
        lowest_level: Coarsest level (default 0)
        max_cells: Cell budget per level (default 1000)
        workers: Thread pool size for per-level work (default: sequential)

    Returns:
        Concatenation of the per-level layers, finest level first. The same
        area appears once per level; there is no cross-level de-duplication.
    """
    layers = cover_by_level(rect, highest_level, lowest_level, max_cells, workers)
    cells: List[CellId] = []
    for layer in layers.values():
        cells.extend(layer)
    logger.debug("Covered rect with %d cells over %d levels", len(cells), len(layers))
    return cells
