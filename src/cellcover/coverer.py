"""
Region coverer using a greedy refine-largest-first search.

This module finds a near-minimal CellUnion covering a LatLngRect. The
search starts from the six face cells and keeps a priority queue of cells
that partially intersect the region. Cells fully inside the region, or at
the maximum level, are accepted as they are created; cells disjoint from the
region are never created. The largest queued cell is refined next, until the
queue is empty or refining would exceed the cell budget, in which case the
cell is accepted whole.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import heapq
import itertools
import logging

from .cell import Cell
from .cellid import CellId
from .cellunion import CellUnion
from .projection import MAX_LEVEL, NUM_FACES
from .rect import LatLngRect

logger = logging.getLogger(__name__)


@dataclass
class CovererConfig:
    """Configuration for the region coverer."""

    max_cells: int = 8
    """Soft limit on the number of cells in the covering."""

    min_level: int = 0
    """Coarsest level of cells in the covering."""

    max_level: int = MAX_LEVEL
    """Finest level of cells in the covering."""

    level_mod: int = 1
    """Only use levels min_level + k * level_mod (1, 2 or 3)."""

    def __post_init__(self):
        if self.max_cells < 1:
            raise ValueError("max_cells must be at least 1")
        if not 0 <= self.min_level <= MAX_LEVEL:
            raise ValueError(f"min_level must be in [0, {MAX_LEVEL}]")
        if not 0 <= self.max_level <= MAX_LEVEL:
            raise ValueError(f"max_level must be in [0, {MAX_LEVEL}]")
        if self.min_level > self.max_level:
            raise ValueError("min_level must not exceed max_level")
        if not 1 <= self.level_mod <= 3:
            raise ValueError("level_mod must be in [1, 3]")

    @classmethod
    def fixed_level(cls, level: int, max_cells: int = 8) -> "CovererConfig":
        """Configuration that only produces cells at a single level."""
        return cls(max_cells=max_cells, min_level=level, max_level=level)

    @property
    def effective_max_level(self) -> int:
        """max_level rounded down to the level grid defined by level_mod."""
        return self.max_level - (self.max_level - self.min_level) % self.level_mod


@dataclass
class CovererStats:
    """Statistics collected during one covering."""

    candidates_created: int = 0
    candidates_expanded: int = 0
    cells_accepted: int = 0
    budget_fallbacks: int = 0
    max_queue_size: int = 0


@dataclass
class Candidate:
    """A cell under consideration together with its intersecting children."""

    cell: Cell
    is_terminal: bool
    children: List["Candidate"] = field(default_factory=list)


class RegionCoverer:
    """
    Greedy covering of a lat/lng rectangle.

    Candidates are ordered largest cell first; among cells of the same
    level, those with fewer intersecting children come first, then those
    with fewer children that cannot be refined further.
    """

    def __init__(self, config: Optional[CovererConfig] = None):
        """
        Initialize the coverer.

        Args:
            config: Coverer configuration (defaults apply when omitted)
        """
        self.config = config or CovererConfig()
        self.stats = CovererStats()
        self._region: Optional[LatLngRect] = None
        self._result: List[CellId] = []
        self._queue: list = []
        self._counter = itertools.count()

    def get_covering(self, region: LatLngRect) -> CellUnion:
        """
        Return a normalized covering of the region.

        The covering always contains the region. When max_cells is too
        small for the requested levels, coarser cells are used.
        """
        self._run(region)
        return CellUnion(self._result)

    def get_cell_ids(self, region: LatLngRect) -> List[CellId]:
        """
        Return the covering as a list, honoring min_level and level_mod.

        Normalization may merge cells above min_level; they are split back
        down so that every cell respects the configured levels.
        """
        return self.get_covering(region).denormalize(
            self.config.min_level, self.config.level_mod
        )

    def _run(self, region: LatLngRect) -> None:
        self.stats = CovererStats()
        self._region = region
        self._result = []
        self._queue = []
        try:
            self._get_initial_candidates()
            self._search()
        finally:
            self._queue = []
            self._region = None

        logger.debug(
            "Covering levels %d-%d: %d cells, %d candidates, %d expanded, %d fallbacks",
            self.config.min_level,
            self.config.effective_max_level,
            len(self._result),
            self.stats.candidates_created,
            self.stats.candidates_expanded,
            self.stats.budget_fallbacks,
        )

    def _search(self) -> None:
        min_level = self.config.min_level
        max_cells = self.config.max_cells

        while self._queue:
            _, _, candidate = heapq.heappop(self._queue)
            num_children = len(candidate.children)
            if (
                candidate.cell.level < min_level
                or num_children == 1
                or len(self._result) + len(self._queue) + num_children <= max_cells
            ):
                # Expand this candidate into its children.
                self.stats.candidates_expanded += 1
                for child in candidate.children:
                    self._add_candidate(child)
            else:
                # Out of budget: accept the cell as a coarser approximation.
                self.stats.budget_fallbacks += 1
                candidate.is_terminal = True
                self._add_candidate(candidate)

    def _get_initial_candidates(self) -> None:
        for face in range(NUM_FACES):
            self._add_candidate(self._new_candidate(Cell.from_face(face)))

    def _new_candidate(self, cell: Cell) -> Optional[Candidate]:
        """Create a candidate, or return None if the cell misses the region."""
        if not self._region.may_intersect(cell):
            return None

        is_terminal = False
        if cell.level >= self.config.min_level:
            if (
                cell.level + self.config.level_mod > self.config.effective_max_level
                or self._region.contains_cell(cell)
            ):
                is_terminal = True

        self.stats.candidates_created += 1
        return Candidate(cell=cell, is_terminal=is_terminal)

    def _add_candidate(self, candidate: Optional[Candidate]) -> None:
        if candidate is None:
            return

        if candidate.is_terminal:
            self._result.append(candidate.cell.cell_id)
            self.stats.cells_accepted += 1
            return

        # Expand one level at a time until min_level so it is not skipped.
        level = candidate.cell.level
        num_levels = 1 if level < self.config.min_level else self.config.level_mod
        num_terminals = self._expand_children(candidate, candidate.cell, num_levels)

        if not candidate.children:
            # No child intersects the region.
            return

        max_children = 1 << (2 * self.config.level_mod)
        if num_terminals == max_children and level >= self.config.min_level:
            # Every child would be accepted: accept the parent instead.
            candidate.is_terminal = True
            self._add_candidate(candidate)
            return

        priority = -((((level << 2) + len(candidate.children)) << 2) + num_terminals)
        heapq.heappush(self._queue, (priority, next(self._counter), candidate))
        self.stats.max_queue_size = max(self.stats.max_queue_size, len(self._queue))

    def _expand_children(self, candidate: Candidate, cell: Cell, num_levels: int) -> int:
        """
        Populate candidate.children with intersecting descendants.

        Args:
            candidate: Candidate receiving the children
            cell: Cell to subdivide
            num_levels: Number of levels to descend

        Returns:
            Number of children that are terminal
        """
        num_levels -= 1
        num_terminals = 0
        for child_cell in cell.subdivide():
            if num_levels > 0:
                if self._region.may_intersect(child_cell):
                    num_terminals += self._expand_children(candidate, child_cell, num_levels)
                continue
            child = self._new_candidate(child_cell)
            if child is not None:
                candidate.children.append(child)
                if child.is_terminal:
                    num_terminals += 1
        return num_terminals


def get_covering(
    region: LatLngRect,
    max_cells: int = 8,
    min_level: int = 0,
    max_level: int = MAX_LEVEL,
    level_mod: int = 1,
) -> tuple[CellUnion, CovererStats]:
    """
    Convenience function to cover a region.

    Args:
        region: Rectangle to cover
        max_cells: Soft limit on the number of cells
        min_level: Coarsest level allowed
        max_level: Finest level allowed
        level_mod: Level step

    Returns:
        Tuple of (CellUnion, CovererStats)
    """
    config = CovererConfig(
        max_cells=max_cells,
        min_level=min_level,
        max_level=max_level,
        level_mod=level_mod,
    )
    coverer = RegionCoverer(config)
    covering = coverer.get_covering(region)
    return covering, coverer.stats
