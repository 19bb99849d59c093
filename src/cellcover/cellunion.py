"""
Cell unions: a region represented as a sorted set of disjoint cells.

A normalized union is sorted in curve order, has no cell contained by
another, and never holds all four children of a parent (they are replaced
by the parent). Normalization, expansion and denormalization are the steps
that turn a minimal covering into a uniform-level index layer.
"""

from __future__ import annotations
from bisect import bisect_left
from typing import Iterable, Iterator, List

from .cellid import CellId, lowest_on_bit_for_level
from .projection import MAX_LEVEL

_ID_MASK = (1 << 64) - 1


class CellUnion:
    """
    An ordered, normalized collection of CellIds.

    The constructor normalizes its input; use from_normalized() to wrap a
    list that is already known to be normalized.
    """

    def __init__(self, cell_ids: Iterable[CellId] = ()):
        self._cells: List[CellId] = normalize(cell_ids)

    @classmethod
    def from_normalized(cls, cell_ids: List[CellId]) -> CellUnion:
        union = cls.__new__(cls)
        union._cells = list(cell_ids)
        return union

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[CellId]:
        return iter(self._cells)

    def __getitem__(self, index: int) -> CellId:
        return self._cells[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellUnion):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        tokens = ", ".join(c.to_token() for c in self._cells[:8])
        more = ", ..." if len(self._cells) > 8 else ""
        return f"CellUnion([{tokens}{more}], size={len(self._cells)})"

    @property
    def cell_ids(self) -> List[CellId]:
        return list(self._cells)

    def is_normalized(self) -> bool:
        return normalize(self._cells) == self._cells

    def normalize(self) -> bool:
        """
        Normalize in place.

        Returns:
            True if the union changed
        """
        normalized = normalize(self._cells)
        changed = normalized != self._cells
        self._cells = normalized
        return changed

    def contains(self, cell_id: CellId) -> bool:
        """True iff the union contains the given cell (or leaf)."""
        idx = bisect_left(self._cells, cell_id)
        if idx < len(self._cells) and self._cells[idx].range_min().id <= cell_id.id:
            return True
        return idx > 0 and self._cells[idx - 1].range_max().id >= cell_id.id

    def intersects(self, cell_id: CellId) -> bool:
        """True iff some cell of the union intersects the given cell."""
        idx = bisect_left(self._cells, cell_id)
        if idx < len(self._cells) and self._cells[idx].range_min().id <= cell_id.range_max().id:
            return True
        return idx > 0 and self._cells[idx - 1].range_max().id >= cell_id.range_min().id

    def expand(self, level: int) -> None:
        """
        Grow the union by one cell width at the given level.

        Cells finer than the level are first replaced by their ancestor at
        that level. Every resulting cell then contributes all of its
        neighbors at the level, sharing an edge or a vertex. The union is
        renormalized.
        """
        if not 0 <= level <= MAX_LEVEL:
            raise ValueError(f"level must be in [0, {MAX_LEVEL}], got {level}")

        output: List[CellId] = []
        level_lsb = lowest_on_bit_for_level(level)
        i = len(self._cells) - 1
        while i >= 0:
            cell_id = self._cells[i]
            if cell_id.lowest_on_bit() < level_lsb:
                cell_id = cell_id.parent(level)
                # Skip the remaining cells this ancestor already covers.
                while i > 0 and cell_id.contains(self._cells[i - 1]):
                    i -= 1
            output.append(cell_id)
            output.extend(cell_id.all_neighbors(level))
            i -= 1
        self._cells = normalize(output)

    def denormalize(self, min_level: int, level_mod: int = 1) -> List[CellId]:
        """
        Replace every cell coarser than min_level by its descendants.

        Cells are replaced by all of their descendants at min_level; with
        level_mod > 1 the target level is rounded up so that
        (level - min_level) is a multiple of level_mod. Cells already at or
        below the target level are kept as they are.

        Returns:
            A new list; the union itself is unchanged
        """
        if not 0 <= min_level <= MAX_LEVEL:
            raise ValueError(f"min_level must be in [0, {MAX_LEVEL}], got {min_level}")
        if not 1 <= level_mod <= 3:
            raise ValueError(f"level_mod must be in [1, 3], got {level_mod}")

        output: List[CellId] = []
        for cell_id in self._cells:
            level = cell_id.level
            new_level = max(min_level, level)
            if level_mod > 1:
                new_level += (MAX_LEVEL - (new_level - min_level)) % level_mod
                new_level = min(MAX_LEVEL, new_level)
            if new_level == level:
                output.append(cell_id)
            else:
                output.extend(cell_id.iter_descendants(new_level))
        return output

    def leaf_cells_covered(self) -> int:
        """Number of leaf cells covered by the union."""
        return sum(1 << (2 * (MAX_LEVEL - c.level)) for c in self._cells)


def normalize(cell_ids: Iterable[CellId]) -> List[CellId]:
    """
    Return the canonical form of a set of cells.

    Sorts by curve order, drops cells contained by another cell, and
    replaces every complete group of four siblings by their parent,
    cascading upward.
    """
    output: List[CellId] = []
    for cell_id in sorted(cell_ids):
        # Contained by the previous cell.
        if output and output[-1].contains(cell_id):
            continue

        # Discard previous cells contained by this one.
        while output and cell_id.contains(output[-1]):
            output.pop()

        # Collapse the last three cells plus this one into their parent.
        while len(output) >= 3:
            a, b, c = output[-3].id, output[-2].id, output[-1].id
            # The XOR of four siblings is zero; cheap necessary condition.
            if a ^ b ^ c != cell_id.id:
                break
            # Exact test: mask out the two child-position bits of this level.
            mask = cell_id.lowest_on_bit() << 1
            mask = ~(mask + (mask << 1)) & _ID_MASK
            id_masked = cell_id.id & mask
            if (
                (a & mask) != id_masked
                or (b & mask) != id_masked
                or (c & mask) != id_masked
                or cell_id.is_face()
            ):
                break
            del output[-3:]
            cell_id = cell_id.parent()

        output.append(cell_id)
    return output
