"""
Occupancy map of a slide grid.

A :class:`GridMap` is created empty for a single slide layout call, written
to while elements are placed and thrown away afterwards. Cells are stored in
a flat list indexed by ``row * cols + col`` (0-based internally, 1-based in
every public method that takes a :class:`GridPosition`).
"""
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .models import GridPosition


@dataclass
class GridCell:
    occupied: bool = False
    owner_index: Optional[int] = None


class GridMap:
    """rows x cols matrix of :class:`GridCell`."""

    def __init__(self, cols: int, rows: int):
        self.cols = cols
        self.rows = rows
        self._cells: List[GridCell] = [GridCell() for _ in range(cols * rows)]

    @classmethod
    def create_empty(cls, cols: int, rows: int) -> "GridMap":
        return cls(cols, rows)

    def _in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def cell(self, row: int, col: int) -> GridCell:
        """Return the cell at 1-based (row, col)."""
        if not self._in_bounds(row - 1, col - 1):
            raise IndexError(f"Cell ({row}, {col}) outside {self.cols}x{self.rows} grid")
        return self._cells[(row - 1) * self.cols + (col - 1)]

    def owner_at(self, row: int, col: int) -> Optional[int]:
        return self.cell(row, col).owner_index

    def is_area_available(self, position: GridPosition) -> bool:
        """
        True when every cell of ``position`` lies inside the map and is free.
        """
        for row in range(position.row_start - 1, position.row_end):
            for col in range(position.col_start - 1, position.col_end):
                if not self._in_bounds(row, col):
                    return False
                if self._cells[row * self.cols + col].occupied:
                    return False
        return True

    def place(self, position: GridPosition, owner_index: int) -> None:
        """
        Mark every in-bounds cell of ``position`` as owned by ``owner_index``.

        Out-of-bounds cells are skipped; positions are validated before they
        get here.
        """
        for row in range(position.row_start - 1, position.row_end):
            for col in range(position.col_start - 1, position.col_end):
                if self._in_bounds(row, col):
                    self._cells[row * self.cols + col] = GridCell(occupied=True, owner_index=owner_index)

    def occupied_count(self) -> int:
        return sum(1 for c in self._cells if c.occupied)

    def free_cells(self) -> Iterator[Tuple[int, int]]:
        """Yield 1-based (row, col) of every unoccupied cell, row-major."""
        for idx, c in enumerate(self._cells):
            if not c.occupied:
                yield idx // self.cols + 1, idx % self.cols + 1

    def copy(self) -> "GridMap":
        clone = GridMap(self.cols, self.rows)
        clone._cells = [GridCell(c.occupied, c.owner_index) for c in self._cells]
        return clone

    def to_rows(self) -> List[List[GridCell]]:
        return [
            [GridCell(c.occupied, c.owner_index) for c in self._cells[r * self.cols:(r + 1) * self.cols]]
            for r in range(self.rows)
        ]

    def __repr__(self):
        return f"<GridMap {self.cols}x{self.rows} occupied={self.occupied_count()}>"
