#!/usr/bin/env python3
"""Automatic placement of slide elements on the grid."""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .errors import GridError
from .grid_map import GridMap
from .models import Element, GridConfig, GridPosition, LayoutResult, PlacedElement

logger = logging.getLogger(__name__)

# Default height (rows) per element type
ELEMENT_HEIGHT: Dict[str, int] = {
    'heading': 1,
    'paragraph': 2,
    'list': 3,
    'image': 4,
    'video': 4,
    'table': 3,
    'code': 3,
    'blockquote': 2,
    'mermaid': 4,
}

# Default width as a fraction of the grid's column count
ELEMENT_WIDTH_RATIO: Dict[str, float] = {
    'heading': 1.0,
    'paragraph': 1.0,
    'list': 0.75,
    'image': 0.5,
    'video': 0.5,
    'table': 1.0,
    'code': 0.8,
    'blockquote': 0.6,
    'mermaid': 0.8,
}

DEFAULT_HEIGHT = 2
DEFAULT_WIDTH_RATIO = 1.0
MAX_AUTO_HEIGHT = 6


@dataclass
class SizeTable:
    """
    Size estimates per element type.

    Starts from the built-in tables; registrations only touch this instance,
    so every plugin registry can carry its own hints.
    """
    heights: Dict[str, int] = field(default_factory=lambda: dict(ELEMENT_HEIGHT))
    width_ratios: Dict[str, float] = field(default_factory=lambda: dict(ELEMENT_WIDTH_RATIO))

    def register(self, element_type: str, height: Optional[int] = None,
                 width_ratio: Optional[float] = None) -> None:
        """Register size estimates for an element type (used by plugins)."""
        if height is not None:
            if height < 1:
                raise ValueError(f"Height for '{element_type}' must be >= 1, got {height}")
            self.heights[element_type] = int(height)
        if width_ratio is not None:
            if width_ratio <= 0:
                raise ValueError(f"Width ratio for '{element_type}' must be > 0, got {width_ratio}")
            self.width_ratios[element_type] = float(width_ratio)

    def height(self, element_type: str) -> int:
        return self.heights.get(element_type, DEFAULT_HEIGHT)

    def width_ratio(self, element_type: str) -> float:
        return self.width_ratios.get(element_type, DEFAULT_WIDTH_RATIO)


def validate_grid_position(position: GridPosition, grid: GridConfig) -> None:
    """
    Raise :class:`GridError` unless ``position`` lies inside ``grid``.

    This is the single validation rule for positions, whether they come from
    an inline annotation or reach the placement engine as explicit positions.
    """
    if position.col_start < 1 or position.col_start > grid.cols:
        raise GridError(
            f"Column start {position.col_start} is out of range (1-{grid.cols})",
            position, grid,
            f"Use column numbers between 1 and {grid.cols}",
        )
    if position.col_end < 1 or position.col_end > grid.cols:
        raise GridError(
            f"Column end {position.col_end} is out of range (1-{grid.cols})",
            position, grid,
            f"Use column numbers between 1 and {grid.cols}",
        )
    if position.row_start < 1 or position.row_start > grid.rows:
        raise GridError(
            f"Row start {position.row_start} is out of range (1-{grid.rows})",
            position, grid,
            f"Use row numbers between 1 and {grid.rows}",
        )
    if position.row_end < 1 or position.row_end > grid.rows:
        raise GridError(
            f"Row end {position.row_end} is out of range (1-{grid.rows})",
            position, grid,
            f"Use row numbers between 1 and {grid.rows}",
        )
    if position.col_start > position.col_end:
        raise GridError(
            f"Column start {position.col_start} is greater than column end {position.col_end}",
            position, grid,
            "Column start should be less than or equal to column end",
        )
    if position.row_start > position.row_end:
        raise GridError(
            f"Row start {position.row_start} is greater than row end {position.row_end}",
            position, grid,
            "Row start should be less than or equal to row end",
        )


def estimate_element_height(element: Element, sizes: Optional[SizeTable] = None) -> int:
    """Estimated height in rows."""
    if element.type == 'list' and isinstance(element.content, list):
        item_count = len(element.content)
        return min(math.ceil(item_count / 2) + 1, MAX_AUTO_HEIGHT)

    if element.type == 'table' and hasattr(element.content, 'rows'):
        # data rows plus the header row
        return min(len(element.content.rows) + 1, MAX_AUTO_HEIGHT)

    if sizes is not None:
        return sizes.height(element.type)
    return ELEMENT_HEIGHT.get(element.type, DEFAULT_HEIGHT)


def estimate_element_width(element: Element, grid_cols: int, sizes: Optional[SizeTable] = None) -> int:
    """Estimated width in columns, at least 1."""
    if sizes is not None:
        ratio = sizes.width_ratio(element.type)
    else:
        ratio = ELEMENT_WIDTH_RATIO.get(element.type, DEFAULT_WIDTH_RATIO)
    return max(1, math.floor(grid_cols * ratio))


def find_best_available_position(grid_map: GridMap, width: int, height: int,
                                 grid: GridConfig) -> Optional[GridPosition]:
    """
    First-fit scan for a free ``width`` x ``height`` rectangle.

    Anchors are tried row-major from the top-left corner; the first free
    rectangle wins.
    """
    for row in range(1, grid.rows - height + 2):
        for col in range(1, grid.cols - width + 2):
            position = GridPosition(col, col + width - 1, row, row + height - 1)
            if grid_map.is_area_available(position):
                return position
    return None


def _shrink_to_fit(grid_map: GridMap, width: int, height: int,
                   grid: GridConfig) -> Optional[GridPosition]:
    # narrower before shorter: width is reduced in the outer loop
    for w in range(width, 0, -1):
        for h in range(height, 0, -1):
            position = find_best_available_position(grid_map, w, h, grid)
            if position:
                return position
    return None


def sort_draw_order(placed: List[PlacedElement]) -> List[PlacedElement]:
    """
    Sort placed elements into draw order: top to bottom, left to right,
    smaller areas first. The sort is stable.
    """
    return sorted(
        placed,
        key=lambda e: (e.position.row_start, e.position.col_start, e.position.area),
    )


def auto_place_elements(
    elements: Sequence[Element],
    grid: GridConfig,
    slide_index: Optional[int] = None,
    grid_map: Optional[GridMap] = None,
    sizes: Optional[SizeTable] = None,
) -> List[PlacedElement]:
    """
    Place every element on the grid and return them in draw order.

    Elements with an explicit position are validated and kept exactly where
    they are (overlap between them is allowed). The rest are packed
    largest-first into free cells, shrinking when they do not fit.

    Args:
        elements: Elements of one slide
        grid: Grid the slide is divided into
        slide_index: Optional slide number used in error messages
        grid_map: Optional pre-populated map; a fresh one is created if omitted
        sizes: Size estimates to use instead of the built-in tables

    Raises:
        GridError: An explicit position is invalid, or an element cannot be
            placed even at 1x1.
    """
    if grid_map is None:
        grid_map = GridMap.create_empty(grid.cols, grid.rows)
    placed: List[PlacedElement] = []

    explicit = [e for e in elements if e.position is not None]
    implicit = [e for e in elements if e.position is None]

    # Smaller explicit regions are registered first
    explicit.sort(key=lambda e: e.position.area)

    # Larger implicit elements get first pick of the free space
    implicit.sort(
        key=lambda e: estimate_element_height(e, sizes) * estimate_element_width(e, grid.cols, sizes),
        reverse=True,
    )

    for element in explicit:
        validate_grid_position(element.position, grid)
        # no availability check: explicit overlays are allowed
        grid_map.place(element.position, len(placed))
        placed.append(PlacedElement.from_element(element, element.position))

    for element in implicit:
        height = estimate_element_height(element, sizes)
        width = estimate_element_width(element, grid.cols, sizes)
        position = find_best_available_position(grid_map, width, height, grid)

        if position is None:
            position = _shrink_to_fit(grid_map, width, height, grid)
            if position is not None:
                logger.debug(
                    "Shrunk %s from %dx%d to %dx%d",
                    element.type, width, height, position.width, position.height,
                )

        if position is None:
            slide_str = f" (slide {slide_index})" if slide_index is not None else ""
            raise GridError(
                f"Cannot place element of type {element.type} on the grid{slide_str}",
                None, grid,
                "Try reducing the number of elements or increasing grid size",
            )

        grid_map.place(position, len(placed))
        placed.append(PlacedElement.from_element(element, position))

    logger.debug(
        "Placed %d explicit and %d implicit elements on %s grid",
        len(explicit), len(implicit), grid,
    )
    return sort_draw_order(placed)


place = auto_place_elements


def place_with_map(
    elements: Sequence[Element],
    grid: GridConfig,
    slide_index: Optional[int] = None,
    sizes: Optional[SizeTable] = None,
) -> LayoutResult:
    """Like :func:`auto_place_elements` but also return the occupancy map."""
    grid_map = GridMap.create_empty(grid.cols, grid.rows)
    placed = auto_place_elements(elements, grid, slide_index, grid_map=grid_map, sizes=sizes)
    return LayoutResult(elements=placed, grid_map=grid_map.copy(), grid=grid)
