#!/usr/bin/env python3
"""Slide layout: grid placement and projection to slide coordinates."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .auto_layout import SizeTable, auto_place_elements
from .grid_map import GridMap
from .models import GridConfig, GridPosition, LayoutResult, ParsedDocument, PlacedElement, Slide

logger = logging.getLogger(__name__)

# Slide size in inches (16:10) and the blank border kept around the grid
SLIDE_SIZE: Tuple[float, float] = (10.0, 6.25)
DEFAULT_MARGIN = 0.5


@dataclass(frozen=True)
class Coordinates:
    """A rectangle in slide units (inches by default)."""
    x: float
    y: float
    w: float
    h: float


def grid_to_coordinates(
    position: GridPosition,
    grid: GridConfig,
    slide_size: Tuple[float, float] = SLIDE_SIZE,
    margin: float = DEFAULT_MARGIN,
) -> Coordinates:
    """
    Project a grid rectangle onto the slide.

    The content area is the slide minus ``margin`` on every side, divided
    evenly into ``grid.cols`` x ``grid.rows`` cells. Values are not rounded.

    Args:
        position: 1-based inclusive grid rectangle
        grid: Grid the slide is divided into
        slide_size: (width, height) of the slide
        margin: Border around the content area, same unit as ``slide_size``
    """
    width, height = slide_size
    cell_width = (width - margin * 2) / grid.cols
    cell_height = (height - margin * 2) / grid.rows

    return Coordinates(
        x=margin + (position.col_start - 1) * cell_width,
        y=margin + (position.row_start - 1) * cell_height,
        w=(position.col_end - position.col_start + 1) * cell_width,
        h=(position.row_end - position.row_start + 1) * cell_height,
    )


def build_grid_map(elements: Sequence[PlacedElement], grid: GridConfig) -> GridMap:
    """Occupancy map of ``elements``; later elements own shared cells."""
    grid_map = GridMap.create_empty(grid.cols, grid.rows)
    for index, element in enumerate(elements):
        grid_map.place(element.position, index)
    return grid_map


def render_grid_map(grid_map: GridMap) -> str:
    """
    Text preview of a grid map, one character per cell.

    Free cells are ``.``; occupied cells show the owner index in base 36.
    """
    symbols = "0123456789abcdefghijklmnopqrstuvwxyz"
    lines = []
    for row in grid_map.to_rows():
        chars = []
        for cell in row:
            if not cell.occupied:
                chars.append('.')
            elif cell.owner_index is None:
                chars.append('#')
            else:
                chars.append(symbols[cell.owner_index % len(symbols)])
        lines.append(''.join(chars))
    return '\n'.join(lines)


def layout_slide(slide: Slide, grid: Optional[GridConfig] = None,
                 sizes: Optional[SizeTable] = None) -> LayoutResult:
    """
    Place the elements of one slide.

    Args:
        slide: Parsed slide
        grid: Grid to use instead of the one resolved for the slide
        sizes: Size estimates, usually those of the plugin registry

    Raises:
        GridError: An element position is invalid or cannot be satisfied.
    """
    grid = grid or slide.grid
    elements = auto_place_elements(slide.elements, grid, slide_index=slide.index, sizes=sizes)
    grid_map = build_grid_map(elements, grid)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Slide %d layout on %s grid:\n%s", slide.index, grid, render_grid_map(grid_map))

    return LayoutResult(elements=elements, grid_map=grid_map, grid=grid)


def layout_document(document: ParsedDocument, sizes: Optional[SizeTable] = None) -> List[LayoutResult]:
    """Lay out every slide of ``document`` in order."""
    results = [layout_slide(slide, sizes=sizes) for slide in document.slides]
    logger.info("Laid out %d slides", len(results))
    return results
