"""
Block segmentation of slide bodies.

A line that starts with a grid reference opens a *block*::

    [1-6, 2-8] {.card}
    ## Left
    - item

    [7-12, 2-8]
    ## Right

Every such header line is a boundary, whatever its indentation. A block
runs from its header to the next header (or the end of the slide) and its
region is shared out between the elements it produces, row-wise.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

from .errors import GridError
from .grid_parser import parse_block_grid_line, starts_with_grid_reference
from .models import Element, GridConfig, GridPosition, StyleOptions

logger = logging.getLogger(__name__)

TextParser = Callable[[str], List[Element]]

_FENCE_MARKERS = ("```", "~~~")


@dataclass
class Boundary:
    line_index: int
    line: str


@dataclass
class Segment:
    """A run of slide text, optionally governed by a block header line."""
    text: str
    header: Optional[str] = None

    @property
    def is_block(self) -> bool:
        return self.header is not None


def find_boundaries(text: str, aliases: Optional[Mapping[str, str]] = None,
                    grid: Optional[GridConfig] = None) -> List[Boundary]:
    """Return every block header line of ``text``, ignoring fenced code."""
    boundaries: List[Boundary] = []
    in_fence = False
    for idx, line in enumerate(text.split('\n')):
        stripped = line.strip()
        if stripped.startswith(_FENCE_MARKERS):
            in_fence = not in_fence
            continue
        if in_fence or not stripped.startswith('['):
            continue
        if starts_with_grid_reference(stripped, aliases, grid):
            boundaries.append(Boundary(idx, line))
    return boundaries


def split_segments(text: str, aliases: Optional[Mapping[str, str]] = None,
                   grid: Optional[GridConfig] = None) -> List[Segment]:
    """
    Split ``text`` at every block header line.

    The first segment (text before the first header) has no header and is
    omitted when blank.
    """
    boundaries = find_boundaries(text, aliases, grid)
    if not boundaries:
        return [Segment(text)] if text.strip() else []

    lines = text.split('\n')

    segments: List[Segment] = []
    leading = '\n'.join(lines[:boundaries[0].line_index])
    if leading.strip():
        segments.append(Segment(leading))

    for i, boundary in enumerate(boundaries):
        end = boundaries[i + 1].line_index if i + 1 < len(boundaries) else len(lines)
        body = '\n'.join(lines[boundary.line_index + 1:end])
        segments.append(Segment(body, header=boundary.line))

    return segments


def distribute_rows(position: GridPosition, count: int) -> List[GridPosition]:
    """
    Share the rows of ``position`` between ``count`` children.

    Each child gets ``max(1, rows // count)`` rows in order; the last child
    always runs to ``position.row_end`` and so takes any leftover rows. All
    children keep the full column range.
    """
    if count <= 0:
        return []
    total_rows = position.row_end - position.row_start + 1
    rows_per_child = max(1, total_rows // count)

    positions: List[GridPosition] = []
    current_row = position.row_start
    for i in range(count):
        if i == count - 1:
            row_end = position.row_end
        else:
            row_end = min(current_row + rows_per_child - 1, position.row_end)
        positions.append(GridPosition(position.col_start, position.col_end, current_row, row_end))
        current_row = row_end + 1
    return positions


def segment_elements(
    text: str,
    parse_text: TextParser,
    aliases: Optional[Mapping[str, str]] = None,
    grid: Optional[GridConfig] = None,
    position: Optional[GridPosition] = None,
    style: Optional[StyleOptions] = None,
) -> List[Element]:
    """
    Turn slide text into elements, honouring block header lines.

    Args:
        text: Slide body (or the body of a block)
        parse_text: Parser for plain Markdown without block headers
        aliases: Alias table for ``[name]`` references
        grid: Grid used to validate header positions
        position: Region of the enclosing block, if any
        style: Style of the enclosing block, inherited by unstyled children

    Raises:
        GridError: A block header position is outside ``grid``, or a block
            holds more elements than it has rows.
    """
    segments = split_segments(text, aliases, grid)
    elements: List[Element] = []

    if len(segments) == 1 and not segments[0].is_block:
        elements.extend(parse_text(segments[0].text))
    else:
        for segment in segments:
            if not segment.is_block:
                elements.extend(segment_elements(segment.text, parse_text, aliases, grid, None, style))
                continue

            header = parse_block_grid_line(segment.header, aliases, grid)
            body = segment.text
            if header.rest:
                body = f"{header.rest}\n{body}"
            logger.debug("Block %s with %d lines", header.position, body.count('\n') + 1)
            elements.extend(segment_elements(
                body, parse_text, aliases, grid, header.position, header.style or style,
            ))

    if position is not None and elements:
        row_count = position.row_end - position.row_start + 1
        if len(elements) > row_count:
            raise GridError(
                f"Block has too many elements for {row_count} rows ({len(elements)} elements)",
                position, grid,
                "Give the block more rows or split its content into several blocks",
            )
        for element, child_position in zip(elements, distribute_rows(position, len(elements))):
            element.position = child_position
            if style is not None and element.style is None:
                element.style = style

    return elements
