"""
Parser for the inline grid and style annotations.

Grid references::

    [3]            column 3, every row
    [1-6]          columns 1-6, every row
    [3, 5]         column 3, row 5
    [1-6, 2-8]     columns 1-6, rows 2-8
    [sidebar]      alias looked up in the front matter ``aliases`` table

Style / animation directives::

    {.center .blue bg=#f0f0f0 animation=fadein duration:0.5}
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .auto_layout import validate_grid_position
from .errors import AliasCycleError
from .models import DEFAULT_GRID, AnimationSpec, GridConfig, GridPosition, StyleOptions

logger = logging.getLogger(__name__)

# [1-6, 2-8], [3, 5], [1-6], [3] – not an image alt text and not a link label
GRID_PATTERN = re.compile(
    r"(?<!!)\[\s*(\d+)(?:\s*-\s*(\d+))?\s*(?:,\s*(\d+)(?:\s*-\s*(\d+))?\s*)?\](?!\()"
)

# [name] – a reference into the alias table
ALIAS_PATTERN = re.compile(r"(?<!!)\[([A-Za-z_][\w-]*)\](?![(\[:])")

# {.class1 .class2 key=value key2:value2}
STYLE_PATTERN = re.compile(r"\{([^}]+)\}")

# directive key -> AnimationSpec field
ANIMATION_KEYS: Dict[str, str] = {
    'animation': 'type',
    'animation-type': 'type',
    'animation-duration': 'duration_ms',
    'animation-delay': 'delay_ms',
    'animation-direction': 'direction',
    'animation-trigger': 'trigger',
    'animation-repeat': 'repeat',
    'animation-speed': 'speed',
    'duration': 'duration_ms',
    'delay': 'delay_ms',
    'direction': 'direction',
    'trigger': 'trigger',
    'repeat': 'repeat',
    'speed': 'speed',
}


@dataclass
class Annotation:
    position: Optional[GridPosition]
    style: Optional[StyleOptions]
    clean_text: str


@dataclass
class BlockHeader:
    is_grid_block: bool
    position: Optional[GridPosition] = None
    style: Optional[StyleOptions] = None
    rest: str = ""


def _position_from_match(match: re.Match, grid: GridConfig) -> GridPosition:
    col_start = int(match.group(1))
    col_end = int(match.group(2)) if match.group(2) else col_start
    if match.group(3):
        row_start = int(match.group(3))
        row_end = int(match.group(4)) if match.group(4) else row_start
    else:
        # column-only reference spans the full height
        row_start, row_end = 1, grid.rows
    return GridPosition(col_start, col_end, row_start, row_end)


def resolve_alias(name: str, aliases: Optional[Mapping[str, str]],
                  grid: Optional[GridConfig] = None,
                  _seen: Optional[List[str]] = None) -> Optional[GridPosition]:
    """
    Resolve an alias name to a grid position.

    Alias values are grid references (``"[1-12, 1]"``) or other aliases
    (``"[header]"``), followed recursively. Returns ``None`` when the name is
    unknown or the chain ends in something that is not a grid reference.

    Raises:
        AliasCycleError: The chain visits the same name twice.
    """
    if not aliases or name not in aliases:
        return None
    grid = grid or DEFAULT_GRID
    seen = list(_seen or [])
    if name in seen:
        raise AliasCycleError(seen + [name])
    seen.append(name)

    value = str(aliases[name]).strip()
    grid_match = GRID_PATTERN.fullmatch(value)
    if grid_match:
        return _position_from_match(grid_match, grid)

    alias_match = ALIAS_PATTERN.fullmatch(value)
    if alias_match:
        return resolve_alias(alias_match.group(1), aliases, grid, seen)

    logger.debug("Alias '%s' resolves to unrecognised value %r", name, value)
    return None


def _find_position(text: str, aliases: Optional[Mapping[str, str]], grid: GridConfig,
                   anchored: bool = False) -> Tuple[Optional[GridPosition], Optional[re.Match]]:
    grid_match = GRID_PATTERN.match(text) if anchored else GRID_PATTERN.search(text)
    if grid_match:
        return _position_from_match(grid_match, grid), grid_match

    if aliases:
        candidates = [ALIAS_PATTERN.match(text)] if anchored else ALIAS_PATTERN.finditer(text)
        for alias_match in candidates:
            if alias_match is None:
                continue
            position = resolve_alias(alias_match.group(1), aliases, grid)
            if position is not None:
                return position, alias_match

    return None, None


def _strip_span(text: str, match: re.Match) -> str:
    return (text[:match.start()] + text[match.end():]).strip()


def extract_grid_position(text: str, aliases: Optional[Mapping[str, str]] = None,
                          grid: Optional[GridConfig] = None) -> Tuple[Optional[GridPosition], str]:
    """
    Extract a grid reference (or alias) from ``text``.

    Returns:
        Tuple of (position or None, text with the reference removed)

    Raises:
        GridError: The reference is outside ``grid`` or inverted.
    """
    grid = grid or DEFAULT_GRID
    position, match = _find_position(text, aliases, grid)
    if position is None:
        return None, text

    validate_grid_position(position, grid)
    return position, _strip_span(text, match)


def _parse_seconds(value: str) -> int:
    return int(round(float(value) * 1000))


def _parse_directives(style_content: str) -> StyleOptions:
    classes: List[str] = []
    properties: Dict[str, str] = {}
    animation: Dict[str, object] = {}

    for part in style_content.split():
        if part.startswith('.'):
            if len(part) > 1:
                classes.append(part[1:])
            continue

        if '=' in part:
            key, value = part.split('=', 1)
        elif ':' in part:
            key, value = part.split(':', 1)
        else:
            continue
        value = value.replace('"', '').replace("'", '')

        field_name = ANIMATION_KEYS.get(key.lower())
        if field_name is None:
            properties[key] = value
            continue

        try:
            if field_name in ('duration_ms', 'delay_ms'):
                animation[field_name] = _parse_seconds(value)
            elif field_name == 'repeat':
                animation[field_name] = int(value)
            else:
                animation[field_name] = value
        except ValueError:
            logger.debug("Keeping malformed animation directive %s=%s as a property", key, value)
            properties[key] = value

    return StyleOptions(
        classes=classes,
        properties=properties,
        animation=AnimationSpec(**animation) if animation else None,
    )


def extract_style(text: str) -> Tuple[Optional[StyleOptions], str]:
    """
    Extract a ``{...}`` style block from ``text``.

    Returns:
        Tuple of (style or None, text with the block removed)
    """
    match = STYLE_PATTERN.search(text)
    if not match:
        return None, text
    return _parse_directives(match.group(1)), _strip_span(text, match)


def extract_grid_and_style(text: str, aliases: Optional[Mapping[str, str]] = None,
                           grid: Optional[GridConfig] = None) -> Annotation:
    """Extract both the grid reference and the style block from ``text``."""
    position, after_grid = extract_grid_position(text, aliases, grid)
    style, clean_text = extract_style(after_grid)
    return Annotation(position=position, style=style, clean_text=clean_text)


def starts_with_grid_reference(line: str, aliases: Optional[Mapping[str, str]] = None,
                               grid: Optional[GridConfig] = None) -> bool:
    """True when the trimmed line begins with a grid reference or known alias."""
    position, _ = _find_position(line.strip(), aliases, grid or DEFAULT_GRID, anchored=True)
    return position is not None


def parse_block_grid_line(line: str, aliases: Optional[Mapping[str, str]] = None,
                          grid: Optional[GridConfig] = None) -> BlockHeader:
    """
    Parse a block header line such as ``[1-6, 2-8] {.card}``.

    The reference must open the line. Whatever text remains after the
    reference and style block are removed is returned as ``rest``.

    Raises:
        GridError: The reference is outside ``grid`` or inverted.
    """
    grid = grid or DEFAULT_GRID
    trimmed = line.strip()
    position, match = _find_position(trimmed, aliases, grid, anchored=True)
    if position is None:
        return BlockHeader(is_grid_block=False)

    validate_grid_position(position, grid)
    style, rest = extract_style(_strip_span(trimmed, match))
    return BlockHeader(is_grid_block=True, position=position, style=style, rest=rest)
