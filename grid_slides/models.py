"""
Data models for the grid slide generator.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import ContentTypeError

# Element type tags understood by the built-in parser and renderer.
# Plugins may introduce additional tags.
HEADING = "heading"
PARAGRAPH = "paragraph"
LIST = "list"
IMAGE = "image"
VIDEO = "video"
TABLE = "table"
CODE = "code"
BLOCKQUOTE = "blockquote"
MERMAID = "mermaid"

ELEMENT_TYPES = (HEADING, PARAGRAPH, LIST, IMAGE, VIDEO, TABLE, CODE, BLOCKQUOTE, MERMAID)

_GRID_STRING_RE = re.compile(r"^\s*(\d+)\s*x\s*(\d+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class GridPosition:
    """
    A rectangle on the slide grid. 1-indexed, inclusive on both ends.
    """
    col_start: int
    col_end: int
    row_start: int
    row_end: int

    @property
    def width(self) -> int:
        return self.col_end - self.col_start + 1

    @property
    def height(self) -> int:
        return self.row_end - self.row_start + 1

    @property
    def area(self) -> int:
        """Number of cells covered (rows x cols)."""
        return self.width * self.height

    def to_dict(self) -> Dict[str, int]:
        return {
            "colStart": self.col_start,
            "colEnd": self.col_end,
            "rowStart": self.row_start,
            "rowEnd": self.row_end,
        }

    def __str__(self):
        return f"[{self.col_start}-{self.col_end}, {self.row_start}-{self.row_end}]"


@dataclass(frozen=True)
class GridConfig:
    """Number of columns and rows a slide is divided into."""
    cols: int
    rows: int

    @classmethod
    def parse(cls, grid_str: Optional[str]) -> "GridConfig":
        """
        Parse a ``"<cols>x<rows>"`` string such as ``"12x9"``.

        Malformed strings never raise; they fall back to :data:`DEFAULT_GRID`.
        """
        if not isinstance(grid_str, str):
            return DEFAULT_GRID
        match = _GRID_STRING_RE.match(grid_str)
        if not match:
            return DEFAULT_GRID
        cols, rows = int(match.group(1)), int(match.group(2))
        if cols < 1 or rows < 1:
            return DEFAULT_GRID
        return cls(cols=cols, rows=rows)

    def __str__(self):
        return f"{self.cols}x{self.rows}"


DEFAULT_GRID = GridConfig(cols=12, rows=9)


@dataclass
class AnimationSpec:
    """Animation directives attached to an element. Times are milliseconds."""
    type: Optional[str] = None
    duration_ms: Optional[int] = None
    delay_ms: Optional[int] = None
    direction: Optional[str] = None
    trigger: Optional[str] = None
    repeat: Optional[int] = None
    speed: Optional[str] = None


@dataclass
class StyleOptions:
    """Classes, free-form properties and animation parsed from ``{...}``."""
    classes: List[str] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    animation: Optional[AnimationSpec] = None


@dataclass
class ListItem:
    text: str
    indent_level: int = 0
    is_ordered: bool = False
    children: List["ListItem"] = field(default_factory=list)


@dataclass
class TableData:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        """Number of data rows, header excluded."""
        return len(self.rows)


Content = Union[str, List[ListItem], TableData]


@dataclass
class Element:
    """
    A document element before placement.

    ``content`` is keyed by ``type``: list elements carry ``ListItem``s,
    tables carry ``TableData`` and everything else carries text. Use the
    typed accessors rather than inspecting ``content`` directly.
    """
    type: str
    content: Content = ""
    level: Optional[int] = None
    position: Optional[GridPosition] = None
    style: Optional[StyleOptions] = None
    alt_text: Optional[str] = None
    raw: Optional[str] = None

    def text_content(self) -> str:
        if not isinstance(self.content, str):
            raise ContentTypeError(self.type, "text")
        return self.content

    def list_items(self) -> List[ListItem]:
        if self.type != LIST or not isinstance(self.content, list):
            raise ContentTypeError(self.type, "list")
        return self.content

    def table_data(self) -> TableData:
        if self.type != TABLE or not isinstance(self.content, TableData):
            raise ContentTypeError(self.type, "table")
        return self.content

    @property
    def animation(self) -> Optional[AnimationSpec]:
        return self.style.animation if self.style else None

    def is_heading(self):
        return self.type == HEADING

    def is_list(self):
        return self.type == LIST

    def is_table(self):
        return self.type == TABLE


@dataclass
class PlacedElement(Element):
    """An Element whose grid position has been resolved."""

    @classmethod
    def from_element(cls, element: Element, position: GridPosition) -> "PlacedElement":
        if position is None:
            raise ValueError("PlacedElement requires a resolved position")
        return cls(
            type=element.type,
            content=element.content,
            level=element.level,
            position=position,
            style=element.style,
            alt_text=element.alt_text,
            raw=element.raw,
        )


@dataclass
class Slide:
    front_matter: Dict[str, Any] = field(default_factory=dict)
    elements: List[Element] = field(default_factory=list)
    index: int = 0
    grid: GridConfig = DEFAULT_GRID
    aliases: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedDocument:
    front_matter: Dict[str, Any] = field(default_factory=dict)
    slides: List[Slide] = field(default_factory=list)


@dataclass
class LayoutResult:
    """Placed elements in draw order plus a diagnostic copy of the grid map."""
    elements: List[PlacedElement]
    grid_map: Any
    grid: GridConfig = DEFAULT_GRID
