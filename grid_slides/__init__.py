"""Grid Slides – top-level package

Converts grid-annotated Markdown into PowerPoint slides. Exposes the public
API and sets up a minimal logging configuration so that every sub-module
can call

```python
import logging
logger = logging.getLogger(__name__)
```

and honour a single environment variable `GRIDSLIDES_LOG_LEVEL`.
"""

from __future__ import annotations

import logging
import os

LOG_LEVEL = os.getenv("GRIDSLIDES_LOG_LEVEL", "INFO").upper()
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

# Public API re-exports ------------------------------------------------
from .auto_layout import auto_place_elements, place  # noqa: E402
from .errors import GridError, GridSlidesError  # noqa: E402
from .generator import SlideGenerator  # noqa: E402
from .layout_engine import grid_to_coordinates, layout_document, layout_slide  # noqa: E402
from .markdown_parser import MarkdownParser, parse_markdown  # noqa: E402
from .models import (  # noqa: E402
    DEFAULT_GRID,
    Element,
    GridConfig,
    GridPosition,
    ParsedDocument,
    PlacedElement,
)
from .pptx_renderer import PPTXRenderer  # noqa: E402


def parse(markdown_text: str, grid: GridConfig | None = None) -> ParsedDocument:
    """Parse annotated Markdown into slides of unplaced elements."""
    return parse_markdown(markdown_text, grid=grid)


__all__ = [
    "DEFAULT_GRID",
    "Element",
    "GridConfig",
    "GridError",
    "GridPosition",
    "GridSlidesError",
    "MarkdownParser",
    "PPTXRenderer",
    "ParsedDocument",
    "PlacedElement",
    "SlideGenerator",
    "auto_place_elements",
    "grid_to_coordinates",
    "layout_document",
    "layout_slide",
    "parse",
    "parse_markdown",
    "place",
]
