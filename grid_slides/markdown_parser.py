"""
Markdown front end: front matter, slide splitting and token → Element
conversion using markdown-it-py.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.front_matter import front_matter_plugin

from .grid_parser import extract_grid_and_style
from .models import (
    DEFAULT_GRID,
    Element,
    GridConfig,
    ListItem,
    ParsedDocument,
    Slide,
    TableData,
)
from .plugins import PluginRegistry, default_registry
from .segmenter import segment_elements

logger = logging.getLogger(__name__)

# A line consisting only of --- separates slides
SLIDE_DELIMITER = re.compile(r"^---[ \t]*$", re.MULTILINE)

VIDEO_PATTERN = re.compile(r"^!v\[([^\]]*)\]\(([^)\s]+)\)(.*)$", re.DOTALL)
IMAGE_PATTERN = re.compile(r"^!\[([^\]]*)\]\(([^)\s]+)\)(.*)$", re.DOTALL)

# Keys that may appear in a slide's own front matter block
FRONT_MATTER_KEYS = {
    "title", "grid", "layout", "theme", "classes", "aliases", "animations", "transition", "notes",
}


def sanitize_text(text: str) -> str:
    """Strip HTML tags from ``text``, keeping only the text content."""
    if '<' not in text and '&' not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text()


def _load_yaml_mapping(content: str) -> Optional[Dict[str, Any]]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse front matter: %s", exc)
        return None
    if data is None:
        # only comments (e.g. a "# Heading" line) is not front matter
        return {} if not content.strip() else None
    if not isinstance(data, dict):
        logger.warning("Front matter must be a mapping, got %s", type(data).__name__)
        return None
    return data


def _inline_text(node: SyntaxTreeNode) -> str:
    for child in node.children:
        if child.type == "inline":
            return child.content
    return ""


class MarkdownParser:
    """
    Converts annotated Markdown into a :class:`ParsedDocument`.
    """

    def __init__(self, grid: Optional[GridConfig] = None, registry: Optional[PluginRegistry] = None):
        """
        Args:
            grid: Grid that overrides any ``grid:`` front matter entry
            registry: Plugin registry consulted for custom element parsers
        """
        self.grid = grid
        self.registry = registry or default_registry
        self.markdown_processor = (
            MarkdownIt('commonmark', {'html': True})
            .enable(['table', 'strikethrough'])
            .use(front_matter_plugin)
        )

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self, markdown_text: str) -> ParsedDocument:
        """Parse a whole document into slides of unplaced elements."""
        logger.debug("Starting markdown parsing (%d chars)", len(markdown_text))
        front_matter, body = self.parse_front_matter(markdown_text)

        global_grid = self.grid or GridConfig.parse(front_matter.get('grid'))
        global_aliases = dict(front_matter.get('aliases') or {})

        slides: List[Slide] = []
        for slide_fm, content in self.split_slides(body):
            aliases = {**global_aliases, **(slide_fm.get('aliases') or {})}
            if self.grid is None and 'grid' in slide_fm:
                grid = GridConfig.parse(slide_fm.get('grid'))
            else:
                grid = global_grid
            elements = segment_elements(
                content,
                lambda text: self.parse_elements(text, aliases, grid),
                aliases,
                grid,
            )
            slides.append(Slide(
                front_matter=slide_fm,
                elements=elements,
                index=len(slides) + 1,
                grid=grid,
                aliases=aliases,
            ))
            logger.debug("Slide %d: %d elements on %s grid", len(slides), len(elements), grid)

        logger.info("Parsed %d slides from markdown", len(slides))
        document = ParsedDocument(front_matter=front_matter, slides=slides)
        return self.registry.run_hook("on_parse", document)

    def parse_front_matter(self, markdown_text: str) -> Tuple[Dict[str, Any], str]:
        """
        Split a leading ``---`` YAML block from the document.

        Malformed YAML is logged and the text is returned unchanged.
        """
        tokens = self.markdown_processor.parse(markdown_text)
        if not tokens or tokens[0].type != 'front_matter':
            return {}, markdown_text

        front_matter = _load_yaml_mapping(tokens[0].content)
        if front_matter is None:
            return {}, markdown_text

        end_line = tokens[0].map[1] if tokens[0].map else 0
        body = '\n'.join(markdown_text.split('\n')[end_line:])
        return front_matter, body

    def _slide_front_matter(self, chunk: str) -> Optional[Dict[str, Any]]:
        # A chunk that is nothing but a mapping of known keys configures the next slide
        if not re.match(r"^\s*[A-Za-z_]+\s*:", chunk):
            return None
        try:
            data = yaml.safe_load(chunk)
        except yaml.YAMLError:
            return None
        if not isinstance(data, dict) or not data:
            return None
        if not all(isinstance(k, str) and k in FRONT_MATTER_KEYS for k in data):
            return None
        return data

    def split_slides(self, body: str) -> List[Tuple[Dict[str, Any], str]]:
        """
        Split the document body at ``---`` lines.

        Returns a list of (slide front matter, slide text) pairs; blank
        slides are dropped.
        """
        slides: List[Tuple[Dict[str, Any], str]] = []
        pending: Optional[Dict[str, Any]] = None

        for chunk in SLIDE_DELIMITER.split(body):
            if not chunk.strip():
                continue
            slide_fm = self._slide_front_matter(chunk)
            if slide_fm is not None:
                pending = slide_fm
                continue
            slides.append((pending or {}, chunk.strip('\n')))
            pending = None

        if pending is not None:
            logger.warning("Ignoring slide front matter at end of document: %s", pending)
        return slides

    # ------------------------------------------------------------------
    # Element level
    # ------------------------------------------------------------------

    def parse_elements(self, text: str, aliases: Optional[Mapping[str, str]] = None,
                       grid: Optional[GridConfig] = None) -> List[Element]:
        """Convert plain Markdown (no block header lines) to elements."""
        grid = grid or DEFAULT_GRID
        lines = text.split('\n')
        root = SyntaxTreeNode(self.markdown_processor.parse(text))

        elements: List[Element] = []
        for node in root.children:
            element = self.node_to_element(node, aliases, grid)
            if element is None:
                continue
            if element.raw is None and node.map:
                element.raw = '\n'.join(lines[node.map[0]:node.map[1]])
            elements.append(element)
        return elements

    def node_to_element(self, node: SyntaxTreeNode, aliases: Optional[Mapping[str, str]],
                        grid: GridConfig) -> Optional[Element]:
        """Convert a top-level markdown-it node, giving plugins the first say."""
        plugin_parser = self.registry.get_element_parser(node.type)
        if plugin_parser:
            element = plugin_parser(node, aliases, grid)
            if element is not None:
                return element

        if node.type == 'heading':
            annotation = extract_grid_and_style(_inline_text(node), aliases, grid)
            return Element(
                type='heading',
                level=int(node.tag[1]),
                content=sanitize_text(annotation.clean_text),
                position=annotation.position,
                style=annotation.style,
            )

        if node.type == 'paragraph':
            return self._paragraph_to_element(_inline_text(node), aliases, grid)

        if node.type in ('bullet_list', 'ordered_list'):
            return Element(type='list', content=self._parse_list_items(node, 0))

        if node.type == 'table':
            return Element(type='table', content=self._parse_table(node))

        if node.type in ('fence', 'code_block'):
            language = (node.info or '').strip().split(' ')[0] if node.type == 'fence' else ''
            code = node.content.rstrip('\n')
            if language == 'mermaid':
                return Element(type='mermaid', content=code)
            return Element(type='code', content=code)

        if node.type == 'blockquote':
            parts = [n.content for n in node.walk() if n.type == 'inline']
            return Element(type='blockquote', content=sanitize_text('\n'.join(parts)))

        if node.type == 'html_block':
            content = sanitize_text(node.content).strip()
            if not content:
                return None
            return Element(type='paragraph', content=content)

        # hr, front_matter and anything else carry no slide content
        return None

    def _paragraph_to_element(self, text: str, aliases: Optional[Mapping[str, str]],
                              grid: GridConfig) -> Element:
        video_match = VIDEO_PATTERN.match(text)
        if video_match:
            annotation = extract_grid_and_style(video_match.group(3), aliases, grid)
            return Element(
                type='video',
                content=sanitize_text(video_match.group(2)),
                position=annotation.position,
                style=annotation.style,
                alt_text=video_match.group(1) or None,
            )

        image_match = IMAGE_PATTERN.match(text)
        if image_match:
            annotation = extract_grid_and_style(image_match.group(3), aliases, grid)
            return Element(
                type='image',
                content=sanitize_text(image_match.group(2)),
                position=annotation.position,
                style=annotation.style,
                alt_text=image_match.group(1) or None,
            )

        annotation = extract_grid_and_style(text, aliases, grid)
        return Element(
            type='paragraph',
            content=sanitize_text(annotation.clean_text),
            position=annotation.position,
            style=annotation.style,
        )

    def _parse_list_items(self, list_node: SyntaxTreeNode, depth: int) -> List[ListItem]:
        ordered = list_node.type == 'ordered_list'
        items: List[ListItem] = []
        for item_node in list_node.children:
            text = ''
            children: List[ListItem] = []
            for child in item_node.children:
                if child.type == 'paragraph' and not text:
                    # first line only
                    text = _inline_text(child).split('\n')[0]
                elif child.type in ('bullet_list', 'ordered_list'):
                    children.extend(self._parse_list_items(child, depth + 1))
            items.append(ListItem(
                text=sanitize_text(text),
                indent_level=depth,
                is_ordered=ordered,
                children=children,
            ))
        return items

    def _parse_table(self, table_node: SyntaxTreeNode) -> TableData:
        headers: List[str] = []
        rows: List[List[str]] = []
        for section in table_node.children:
            for row in section.children:
                cells = [sanitize_text(_inline_text(cell)) for cell in row.children]
                if section.type == 'thead':
                    headers = cells
                else:
                    rows.append(cells)
        return TableData(headers=headers, rows=rows)


def parse_markdown(markdown_text: str, grid: Optional[GridConfig] = None,
                   registry: Optional[PluginRegistry] = None) -> ParsedDocument:
    """Convenience wrapper around :meth:`MarkdownParser.parse`."""
    return MarkdownParser(grid=grid, registry=registry).parse(markdown_text)
