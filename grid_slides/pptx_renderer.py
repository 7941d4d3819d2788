#!/usr/bin/env python3
"""
PowerPoint renderer for placed slide elements.
"""

import io
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from PIL import Image, ImageDraw
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Inches, Pt

from .animations import ShapeAnimation, add_animations
from .layout_engine import DEFAULT_MARGIN, SLIDE_SIZE, Coordinates, grid_to_coordinates
from .models import GridConfig, LayoutResult, ListItem, PlacedElement
from .paths import fetch_asset, is_remote, resolve_asset
from .plugins import PluginRegistry, default_registry
from .theme import Theme, get_theme, hex_to_rgb, resolve_style

logger = logging.getLogger(__name__)

BLANK_LAYOUT = 6
ACCENT_BAR_WIDTH = 0.08
POSTER_WIDTH = 640

_ALIGNMENTS = {
    'left': PP_ALIGN.LEFT,
    'center': PP_ALIGN.CENTER,
    'right': PP_ALIGN.RIGHT,
}

_ANCHORS = {
    'top': MSO_ANCHOR.TOP,
    'middle': MSO_ANCHOR.MIDDLE,
    'bottom': MSO_ANCHOR.BOTTOM,
}


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor(*hex_to_rgb(hex_color))


def calculate_centered_fit(image_width: float, image_height: float, area: Coordinates) -> Coordinates:
    """
    Largest rectangle with the image's aspect ratio that fits ``area``,
    centred inside it.
    """
    if image_width <= 0 or image_height <= 0 or area.w <= 0 or area.h <= 0:
        return area
    image_aspect = image_width / image_height
    area_aspect = area.w / area.h

    if image_aspect > area_aspect:
        width = area.w
        height = area.w / image_aspect
    else:
        height = area.h
        width = area.h * image_aspect

    return Coordinates(
        x=area.x + (area.w - width) / 2,
        y=area.y + (area.h - height) / 2,
        w=width,
        h=height,
    )


def flatten_list_items(items: Sequence[ListItem]) -> List[ListItem]:
    """Depth-first flattening of nested list items."""
    flat: List[ListItem] = []
    for item in items:
        flat.append(item)
        flat.extend(flatten_list_items(item.children))
    return flat


@dataclass
class RenderContext:
    """What a plugin element generator gets besides the element and slide."""
    coordinates: Coordinates
    style: Dict[str, Any]
    theme: Theme
    grid: GridConfig
    renderer: "PPTXRenderer"
    extras: Dict[str, Any] = field(default_factory=dict)


class PPTXRenderer:
    """
    Renderer for converting slide layouts to a PowerPoint presentation.
    """

    def __init__(
        self,
        theme: Optional[str] = None,
        custom_classes: Optional[Mapping[str, Mapping[str, Any]]] = None,
        base_dir: Optional[Path] = None,
        registry: Optional[PluginRegistry] = None,
        slide_size=SLIDE_SIZE,
        margin: float = DEFAULT_MARGIN,
    ):
        """
        Args:
            theme: Theme name (``default`` / ``dark``)
            custom_classes: Style classes from the front matter ``classes:`` table
            base_dir: Base directory for relative image and video paths
            registry: Plugin registry for custom element generators
            slide_size: (width, height) in inches
            margin: Border kept around the grid, in inches
        """
        self.theme = get_theme(theme)
        self.custom_classes = dict(custom_classes or {})
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.registry = registry or default_registry
        self.slide_size = slide_size
        self.margin = margin
        self.mermaid_images: Dict[str, Path] = {}

    def render(self, layouts: Sequence[LayoutResult], output_path, title: Optional[str] = None,
               mermaid_images: Optional[Mapping[str, Path]] = None) -> str:
        """
        Render one slide per layout and save the presentation.

        Args:
            layouts: Layout results in slide order
            output_path: Destination ``.pptx`` path
            title: Presentation title stored in the document properties
            mermaid_images: Mermaid source -> rendered PNG

        Returns:
            The output path as a string
        """
        self.mermaid_images = dict(mermaid_images or {})

        prs = Presentation()
        prs.slide_width = Inches(self.slide_size[0])
        prs.slide_height = Inches(self.slide_size[1])
        if title:
            prs.core_properties.title = str(title)

        for layout in layouts:
            slide = self._add_blank_slide(prs)
            animations: List[ShapeAnimation] = []
            for element in layout.elements:
                shape_count = len(slide.shapes)
                self.add_element(slide, element, layout.grid)
                if element.animation is not None:
                    shape_ids = [shape.shape_id for shape in list(slide.shapes)[shape_count:]]
                    animations.append(ShapeAnimation(shape_ids, element.animation))
            add_animations(slide, animations)

        if not layouts:
            self._add_blank_slide(prs)

        prs = self.registry.run_hook("on_generate", prs)
        prs.save(str(output_path))
        logger.info("Saved %d slides to %s", len(prs.slides), output_path)
        return str(output_path)

    def _add_blank_slide(self, prs):
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
        bg_hex = self.theme.colors.get('background')
        if bg_hex and bg_hex.lower() != '#ffffff':
            fill = slide.background.fill
            fill.solid()
            fill.fore_color.rgb = _rgb(bg_hex)
        return slide

    # ------------------------------------------------------------------
    # Element dispatch
    # ------------------------------------------------------------------

    def add_element(self, slide, element: PlacedElement, grid: GridConfig) -> None:
        """Draw a single placed element onto ``slide``."""
        coords = grid_to_coordinates(element.position, grid, self.slide_size, self.margin)
        style = resolve_style(element.style, self.custom_classes)

        generator = self.registry.get_element_generator(element.type)
        if generator is not None:
            context = RenderContext(coords, style, self.theme, grid, self)
            generator(element, slide, context)
            return

        handler = getattr(self, f"_add_{element.type}", None)
        if handler is None:
            logger.warning("No renderer for element type '%s'; drawing its text", element.type)
            if isinstance(element.content, str) and element.content.strip():
                self._add_text_box(slide, coords, element.content, style)
            return

        handler(slide, element, coords, style)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _box(self, coords: Coordinates):
        return Inches(coords.x), Inches(coords.y), Inches(coords.w), Inches(coords.h)

    def _apply_shape_style(self, shape, style: Dict[str, Any]) -> None:
        if style.get('fill'):
            shape.fill.solid()
            shape.fill.fore_color.rgb = _rgb(style['fill'])
        if style.get('line'):
            shape.line.color.rgb = _rgb(style['line'])
            shape.line.width = Pt(1)

    def _apply_run_style(self, run, style: Dict[str, Any], size: int, color: str,
                         bold: bool = False, font_name: Optional[str] = None) -> None:
        font = run.font
        font.size = Pt(style.get('font_size', size))
        font.bold = bool(style.get('bold', bold))
        if style.get('italic'):
            font.italic = True
        font.name = font_name or self.theme.fonts.get('body')
        font.color.rgb = _rgb(style.get('color', color))

    def _apply_frame_style(self, text_frame, style: Dict[str, Any]) -> None:
        text_frame.word_wrap = True
        anchor = _ANCHORS.get(style.get('valign', ''))
        if anchor is not None:
            text_frame.vertical_anchor = anchor
        alignment = _ALIGNMENTS.get(style.get('align', ''))
        if alignment is not None:
            for paragraph in text_frame.paragraphs:
                paragraph.alignment = alignment

    def _add_text_box(self, slide, coords: Coordinates, text: str, style: Dict[str, Any],
                      size: Optional[int] = None, bold: bool = False, font_name: Optional[str] = None):
        textbox = slide.shapes.add_textbox(*self._box(coords))
        self._apply_shape_style(textbox, style)
        text_frame = textbox.text_frame
        size = size or self.theme.font_sizes['body']

        for idx, line in enumerate(text.split('\n')):
            paragraph = text_frame.paragraphs[0] if idx == 0 else text_frame.add_paragraph()
            run = paragraph.add_run()
            run.text = line
            self._apply_run_style(run, style, size, self.theme.colors['text'], bold, font_name)

        self._apply_frame_style(text_frame, style)
        return textbox

    # ------------------------------------------------------------------
    # Built-in element types
    # ------------------------------------------------------------------

    def _add_heading(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        sizes = self.theme.font_sizes
        size = sizes.get(f"h{element.level or 1}", sizes['h3'])
        textbox = self._add_text_box(
            slide, coords, element.text_content(), style, size=size, bold=True,
            font_name=self.theme.fonts.get('title'),
        )
        if 'color' not in style:
            for paragraph in textbox.text_frame.paragraphs:
                for run in paragraph.runs:
                    run.font.color.rgb = _rgb(self.theme.colors['primary'] if element.level == 1
                                              else self.theme.colors['text'])

    def _add_paragraph(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        self._add_text_box(slide, coords, element.text_content(), style)

    def _add_list(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        textbox = slide.shapes.add_textbox(*self._box(coords))
        self._apply_shape_style(textbox, style)
        text_frame = textbox.text_frame
        size = self.theme.font_sizes['body']

        counters: Dict[int, int] = {}
        for idx, item in enumerate(flatten_list_items(element.list_items())):
            # numbering restarts below a shallower item
            for level in [lvl for lvl in counters if lvl > item.indent_level]:
                del counters[level]
            if item.is_ordered:
                counters[item.indent_level] = counters.get(item.indent_level, 0) + 1
                prefix = f"{counters[item.indent_level]}. "
            else:
                prefix = "• " if item.indent_level == 0 else "– "

            paragraph = text_frame.paragraphs[0] if idx == 0 else text_frame.add_paragraph()
            paragraph.level = min(item.indent_level, 8)
            run = paragraph.add_run()
            run.text = f"{prefix}{item.text}"
            item_size = max(10, size - 2 * item.indent_level)
            self._apply_run_style(run, style, item_size, self.theme.colors['text'])

        self._apply_frame_style(text_frame, style)

    def _add_table(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        data = element.table_data()
        header_rows = 1 if data.headers else 0
        row_count = header_rows + data.row_count
        col_count = max([len(data.headers)] + [len(r) for r in data.rows])
        if row_count == 0 or col_count == 0:
            logger.warning("Skipping empty table")
            return

        table = slide.shapes.add_table(row_count, col_count, *self._box(coords)).table
        size = self.theme.font_sizes['small']
        colors = self.theme.colors

        all_rows = ([data.headers] if data.headers else []) + data.rows
        for row_idx, row in enumerate(all_rows):
            is_header = row_idx < header_rows
            for col_idx in range(col_count):
                cell = table.cell(row_idx, col_idx)
                cell.text = row[col_idx] if col_idx < len(row) else ''
                if is_header:
                    cell.fill.solid()
                    cell.fill.fore_color.rgb = _rgb(colors['table_header'])
                elif (row_idx - header_rows) % 2 == 1:
                    cell.fill.solid()
                    cell.fill.fore_color.rgb = _rgb(colors['table_band'])
                else:
                    cell.fill.solid()
                    cell.fill.fore_color.rgb = _rgb(colors['background'])
                for paragraph in cell.text_frame.paragraphs:
                    for run in paragraph.runs:
                        run.font.size = Pt(style.get('font_size', size))
                        run.font.bold = is_header
                        run.font.color.rgb = _rgb(colors['table_header_text'] if is_header else colors['text'])

    def _add_code(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, *self._box(coords))
        shape.fill.solid()
        shape.fill.fore_color.rgb = _rgb(style.get('fill', self.theme.colors['code_background']))
        shape.line.fill.background()

        text_frame = shape.text_frame
        text_frame.word_wrap = True
        text_frame.vertical_anchor = MSO_ANCHOR.TOP
        for margin in ('margin_left', 'margin_right', 'margin_top', 'margin_bottom'):
            setattr(text_frame, margin, Inches(0.1))

        code_style = {k: v for k, v in style.items() if k != 'fill'}
        for idx, line in enumerate(element.text_content().split('\n')):
            paragraph = text_frame.paragraphs[0] if idx == 0 else text_frame.add_paragraph()
            paragraph.alignment = PP_ALIGN.LEFT
            run = paragraph.add_run()
            run.text = line
            self._apply_run_style(
                run, code_style, self.theme.font_sizes['code'], self.theme.colors['code_text'],
                font_name=self.theme.fonts.get('code'),
            )

    def _add_blockquote(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        bar = slide.shapes.add_shape(
            MSO_SHAPE.RECTANGLE, Inches(coords.x), Inches(coords.y), Inches(ACCENT_BAR_WIDTH), Inches(coords.h),
        )
        bar.fill.solid()
        bar.fill.fore_color.rgb = _rgb(self.theme.colors['accent'])
        bar.line.fill.background()

        text_coords = Coordinates(
            x=coords.x + ACCENT_BAR_WIDTH * 2,
            y=coords.y,
            w=max(coords.w - ACCENT_BAR_WIDTH * 2, ACCENT_BAR_WIDTH),
            h=coords.h,
        )
        quote_style = {'italic': True, 'color': self.theme.colors['secondary'], **style}
        self._add_text_box(slide, text_coords, element.text_content(), quote_style)

    def _add_picture_fitted(self, slide, image, coords: Coordinates) -> None:
        with Image.open(image) as img:
            width, height = img.size
        if hasattr(image, 'seek'):
            image.seek(0)
        fit = calculate_centered_fit(width, height, coords)
        slide.shapes.add_picture(image, *self._box(fit))

    def _add_placeholder(self, slide, coords: Coordinates, text: str) -> None:
        shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, *self._box(coords))
        shape.fill.solid()
        shape.fill.fore_color.rgb = _rgb('#f3f4f6')
        shape.line.color.rgb = _rgb('#d1d5db')
        text_frame = shape.text_frame
        text_frame.word_wrap = True
        text_frame.vertical_anchor = MSO_ANCHOR.MIDDLE
        text_frame.text = text
        for paragraph in text_frame.paragraphs:
            paragraph.alignment = PP_ALIGN.CENTER
            for run in paragraph.runs:
                run.font.size = Pt(self.theme.font_sizes['small'])
                run.font.color.rgb = _rgb('#6b7280')

    def _add_image(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        src = element.text_content()
        location = resolve_asset(src, base_dir=self.base_dir)
        label = element.alt_text or ('inline image' if src.startswith('data:') else os.path.basename(src) or src)

        if is_remote(location):
            try:
                image = io.BytesIO(fetch_asset(location))
            except OSError as exc:
                logger.warning("Could not fetch image %s: %s", label, exc)
                self._add_placeholder(slide, coords, f"[Missing image: {label}]")
                return
        elif os.path.exists(location):
            image = location
        else:
            logger.warning("Image not found: %s", src)
            self._add_placeholder(slide, coords, f"[Missing image: {os.path.basename(src) or src}]")
            return

        try:
            self._add_picture_fitted(slide, image, coords)
        except (OSError, ValueError) as exc:
            logger.warning("Could not add image %s: %s", label, exc)
            self._add_placeholder(slide, coords, f"[Unreadable image: {label}]")

    def _poster_frame(self, coords: Coordinates) -> io.BytesIO:
        """Dark frame with a play symbol, shown before the video starts."""
        width = POSTER_WIDTH
        height = max(1, round(width * coords.h / coords.w)) if coords.w > 0 else width * 9 // 16
        poster = Image.new('RGB', (width, height), self.theme.colors['code_background'])
        draw = ImageDraw.Draw(poster)
        half = min(width, height) // 8
        cx, cy = width // 2, height // 2
        draw.polygon([(cx - half, cy - half), (cx - half, cy + half), (cx + half, cy)], fill='white')

        stream = io.BytesIO()
        poster.save(stream, format='PNG')
        stream.seek(0)
        return stream

    def _add_video(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        src = element.text_content()
        label = element.alt_text or os.path.basename(src) or src
        location = resolve_asset(src, base_dir=self.base_dir)

        if is_remote(location) or not os.path.exists(location):
            # remote videos are not downloaded
            logger.warning("Video not embedded: %s", src)
            self._add_placeholder(slide, coords, f"▶ {label}\n{src}")
            return

        mime_type = mimetypes.guess_type(location)[0] or 'video/unknown'
        slide.shapes.add_movie(
            location, *self._box(coords),
            poster_frame_image=self._poster_frame(coords),
            mime_type=mime_type,
        )

    def _add_mermaid(self, slide, element: PlacedElement, coords: Coordinates, style: Dict[str, Any]):
        source = element.text_content()
        image_path = self.mermaid_images.get(source)
        if image_path is not None and Path(image_path).exists():
            try:
                self._add_picture_fitted(slide, str(image_path), coords)
                return
            except (OSError, ValueError) as exc:
                logger.warning("Could not add Mermaid image %s: %s", image_path, exc)
        logger.debug("Falling back to Mermaid source for diagram: %s", source.split('\n')[0])
        self._add_code(slide, element, coords, style)
