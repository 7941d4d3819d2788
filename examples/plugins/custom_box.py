"""Adds a highlighted ``custombox`` element: ``:::custombox Some text :::``."""
import re

from pptx.dml.color import RGBColor
from pptx.util import Inches, Pt

from grid_slides.grid_parser import extract_grid_and_style
from grid_slides.models import Element

PLUGIN_NAME = "custom-box"
__version__ = "1.0.0"

CUSTOM_BOX_PATTERN = re.compile(r"^:::custombox\s+(.+?)\s*:::$", re.DOTALL)


def parse_custom_box(node, aliases, grid):
    text = node.children[0].content if node.children else ""
    match = CUSTOM_BOX_PATTERN.match(text)
    if not match:
        return None
    annotation = extract_grid_and_style(match.group(1), aliases, grid)
    return Element(
        type="custombox",
        content=annotation.clean_text,
        position=annotation.position,
        style=annotation.style,
        raw=text,
    )


def draw_custom_box(element, slide, context):
    c = context.coordinates
    textbox = slide.shapes.add_textbox(Inches(c.x), Inches(c.y), Inches(c.w), Inches(c.h))
    textbox.fill.solid()
    textbox.fill.fore_color.rgb = RGBColor(0xFF, 0xFF, 0x00)
    run = textbox.text_frame.paragraphs[0].add_run()
    run.text = element.text_content()
    run.font.size = Pt(24)
    run.font.color.rgb = RGBColor(0xFF, 0x00, 0x00)


def register(registry):
    registry.register_element_parser("paragraph", parse_custom_box)
    registry.register_element_generator("custombox", draw_custom_box)
    registry.register_element_size("custombox", height=2, width_ratio=0.5)
