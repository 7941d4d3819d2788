"""Themes and style classes for slide rendering."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Theme:
    name: str
    colors: Dict[str, str] = field(default_factory=dict)
    fonts: Dict[str, str] = field(default_factory=dict)
    font_sizes: Dict[str, int] = field(default_factory=dict)


DEFAULT_THEME = Theme(
    name="default",
    colors={
        "primary": "#2563eb",
        "secondary": "#64748b",
        "accent": "#f59e0b",
        "background": "#ffffff",
        "text": "#1e293b",
        "code_background": "#1e293b",
        "code_text": "#e2e8f0",
        "table_header": "#2563eb",
        "table_header_text": "#ffffff",
        "table_band": "#f1f5f9",
    },
    fonts={"title": "Arial", "body": "Arial", "code": "Courier New"},
    font_sizes={"h1": 36, "h2": 28, "h3": 24, "body": 18, "small": 14, "code": 14},
)

DARK_THEME = Theme(
    name="dark",
    colors={
        **DEFAULT_THEME.colors,
        "background": "#1a1a1a",
        "text": "#f1f5f9",
        "table_band": "#334155",
    },
    fonts=DEFAULT_THEME.fonts,
    font_sizes=DEFAULT_THEME.font_sizes,
)

THEMES: Dict[str, Theme] = {t.name: t for t in (DEFAULT_THEME, DARK_THEME)}

# Built-in style classes usable as {.name}
STYLE_CLASSES: Dict[str, Dict[str, Any]] = {
    # alignment
    "center": {"align": "center", "valign": "middle"},
    "left": {"align": "left"},
    "right": {"align": "right"},
    # text colour
    "red": {"color": "#dc2626"},
    "blue": {"color": "#2563eb"},
    "green": {"color": "#16a34a"},
    "gray": {"color": "#6b7280"},
    "orange": {"color": "#ea580c"},
    "purple": {"color": "#9333ea"},
    # background
    "bg-red": {"fill": "#fef2f2"},
    "bg-blue": {"fill": "#eff6ff"},
    "bg-green": {"fill": "#f0fdf4"},
    "bg-gray": {"fill": "#f9fafb"},
    # size
    "small": {"font_size": 14},
    "large": {"font_size": 24},
    # decoration
    "bold": {"bold": True},
    "highlight": {"fill": "#fef3c7"},
    "card": {"fill": "#f8fafc", "line": "#e2e8f0"},
    "header": {"fill": "#1e40af", "color": "#ffffff"},
    "footer": {"font_size": 12, "color": "#9ca3af"},
    "note": {"font_size": 12, "color": "#6b7280", "italic": True},
}

# {key=value} properties that map onto resolved style keys
_PROPERTY_KEYS = {
    "color": "color",
    "bg": "fill",
    "background": "fill",
    "align": "align",
    "size": "font_size",
    "font-size": "font_size",
}


def get_theme(name: Optional[str] = None) -> Theme:
    """
    Look up a theme by name.

    Raises:
        ValueError: The name is not a known theme.
    """
    if not name:
        return DEFAULT_THEME
    if name not in THEMES:
        raise ValueError(f"Theme '{name}' not found. Available themes: {sorted(THEMES)}")
    return THEMES[name]


def resolve_style_classes(classes: List[str],
                          custom_classes: Optional[Mapping[str, Mapping[str, Any]]] = None) -> Dict[str, Any]:
    """
    Merge the definitions of ``classes`` in order; later classes win.

    A class defined in ``custom_classes`` (front matter ``classes:``) replaces
    the built-in one of the same name. Unknown classes are ignored.
    """
    result: Dict[str, Any] = {}
    for class_name in classes:
        style = None
        if custom_classes:
            style = custom_classes.get(class_name)
        if style is None:
            style = STYLE_CLASSES.get(class_name)
        if style is None:
            logger.debug("Unknown style class: %s", class_name)
            continue
        result.update(style)
    return result


def resolve_style(style, custom_classes: Optional[Mapping[str, Mapping[str, Any]]] = None) -> Dict[str, Any]:
    """
    Resolve a :class:`~grid_slides.models.StyleOptions` to renderer keys.

    Classes are applied first, then ``color``, ``bg``, ``align`` and ``size``
    properties on top.
    """
    if style is None:
        return {}
    result = resolve_style_classes(style.classes, custom_classes)
    for key, value in style.properties.items():
        target = _PROPERTY_KEYS.get(key.lower())
        if target is None:
            continue
        if target == "font_size":
            try:
                result[target] = int(float(value.rstrip("pt")))
            except ValueError:
                logger.debug("Ignoring invalid font size %r", value)
            continue
        result[target] = value
    return result


def hex_to_rgb(hex_color: str) -> tuple:
    """Convert ``#rrggbb`` (or ``#rgb``) to an (r, g, b) tuple; black when invalid."""
    hex_color = str(hex_color).lstrip('#')
    if len(hex_color) == 3:
        hex_color = ''.join(ch * 2 for ch in hex_color)
    if len(hex_color) != 6:
        return (0, 0, 0)
    try:
        return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return (0, 0, 0)
