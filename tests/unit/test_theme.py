"""Test theme lookup and style resolution."""

import pytest

from grid_slides.models import StyleOptions
from grid_slides.theme import DEFAULT_THEME, get_theme, hex_to_rgb, resolve_style, resolve_style_classes


def test_default_theme():
    assert get_theme() is DEFAULT_THEME
    assert get_theme("dark").colors["background"] == "#1a1a1a"


def test_unknown_theme():
    with pytest.raises(ValueError, match="not found"):
        get_theme("neon")


def test_classes_merge_in_order():
    style = resolve_style_classes(["center", "red", "large"])
    assert style == {"align": "center", "valign": "middle", "color": "#dc2626", "font_size": 24}


def test_custom_class_overrides_builtin():
    style = resolve_style_classes(["red"], {"red": {"color": "#ff0000"}})
    assert style == {"color": "#ff0000"}


def test_unknown_class_ignored():
    assert resolve_style_classes(["mystery"]) == {}


def test_properties_override_classes():
    style = resolve_style(StyleOptions(classes=["blue"], properties={"color": "#000000", "size": "30", "bg": "#eee"}))
    assert style["color"] == "#000000"
    assert style["font_size"] == 30
    assert style["fill"] == "#eee"


def test_resolve_none_style():
    assert resolve_style(None) == {}


def test_hex_to_rgb():
    assert hex_to_rgb("#2563eb") == (0x25, 0x63, 0xeb)
    assert hex_to_rgb("#fff") == (255, 255, 255)
    assert hex_to_rgb("nonsense") == (0, 0, 0)
