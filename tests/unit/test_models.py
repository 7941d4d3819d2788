"""Test data models."""

import pytest

from grid_slides.errors import ContentTypeError
from grid_slides.models import (
    DEFAULT_GRID,
    AnimationSpec,
    Element,
    GridConfig,
    GridPosition,
    ListItem,
    PlacedElement,
    StyleOptions,
    TableData,
)


def test_grid_position_dimensions():
    pos = GridPosition(2, 5, 3, 4)
    assert pos.width == 4
    assert pos.height == 2
    assert pos.area == 8
    assert str(pos) == "[2-5, 3-4]"
    assert pos.to_dict() == {"colStart": 2, "colEnd": 5, "rowStart": 3, "rowEnd": 4}


@pytest.mark.parametrize("value,expected", [
    ("12x9", GridConfig(12, 9)),
    ("6X4", GridConfig(6, 4)),
    (" 3 x 2 ", GridConfig(3, 2)),
    ("0x4", DEFAULT_GRID),
    ("twelve", DEFAULT_GRID),
    ("", DEFAULT_GRID),
    (None, DEFAULT_GRID),
    (12, DEFAULT_GRID),
])
def test_grid_config_parse(value, expected):
    assert GridConfig.parse(value) == expected


def test_grid_config_str():
    assert str(GridConfig(16, 9)) == "16x9"


def test_element_typed_accessors():
    text = Element(type='paragraph', content='hello')
    assert text.text_content() == 'hello'
    with pytest.raises(ContentTypeError):
        text.list_items()
    with pytest.raises(TypeError):
        text.table_data()

    lst = Element(type='list', content=[ListItem('a')])
    assert lst.list_items()[0].text == 'a'
    with pytest.raises(ContentTypeError):
        lst.text_content()

    table = Element(type='table', content=TableData(['h'], [['1'], ['2']]))
    assert table.table_data().row_count == 2


def test_element_animation_property():
    anim = AnimationSpec(type='fadein', duration_ms=500)
    element = Element(type='heading', content='x', style=StyleOptions(animation=anim))
    assert element.animation is anim
    assert Element(type='heading', content='x').animation is None


def test_placed_element_from_element():
    element = Element(type='heading', content='x', level=2, alt_text=None, raw='## x')
    placed = PlacedElement.from_element(element, GridPosition(1, 1, 1, 1))
    assert placed.position == GridPosition(1, 1, 1, 1)
    assert placed.level == 2
    assert placed.raw == '## x'
    assert placed.is_heading()


def test_placed_element_requires_position():
    with pytest.raises(ValueError):
        PlacedElement.from_element(Element(type='heading', content='x'), None)
