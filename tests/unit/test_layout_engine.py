"""Test slide layout and coordinate projection."""

import pytest

from grid_slides.errors import GridError
from grid_slides.layout_engine import (
    DEFAULT_MARGIN,
    SLIDE_SIZE,
    Coordinates,
    grid_to_coordinates,
    layout_document,
    layout_slide,
    render_grid_map,
)
from grid_slides.models import Element, GridConfig, GridPosition, ParsedDocument, Slide


def test_projection_full_grid():
    coords = grid_to_coordinates(GridPosition(1, 12, 1, 9), GridConfig(12, 9))
    assert coords.x == pytest.approx(DEFAULT_MARGIN)
    assert coords.y == pytest.approx(DEFAULT_MARGIN)
    assert coords.w == pytest.approx(SLIDE_SIZE[0] - 2 * DEFAULT_MARGIN)
    assert coords.h == pytest.approx(SLIDE_SIZE[1] - 2 * DEFAULT_MARGIN)


def test_projection_single_cell():
    coords = grid_to_coordinates(GridPosition(2, 2, 3, 3), GridConfig(4, 4), (10, 10), 1)
    # cell is 2 x 2 inside an 8 x 8 content area
    assert coords == Coordinates(x=3.0, y=5.0, w=2.0, h=2.0)


def test_projection_margin_override():
    coords = grid_to_coordinates(GridPosition(1, 1, 1, 1), GridConfig(1, 1), (10, 6.25), margin=0)
    assert coords == Coordinates(0.0, 0.0, 10.0, 6.25)


def test_projection_is_not_rounded():
    coords = grid_to_coordinates(GridPosition(1, 1, 1, 1), GridConfig(3, 3), (10, 10), 0)
    assert coords.w == 10 / 3


def test_layout_slide_uses_slide_grid():
    slide = Slide(elements=[Element(type='heading', content='Hi')], index=1, grid=GridConfig(4, 3))
    result = layout_slide(slide)
    assert result.grid == GridConfig(4, 3)
    assert result.elements[0].position == GridPosition(1, 4, 1, 1)


def test_layout_slide_grid_override():
    slide = Slide(elements=[Element(type='heading', content='Hi')], index=1)
    result = layout_slide(slide, grid=GridConfig(6, 2))
    assert result.elements[0].position == GridPosition(1, 6, 1, 1)


def test_layout_slide_map_follows_draw_order():
    slide = Slide(elements=[
        Element(type='paragraph', content='under', position=GridPosition(1, 4, 1, 2)),
        Element(type='paragraph', content='over', position=GridPosition(2, 2, 2, 2)),
    ], grid=GridConfig(4, 2))
    result = layout_slide(slide)
    # 'over' starts on a lower row, so it is drawn later and owns the shared cell
    assert [e.content for e in result.elements] == ['under', 'over']
    assert result.grid_map.owner_at(2, 2) == 1
    assert result.grid_map.owner_at(1, 1) == 0


def test_layout_slide_propagates_grid_error():
    slide = Slide(elements=[Element(type='heading', content='x', position=GridPosition(1, 20, 1, 1))], index=2)
    with pytest.raises(GridError):
        layout_slide(slide)


def test_layout_document_lays_out_every_slide():
    document = ParsedDocument(slides=[
        Slide(elements=[Element(type='heading', content='A')], index=1),
        Slide(elements=[], index=2),
    ])
    results = layout_document(document)
    assert len(results) == 2
    assert results[1].elements == []


def test_render_grid_map():
    slide = Slide(elements=[Element(type='heading', content='Hi', position=GridPosition(1, 2, 1, 1))],
                  grid=GridConfig(3, 2))
    assert render_grid_map(layout_slide(slide).grid_map) == "00.\n..."
