"""Test the grid occupancy map."""

import pytest

from grid_slides.grid_map import GridMap
from grid_slides.models import GridPosition


def test_empty_map_is_free():
    grid_map = GridMap.create_empty(4, 3)
    assert grid_map.occupied_count() == 0
    assert grid_map.is_area_available(GridPosition(1, 4, 1, 3))
    assert len(list(grid_map.free_cells())) == 12


def test_place_marks_owner():
    grid_map = GridMap.create_empty(4, 3)
    grid_map.place(GridPosition(2, 3, 1, 2), 7)
    assert grid_map.occupied_count() == 4
    assert grid_map.owner_at(1, 2) == 7
    assert grid_map.owner_at(2, 3) == 7
    assert grid_map.owner_at(3, 3) is None
    assert not grid_map.is_area_available(GridPosition(1, 2, 1, 1))
    assert grid_map.is_area_available(GridPosition(4, 4, 1, 3))


def test_out_of_bounds_area_is_unavailable():
    grid_map = GridMap.create_empty(4, 3)
    assert not grid_map.is_area_available(GridPosition(3, 5, 1, 1))
    assert not grid_map.is_area_available(GridPosition(1, 1, 3, 4))


def test_place_clips_out_of_bounds_cells():
    grid_map = GridMap.create_empty(4, 3)
    grid_map.place(GridPosition(4, 6, 3, 5), 0)
    assert grid_map.occupied_count() == 1
    assert grid_map.owner_at(3, 4) == 0


def test_later_placement_overwrites_owner():
    grid_map = GridMap.create_empty(4, 3)
    grid_map.place(GridPosition(1, 4, 1, 3), 0)
    grid_map.place(GridPosition(2, 2, 2, 2), 1)
    assert grid_map.owner_at(2, 2) == 1
    assert grid_map.owner_at(1, 1) == 0


def test_cell_index_error():
    grid_map = GridMap.create_empty(4, 3)
    with pytest.raises(IndexError):
        grid_map.cell(4, 1)
    with pytest.raises(IndexError):
        grid_map.cell(0, 1)


def test_copy_is_independent():
    grid_map = GridMap.create_empty(2, 2)
    clone = grid_map.copy()
    clone.place(GridPosition(1, 1, 1, 1), 0)
    assert grid_map.occupied_count() == 0
    assert clone.occupied_count() == 1


def test_free_cells_row_major():
    grid_map = GridMap.create_empty(2, 2)
    grid_map.place(GridPosition(1, 1, 1, 1), 0)
    assert list(grid_map.free_cells()) == [(1, 2), (2, 1), (2, 2)]


def test_to_rows_shape():
    rows = GridMap.create_empty(3, 2).to_rows()
    assert len(rows) == 2
    assert all(len(r) == 3 for r in rows)
