"""Tests for the quadtree grid adapter."""

import pytest

from geoshard.base import BaseGrid, GridCell
from geoshard.foundations.types import EmptyGeometryError, OutOfDomainError
from geoshard.grid_systems import CellId, QuadTreeGrid, BoundsManager


class TestQuadTreeGrid:
    """Test QuadTreeGrid implementation."""

    def test_grid_creation(self):
        grid = QuadTreeGrid(level=3)

        assert isinstance(grid, BaseGrid)
        assert grid.level == 3
        assert grid.is_global
        assert grid.bounds == (-180, -90, 180, 90)

    def test_default_level_from_config(self):
        assert QuadTreeGrid().level == 8

    @pytest.mark.parametrize("level", [-1, 31])
    def test_invalid_level(self, level):
        with pytest.raises(EmptyGeometryError):
            QuadTreeGrid(level=level)

    def test_generate_level_one(self, root):
        cells = QuadTreeGrid(level=1).generate_grid()

        assert len(cells) == 4
        assert all(isinstance(cell, GridCell) for cell in cells)
        assert [cell.cell_id for cell in cells] == [c.to_token() for c in root.children()]
        assert cells[0].bounds == (-180, -90, 0, 0)
        assert cells[0].metadata['grid_type'] == 'quadtree'
        assert cells[0].metadata['level'] == 1
        assert cells[3].metadata['grid_index'] == (1, 1)

    def test_cell_count_matches_generation(self):
        grid = QuadTreeGrid(level=3, bounds='usa')
        assert grid.get_cell_count() == len(grid.generate_grid())

    def test_get_cell_id(self, root):
        grid = QuadTreeGrid(level=1)
        # x is longitude, y is latitude
        assert grid.get_cell_id(-90, -45) == root.child(0).to_token()
        assert grid.get_cell_id(0, 0) == root.child(3).to_token()

    def test_get_cell_outside_bounds(self):
        grid = QuadTreeGrid(level=4, bounds='usa')
        with pytest.raises(OutOfDomainError):
            grid.get_cell(100, 0)

    def test_get_cell_by_id(self):
        grid = QuadTreeGrid(level=1)

        cell = grid.get_cell_by_id('1c')
        assert cell is not None
        assert cell.bounds == (0, 0, 180, 90)

        assert grid.get_cell_by_id('1') is None      # wrong level
        assert grid.get_cell_by_id('zz') is None     # not a token

    def test_cell_ids_in_bounds(self):
        grid = QuadTreeGrid(level=2)
        assert grid.cell_ids_in_bounds((10, 10, 80, 40)) == [CellId.from_ij(2, 2, 2)]

        cells = grid.cell_ids_in_bounds((-100, -50, 100, 50))
        assert cells == sorted(cells)
        assert len(cells) == grid.count_cells_in_bounds((-100, -50, 100, 50))

    def test_cell_ids_in_inverted_bounds(self):
        with pytest.raises(OutOfDomainError):
            QuadTreeGrid(level=2).cell_ids_in_bounds((10, 10, 0, 40))

    def test_neighbor_ids(self):
        grid = QuadTreeGrid(level=2)
        neighbors = grid.get_neighbor_ids(CellId.from_ij(0, 0, 2).to_token())
        assert len(neighbors) == 5
        assert grid.get_neighbor_ids('zz') == []

    def test_regional_grid_clips_neighbors(self):
        region = BoundsManager().get_bounds('10,10,80,40')
        grid = QuadTreeGrid(level=2, bounds=region)
        assert grid.get_cell_count() == 1
        assert grid.get_neighbor_ids(CellId.from_ij(2, 2, 2).to_token()) == []
        assert grid.get_cell_by_id(CellId.from_ij(3, 2, 2).to_token()) is None

    def test_box_edges_belong_to_east_and_north_cells(self):
        grid = QuadTreeGrid(level=2, bounds=(0, 0, 90, 45))
        assert grid.get_cell_count() == 4
        assert len(grid.get_neighbor_ids(CellId.from_ij(2, 2, 2).to_token())) == 3

    def test_statistics(self):
        grid = QuadTreeGrid(level=3, bounds='10,10,80,40')
        stats = grid.calculate_statistics()

        assert stats['cell_count'] == grid.get_cell_count() == 4
        assert 0 < stats['min_cell_area_km2'] <= stats['max_cell_area_km2']
        assert stats['total_area_km2'] == pytest.approx(sum(c.area_km2 for c in grid.get_cells()))

    def test_cells_shrink_towards_the_poles(self):
        grid = QuadTreeGrid(level=3)
        equatorial = grid.to_grid_cell(CellId.from_ij(0, 4, 3))
        northern = grid.to_grid_cell(CellId.from_ij(0, 6, 3))
        assert equatorial.area_km2 > northern.area_km2 > 0

    def test_grid_cell_record(self):
        cell = QuadTreeGrid(level=1).get_cell_by_id('04')
        record = cell.to_dict()

        assert record['cell_id'] == '04'
        assert record['bounds'] == [-180, -90, 0, 0]
        assert record['geometry_wkt'].startswith('POLYGON')
        assert record['metadata']['level'] == 1
