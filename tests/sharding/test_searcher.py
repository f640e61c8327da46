"""Tests for coordinate to shard lookups."""

import math

import pytest

from geoshard.foundations.types import OutOfDomainError
from geoshard.sharding import Entity, GeoshardSearcher


class TestPointLookups:
    """Test get_shard_for and friends on the two-shard table."""

    @pytest.mark.parametrize("lat,lng,index", [
        (-45, -90, 0),
        (-45, 90, 0),
        (45, -90, 1),
        (45, 90, 1),
        (-90, -180, 0),
        (90, 180, 1),
        (-90, 180, 0),
        (90, -180, 1),
    ])
    def test_get_shard_for(self, searcher, two_shard_table, lat, lng, index):
        assert searcher.get_shard_for(lat, lng) == two_shard_table[index]

    def test_equator_belongs_to_north(self, searcher, two_shard_table):
        """Points on the shared edge resolve to the cell north of it."""
        assert searcher.get_shard_for(0, -10) == two_shard_table[1]
        assert searcher.get_shard_for(-0.000001, -10) == two_shard_table[0]

    def test_lookup_is_deterministic(self, searcher):
        assert searcher.get_shard_for(0, 0) is searcher.get_shard_for(0.0, 0.0)

    @pytest.mark.parametrize("lat,lng", [(90.0001, 0), (0, -180.0001), (math.nan, 0)])
    def test_out_of_domain(self, searcher, lat, lng):
        with pytest.raises(OutOfDomainError):
            searcher.get_shard_for(lat, lng)

    def test_get_shard_for_entity(self, searcher, two_shard_table):
        assert searcher.get_shard_for_entity(Entity(45, 90)) == two_shard_table[1]
        assert searcher.get_shard_for_entity({'lat': -45, 'lng': 0}) == two_shard_table[0]
        assert searcher.get_shard_for_entity((-1, -1, 3.0)) == two_shard_table[0]

    def test_get_shard_for_cell(self, searcher, two_shard_table, root):
        assert searcher.get_shard_for_cell(root.child(2)) == two_shard_table[1]
        assert searcher.get_shard_for_cell(root.child(1).child(3)) == two_shard_table[0]
        # a cell spanning shards resolves by its first leaf
        assert searcher.get_shard_for_cell(root) == two_shard_table[0]

    def test_get_cell_id_from_location(self, searcher, root):
        cell = searcher.get_cell_id_from_location(-45, -90)
        assert cell == root.child(0)
        assert cell.level() == searcher.table.storage_level

    def test_shard_by_name(self, searcher, two_shard_table):
        assert searcher.shard_by_name('geoshard_user_index_1') == two_shard_table[1]
        assert searcher.shard_by_name('missing') is None
        assert len(searcher) == 2

    def test_split_table(self, quadrant_table):
        searcher = GeoshardSearcher.from_table(quadrant_table)
        assert searcher.get_shard_for(10, 60) == quadrant_table[1]
        assert searcher.get_shard_for(10, 30) == quadrant_table[0]
        assert searcher.get_shard_for(30, 30) == quadrant_table[2]
        assert searcher.get_shard_for(30, 60) == quadrant_table[2]


class TestAreaLookups:
    """Test box and radius queries."""

    def test_box_inside_one_shard(self, searcher, two_shard_table):
        assert searcher.get_shards_in_bounds(-100, -50, -80, -40) == [two_shard_table[0]]

    def test_box_across_shards(self, searcher, two_shard_table):
        assert searcher.get_shards_in_bounds(-10, -10, 10, 10) == list(two_shard_table)

    def test_named_regions(self, searcher, two_shard_table):
        assert searcher.get_shards_in_region('london') == [two_shard_table[1]]
        assert searcher.get_shards_in_region('sao_paulo') == [two_shard_table[0]]
        assert searcher.get_shards_in_region('global') == list(two_shard_table)

    def test_unknown_region(self, searcher):
        with pytest.raises(ValueError):
            searcher.get_shards_in_region('atlantis')

    def test_whole_domain(self, quadrant_table):
        searcher = GeoshardSearcher(quadrant_table)
        assert searcher.get_shards_in_bounds(-180, -90, 180, 90) == list(quadrant_table)

    def test_box_picks_split_shards(self, quadrant_table):
        searcher = GeoshardSearcher(quadrant_table)
        assert searcher.get_shards_in_bounds(50, 5, 60, 10) == [quadrant_table[1]]
        assert searcher.get_shards_in_bounds(40, 5, 50, 10) == list(quadrant_table[:2])

    def test_bad_boxes(self, searcher):
        with pytest.raises(OutOfDomainError):
            searcher.get_shards_in_bounds(10, 0, -10, 5)
        with pytest.raises(OutOfDomainError):
            searcher.get_shards_in_bounds(0, 0, 10, 95)

    def test_radius(self, searcher, two_shard_table):
        assert searcher.get_shards_for_radius(-45, -90, 100) == [two_shard_table[0]]
        assert searcher.get_shards_for_radius(0.5, 0.5, 200) == list(two_shard_table)

    def test_radius_bounds_simple(self, searcher):
        (box,) = searcher.radius_bounds(0, 0, 111.32)
        minx, miny, maxx, maxy = box
        assert minx == pytest.approx(-1, abs=0.01)
        assert maxx == pytest.approx(1, abs=0.01)
        assert miny == pytest.approx(-1, abs=0.01)
        assert maxy == pytest.approx(1, abs=0.01)

    def test_radius_bounds_split_at_antimeridian(self, searcher):
        east, west = searcher.radius_bounds(0, 179.9, 50)
        assert east[2] == 180
        assert east[0] < 179.9
        assert west[0] == -180
        assert -180 < west[2] < -179.5

    def test_radius_bounds_over_pole(self, searcher):
        (box,) = searcher.radius_bounds(89.9, 0, 50)
        assert (box[0], box[2], box[3]) == (-180, 180, 90)
        assert 89 < box[1] < 89.9

    def test_zero_radius(self, searcher, two_shard_table):
        assert searcher.get_shards_for_radius(45, 90, 0) == [two_shard_table[1]]

    def test_negative_radius(self, searcher):
        with pytest.raises(ValueError):
            searcher.get_shards_for_radius(0, 0, -1)
