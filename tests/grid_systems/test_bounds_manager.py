"""Tests for bounds manager."""

import pytest

from geoshard.config import config
from geoshard.foundations.types import OutOfDomainError
from geoshard.grid_systems import BoundsManager, BoundsDefinition


class TestBoundsDefinition:
    """Test BoundsDefinition class."""

    def test_bounds_creation(self):
        bounds = BoundsDefinition('test', (0, 0, 10, 10))

        assert bounds.name == 'test'
        assert bounds.bounds == (0, 0, 10, 10)
        assert bounds.category == "custom"

    def test_polygon_property(self):
        poly = BoundsDefinition('test', (0, 0, 10, 10)).polygon

        assert poly.bounds == (0, 0, 10, 10)
        assert poly.area == 100

    def test_area_calculation(self):
        # One degree square on the equator is about 111 km a side
        area = BoundsDefinition('test', (0, 0, 1, 1)).area_km2
        assert 12000 < area < 13000

    def test_area_shrinks_towards_poles(self):
        equator = BoundsDefinition('a', (0, 0, 1, 1)).area_km2
        north = BoundsDefinition('b', (0, 60, 1, 61)).area_km2
        assert north < equator / 1.8

    def test_contains_point(self):
        bounds = BoundsDefinition('test', (0, 0, 10, 10))

        assert bounds.contains(5, 5)
        assert bounds.contains(0, 0)
        assert bounds.contains(10, 10)
        assert not bounds.contains(-1, 5)
        assert not bounds.contains(5, 11)

    def test_intersects(self):
        bounds = BoundsDefinition('test', (0, 0, 10, 10))

        assert bounds.intersects((5, 5, 15, 15))
        assert bounds.intersects((10, 0, 20, 10))      # touching
        assert not bounds.intersects((20, 20, 30, 30))
        assert not bounds.intersects((10.5, 0, 20, 10))

    def test_outside_domain(self):
        with pytest.raises(OutOfDomainError):
            BoundsDefinition('bad', (0, 0, 200, 10))

    def test_inverted(self):
        with pytest.raises(ValueError):
            BoundsDefinition('bad', (10, 0, 0, 10))


class TestBoundsManager:
    """Test BoundsManager lookups."""

    def test_predefined_regions(self):
        manager = BoundsManager()

        assert manager.get_bounds('global').bounds == (-180, -90, 180, 90)
        assert manager.get_bounds('london').category == 'metro'
        assert 'usa' in manager.list_available()['country']

    def test_parse_bounds_string(self):
        bounds = BoundsManager().get_bounds('0, 0, 10, 10')
        assert bounds.bounds == (0, 0, 10, 10)
        assert bounds.name == 'custom_bounds'

    @pytest.mark.parametrize("name", ['atlantis', '1,2,3', 'a,b,c,d'])
    def test_unknown_bounds(self, name):
        with pytest.raises(ValueError):
            BoundsManager().get_bounds(name)

    def test_custom_regions_from_config(self, monkeypatch):
        monkeypatch.setitem(config.settings['bounds'], 'custom', {
            'test_region': [0, 0, 10, 10],
            'harbour': {'bounds': [1, 1, 2, 2], 'category': 'region'},
        })
        manager = BoundsManager()

        assert manager.get_bounds('test_region').bounds == (0, 0, 10, 10)
        assert manager.get_bounds('harbour').category == 'region'
        assert sorted(manager.list_available()['custom']) == ['harbour', 'test_region']

    def test_metro_regions_sit_inside_their_country(self):
        manager = BoundsManager()
        usa = manager.get_bounds('usa')
        min_lng, min_lat, max_lng, max_lat = manager.get_bounds('new_york').bounds

        assert usa.contains(min_lng, min_lat)
        assert usa.contains(max_lng, max_lat)

    def test_malformed_custom_entry_is_skipped(self, monkeypatch):
        monkeypatch.setitem(config.settings['bounds'], 'custom', {'broken': 42})
        manager = BoundsManager()

        assert manager.custom_regions == {}
        with pytest.raises(ValueError):
            manager.get_bounds('broken')
