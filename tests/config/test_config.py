"""Tests for the configuration system."""

import pytest
import yaml

from geoshard.config import Config, config
from geoshard.config.config import deep_merge


class TestConfigDefaults:
    """Test the built-in defaults."""

    def test_global_instance(self):
        assert config is not None
        assert isinstance(config, Config)

    def test_sharding_section(self):
        sharding = Config().sharding

        assert sharding['storage_level'] == 8
        assert sharding['min_heat'] == 40
        assert sharding['max_heat'] == 100
        assert sharding['max_level'] == 30
        assert sharding['fold_stranded_runs'] is True
        assert sharding['name_prefix'] == 'geoshard_user_index_'
        assert sharding['scorer'] == 'user_count'

    def test_dot_notation(self):
        cfg = Config()

        assert cfg.get('search.ellipsoid') == 'WGS84'
        assert cfg.get('grids.quadtree.level') == 8
        assert cfg.get('table.indent') is None
        assert cfg.get('table.format_version') is None
        assert cfg.get('missing.key') is None
        assert cfg.get('sharding.missing', 'fallback') == 'fallback'

    def test_instances_do_not_share_sections(self):
        first, second = Config(), Config()
        first.sharding['min_heat'] = 1
        assert second.sharding['min_heat'] == 40


class TestConfigFiles:
    """Test YAML overrides."""

    def test_yaml_override_is_deep_merged(self, tmp_path):
        path = tmp_path / 'geoshard.yml'
        path.write_text(yaml.dump({
            'sharding': {'storage_level': 10, 'max_heat': 500},
            'logging': {'level': 'DEBUG'},
        }))

        cfg = Config(path)

        assert cfg.get('sharding.storage_level') == 10
        assert cfg.get('sharding.max_heat') == 500
        assert cfg.get('sharding.min_heat') == 40
        assert cfg.logging['level'] == 'DEBUG'

    def test_env_var_location(self, tmp_path, monkeypatch):
        path = tmp_path / 'custom.yml'
        path.write_text(yaml.dump({'search': {'default_radius_km': 5.0}}))
        monkeypatch.setenv('GEOSHARD_CONFIG', str(path))

        assert Config().get('search.default_radius_km') == 5.0

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = Config(tmp_path / 'nope.yml')
        assert cfg.get('sharding.storage_level') == 8

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yml'
        path.write_text('')
        assert Config(path).get('sharding.max_heat') == 100

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / 'list.yml'
        path.write_text(yaml.dump([1, 2, 3]))
        with pytest.raises(ValueError):
            Config(path)

    def test_source_is_recorded(self, tmp_path):
        path = tmp_path / 'geoshard.yml'
        path.write_text(yaml.dump({'table': {'indent': 2}}))

        cfg = Config(path)

        assert cfg.source == path
        assert cfg.get('table.indent') == 2
        assert Config(tmp_path / 'nope.yml').source is None


class TestDeepMerge:
    """Test the merge helper directly."""

    def test_nested_sections_merge(self):
        base = {'a': {'x': 1, 'y': 2}, 'b': 1}
        deep_merge(base, {'a': {'y': 3}, 'c': 4})
        assert base == {'a': {'x': 1, 'y': 3}, 'b': 1, 'c': 4}

    def test_scalar_replaces_mapping(self):
        base = {'a': {'x': 1}}
        deep_merge(base, {'a': None})
        assert base == {'a': None}
