"""Tests for JSON helpers."""

import json
from pathlib import Path

import numpy as np

from geoshard.utils import ExtendedJSONEncoder, clean_for_json, dumps


class TestJsonUtils:
    """Test numpy-aware serialization."""

    def test_numpy_scalars(self):
        data = {'heat': np.float64(12.5), 'count': np.int64(3), 'ok': np.bool_(True)}
        assert json.loads(json.dumps(data, cls=ExtendedJSONEncoder)) == {
            'heat': 12.5, 'count': 3, 'ok': True
        }

    def test_clean_for_json(self):
        cleaned = clean_for_json({
            'path': Path('/tmp/table.json'),
            'bounds': (0, 0, 1, 1),
            'heats': np.array([1.0, 2.0]),
            'missing': float('nan'),
        })
        assert cleaned == {
            'path': '/tmp/table.json',
            'bounds': [0, 0, 1, 1],
            'heats': [1.0, 2.0],
            'missing': None,
        }

    def test_dumps_indent(self):
        assert dumps({'a': np.int32(1)}) == '{"a": 1}'
        assert '\n' in dumps({'a': 1}, indent=2)
