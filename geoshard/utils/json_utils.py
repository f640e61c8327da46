# geoshard/utils/json_utils.py
"""JSON helpers for tables and statistics that carry numpy values."""

import json
import math
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import numpy as np

_MISSING = object()


def _to_native(obj: Any) -> Any:
    """Plain-Python equivalent of ``obj``, or ``_MISSING`` if there is none."""
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if math.isnan(value) else value
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Decimal):
        return float(obj)
    return _MISSING


class ExtendedJSONEncoder(json.JSONEncoder):
    """Encoder for numpy scalars and arrays, paths, dates and decimals."""

    def default(self, obj):
        native = _to_native(obj)
        if native is _MISSING:
            return super().default(obj)
        return native


def clean_for_json(data: Any) -> Any:
    """
    Recursively convert ``data`` so the stock encoder accepts it.

    Tuples become lists and NaN becomes ``None``; unknown objects are
    returned unchanged.
    """
    if isinstance(data, dict):
        return {key: clean_for_json(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [clean_for_json(value) for value in data]
    native = _to_native(data)
    return data if native is _MISSING else native


def dumps(data: Any, indent: Optional[int] = None) -> str:
    return json.dumps(clean_for_json(data), cls=ExtendedJSONEncoder, indent=indent)
