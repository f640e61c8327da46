"""Single-line JSON records for log files and aggregation."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict


class JsonFormatter(logging.Formatter):
    """Serialize a record, its build context and performance payload as JSON."""

    SOURCE_FIELDS = {
        'module': 'module',
        'function': 'funcName',
        'line': 'lineno',
        'process': 'process',
        'thread': 'thread',
    }

    def to_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        data.update({key: getattr(record, attr) for key, attr in self.SOURCE_FIELDS.items()})

        for key in ('context', 'performance'):
            value = getattr(record, key, None)
            if value:
                data[key] = value

        tb = getattr(record, 'traceback', None)
        if not tb and record.exc_info:
            tb = self.formatException(record.exc_info)
        if tb:
            data['traceback'] = tb
        return data

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self.to_dict(record), separators=(',', ':'), default=str)
