"""Rotating log file, JSON lines by default."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ..formatters import JsonFormatter

PLAIN_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class FileHandler(RotatingFileHandler):
    """RotatingFileHandler that creates its directory and records everything from DEBUG up."""

    def __init__(self,
                 filename: str,
                 max_bytes: int = 100 * 1024 * 1024,
                 backup_count: int = 5,
                 use_json: bool = True,
                 encoding: str = 'utf-8'):
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(str(path), maxBytes=max_bytes, backupCount=backup_count, encoding=encoding)

        self.setFormatter(JsonFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))
        self.setLevel(logging.DEBUG)
