"""Attach console and file handlers to the root logger from configuration."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .structured_logger import get_logger
from .handlers import ConsoleHandler, FileHandler

DEFAULT_LOG_NAME = 'geoshard.log'


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    return root


def _parse_level(name: Any) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def _resolve_log_file(config: Any, log_file: Optional[str]) -> Optional[str]:
    """Explicit path, else ``logging.file`` (``true`` means ``<paths.logs_dir>/geoshard.log``)."""
    if log_file is not None:
        return str(log_file)
    configured = config.get('logging.file')
    if not configured:
        return None
    if configured is True:
        return str(Path(config.get('paths.logs_dir', 'logs')) / DEFAULT_LOG_NAME)
    return str(configured)


def setup_logging(config: Any,
                  log_file: Optional[str] = None,
                  console: Optional[bool] = None,
                  log_level: Optional[str] = None):
    """
    Replace the root logger's handlers according to ``config``.

    Args:
        config: Anything with a dotted ``get``, normally :class:`~geoshard.config.Config`
        log_file: JSON log path; overrides ``logging.file``
        console: Human-readable stderr output; defaults to ``logging.console``
        log_level: Root level name; defaults to ``logging.level``
    """
    level = _parse_level(log_level or config.get('logging.level', 'INFO'))
    root = _reset_root(level)

    if console is None:
        console = config.get('logging.console', True)
    if console:
        handler = ConsoleHandler()
        handler.setLevel(level)
        root.addHandler(handler)

    log_file = _resolve_log_file(config, log_file)
    if log_file:
        root.addHandler(FileHandler(
            log_file,
            max_bytes=config.get('logging.max_file_size', 100 * 1024 * 1024),
            backup_count=config.get('logging.backup_count', 5),
        ))

    get_logger(__name__).info(
        "Logging configured",
        extra={'context': {
            'log_level': logging.getLevelName(level),
            'console': bool(console),
            'log_file': log_file,
        }}
    )


def setup_simple_logging(log_level: str = 'INFO'):
    """Console only, for scripts and debugging sessions."""
    level = _parse_level(log_level)
    handler = ConsoleHandler()
    handler.setLevel(level)
    _reset_root(level).addHandler(handler)


def get_log_stats() -> Dict[str, Any]:
    """Summary of the root logger's geoshard handlers, keyed 'file' and 'console'."""
    stats: Dict[str, Any] = {}
    for handler in logging.getLogger().handlers:
        if isinstance(handler, FileHandler):
            stats['file'] = {
                'filename': handler.baseFilename,
                'max_bytes': handler.maxBytes,
                'backup_count': handler.backupCount,
            }
        elif isinstance(handler, ConsoleHandler):
            stats['console'] = {'level': logging.getLevelName(handler.level)}
    return stats
