"""Structured logging infrastructure for shard builds."""

from .structured_logger import StructuredLogger, get_logger, build_context, stage_context
from .context import LoggingContext
from .decorators import log_operation
from .setup import setup_logging, setup_simple_logging, get_log_stats

__all__ = [
    'StructuredLogger',
    'get_logger',
    'LoggingContext',
    'build_context',
    'stage_context',
    'log_operation',
    'setup_logging',
    'setup_simple_logging',
    'get_log_stats'
]
