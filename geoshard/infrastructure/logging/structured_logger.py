"""Logger subclass that stamps every record with the current build and stage."""

import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set by LoggingContext; read on every record
build_context: ContextVar[Optional[str]] = ContextVar('build_id', default=None)
stage_context: ContextVar[Optional[str]] = ContextVar('stage', default=None)


def _format_traceback(exc_info) -> Optional[str]:
    if isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
    elif not isinstance(exc_info, tuple):
        exc_info = sys.exc_info()
    if exc_info[0] is None:
        return None
    return ''.join(traceback.format_exception(*exc_info))


class StructuredLogger(logging.Logger):
    """
    Logger whose records carry three extra attributes.

    ``context`` holds build_id, stage, logger_name, any persistent fields and
    whatever the caller passed as ``extra={'context': ...}``. ``performance``
    holds the payload of :meth:`log_performance`. ``traceback`` holds the
    formatted exception, captured eagerly so formatters need no exc_info.
    """

    def __init__(self, name: str):
        super().__init__(name)
        self._context_fields: Dict[str, Any] = {}

    def current_context(self) -> Dict[str, Any]:
        context = {
            'build_id': build_context.get(),
            'stage': stage_context.get(),
            'logger_name': self.name,
        }
        context.update(self._context_fields)
        return {key: value for key, value in context.items() if value is not None}

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, **kwargs):
        extra = dict(extra) if isinstance(extra, dict) else {}
        context = self.current_context()
        context.update(extra.pop('context', None) or {})
        performance = extra.pop('performance', None)
        tb = extra.pop('traceback', None)
        if tb is None and exc_info:
            tb = _format_traceback(exc_info)

        extra.update(context=context, performance=performance, traceback=tb)
        super()._log(level, msg, args, exc_info=None, extra=extra, stack_info=stack_info, **kwargs)

    def add_context(self, **fields):
        """Attach fields to every later record from this logger."""
        self._context_fields.update(fields)

    def remove_context(self, *keys):
        for key in keys:
            self._context_fields.pop(key, None)

    def log_performance(self, operation: str, duration: float, **metrics):
        """
        Log an INFO record with a ``performance`` payload.

        ``items_per_second`` is derived when ``items_processed`` is given.
        """
        payload = dict(
            operation=operation,
            duration_seconds=round(duration, 3),
            timestamp=datetime.now(timezone.utc).isoformat(),
            **metrics
        )
        items = metrics.get('items_processed')
        if items is not None and duration > 0:
            payload['items_per_second'] = round(items / duration, 2)

        self.info(f"Performance: {operation} completed in {duration:.3f}s",
                  extra={'performance': payload})

    def log_error_with_context(self, error: Exception, operation: Optional[str] = None, **context):
        """Log ``error`` at ERROR with its type, traceback and the given fields."""
        fields = dict(error_type=type(error).__name__, error_module=type(error).__module__, **context)
        if operation:
            fields['operation'] = operation
        self.error(f"{type(error).__name__}: {error}", exc_info=error, extra={'context': fields})


_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    """
    Structured logger for ``name``.

    A plain ``logging.Logger`` already registered under the same name is
    never replaced; callers should ask for structured loggers first.
    """
    logger = _loggers.get(name)
    if logger is None:
        previous = logging.getLoggerClass()
        logging.setLoggerClass(StructuredLogger)
        try:
            logger = logging.getLogger(name)
        finally:
            logging.setLoggerClass(previous)
        _loggers[name] = logger
    return logger
