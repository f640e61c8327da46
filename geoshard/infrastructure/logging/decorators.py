"""Wrap a function so its duration and failures end up in the log."""

import functools
import inspect
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from .structured_logger import get_logger

F = TypeVar('F', bound=Callable[..., Any])

_SCALARS = (str, int, float, bool, type(None))


def describe_arguments(func: Callable, args, kwargs) -> Dict[str, Any]:
    """Bound arguments of a call; anything but scalars shows as ``<TypeName>``."""
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()
    return {
        name: value if isinstance(value, _SCALARS) else f"<{type(value).__name__}>"
        for name, value in bound.arguments.items()
    }


def log_operation(operation_name: Optional[str] = None,
                  log_args: bool = False,
                  log_performance: bool = True):
    """
    Log a call's timing on success and its traceback on failure.

    Exceptions are logged as ``Failed <name>: <message>`` and re-raised.

    Example:
        @log_operation("save_table")
        def save(self, path):
            ...
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__
        logger = get_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context: Dict[str, Any] = {'operation': name}
            if log_args:
                context['arguments'] = describe_arguments(func, args, kwargs)

            started = time.time()
            logger.debug(f"Starting {name}", extra={'context': context})
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {name}: {e}",
                    exc_info=True,
                    extra={
                        'context': context,
                        'performance': {
                            'duration_seconds': round(time.time() - started, 3),
                            'status': 'failed',
                            'error_type': type(e).__name__,
                        },
                    },
                )
                raise

            if log_performance:
                logger.log_performance(name, time.time() - started, status='success')
            else:
                logger.debug(f"Completed {name}", extra={'context': context})
            return result

        return wrapper  # type: ignore
    return decorator
