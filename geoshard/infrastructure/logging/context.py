"""Build and stage scopes that tag log records of one table build."""

import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from .structured_logger import build_context, stage_context, get_logger


@contextmanager
def _bound(var: ContextVar, value: Any) -> Iterator[None]:
    token = var.set(value)
    try:
        yield
    finally:
        var.reset(token)


class LoggingContext:
    """
    Correlation for one build run.

    Records emitted inside :meth:`build` carry ``build_id``; records inside
    :meth:`stage` also carry the stage name. Each finished stage leaves an
    entry in :attr:`timings` with its duration and final status.
    """

    def __init__(self, build_id: Optional[str] = None):
        self.build_id = build_id or uuid.uuid4().hex[:12]
        self.stage_stack: List[str] = []
        self.timings: Dict[str, Dict[str, Any]] = {}
        self.logger = get_logger(__name__)

    @contextmanager
    def build(self, name: str, **metadata):
        with _bound(build_context, self.build_id):
            self.logger.info(f"Build started: {name}",
                             extra={'context': {'build_name': name, **metadata}})
            started = time.time()
            status = 'failed'
            try:
                yield self
                status = 'completed'
            finally:
                self.logger.log_performance(f"build_{name}", time.time() - started, status=status)

    @contextmanager
    def stage(self, name: str, **metadata):
        with _bound(stage_context, name):
            self.stage_stack.append(name)
            self.logger.debug(f"Stage started: {name}",
                              extra={'context': {'stage_name': name, **metadata}})
            started = time.time()
            status = 'failed'
            try:
                yield self
                status = 'completed'
            except Exception as e:
                self.logger.log_error_with_context(e, operation=f"stage_{name}")
                raise
            finally:
                duration = time.time() - started
                self.timings[name] = {
                    'duration': duration,
                    'status': status,
                    'finished_at': datetime.now(timezone.utc).isoformat(),
                }
                self.logger.debug(f"Stage {name} {status} in {duration:.3f}s")
                self.stage_stack.pop()
