"""Console formatter: one readable line per record, build context first."""

import logging
import time
from typing import Any, Dict, Optional


class HumanFormatter(logging.Formatter):
    """Render records as ``time LEVEL [logger] [build:x | stage:y] message``.

    Performance payloads go on an indented second line and tracebacks
    follow underneath. Colors are plain ANSI escapes and can be disabled
    for files, pipes and tests.
    """

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.WARNING: '\033[93m',
        logging.ERROR: '\033[91m',
        logging.CRITICAL: '\033[95m',
    }
    RESET = '\033[0m'
    DIM = '\033[2m'
    BOLD = '\033[1m'

    # Performance keys in display order, with their renderers
    PERF_FIELDS = (
        ('duration_seconds', lambda v: f"{v:.3f}s"),
        ('items_per_second', lambda v: f"{v:.1f} items/s"),
        ('region_count', lambda v: f"{v} regions"),
        ('shard_count', lambda v: f"{v} shards"),
    )

    def __init__(self, use_colors: bool = True, show_context: bool = True, name_width: int = 20):
        super().__init__()
        self.use_colors = use_colors
        self.show_context = show_context
        self.name_width = name_width

    def _paint(self, text: str, code: Optional[str]) -> str:
        if not self.use_colors or not code:
            return text
        return f"{code}{text}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(record.created))
        level_color = self.LEVEL_COLORS.get(record.levelno)

        line = [
            self._paint(stamp, self.DIM),
            self._paint(f"{record.levelname:8}", level_color),
            self._paint(f"[{self._short_name(record.name)}]", self.DIM),
        ]
        if self.show_context:
            context = self.context_label(getattr(record, 'context', None))
            if context:
                line.append(self._paint(context, self.BOLD))
        line.append(record.getMessage())
        text = ' '.join(line)

        perf = self.performance_label(getattr(record, 'performance', None))
        if perf:
            text += '\n  ' + self._paint(f"Performance: {perf}", self.DIM)

        tb = getattr(record, 'traceback', None)
        if not tb and record.exc_info:
            tb = self.formatException(record.exc_info)
        if tb:
            text += '\n' + '\n'.join(
                '  ' + self._paint(row, level_color) for row in tb.rstrip().splitlines()
            )
        return text

    @staticmethod
    def context_label(context: Optional[Dict[str, Any]]) -> str:
        """``[build:<id> | stage:<name>]`` or empty when neither is set."""
        if not context:
            return ''
        parts = [f"{key}:{context[field]}"
                 for key, field in (('build', 'build_id'), ('stage', 'stage'))
                 if context.get(field)]
        return f"[{' | '.join(parts)}]" if parts else ''

    @classmethod
    def performance_label(cls, perf: Optional[Dict[str, Any]]) -> str:
        if not perf:
            return ''
        return ' | '.join(render(perf[key]) for key, render in cls.PERF_FIELDS if key in perf)

    def _short_name(self, name: str) -> str:
        if len(name) <= self.name_width:
            return name
        leaf = name.rsplit('.', 1)[-1]
        if len(leaf) <= self.name_width - 3:
            return f"...{leaf}"
        return f"{name[:self.name_width - 3]}..."
