"""
Logging setup for CostLens.

The engine logs through per-module loggers only; hosts such as the CLI decide
where records go by calling configure_from_settings() once at startup.
"""

import json
import logging
import logging.handlers
import sys
import threading
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Attributes every LogRecord carries; anything else was passed via extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, including any extra= fields"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        entry.update({
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith('_')
        })

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "traceback": traceback.format_exception(exc_type, exc, tb),
            }

        return json.dumps(entry, default=str)


class PerformanceLogger:
    """Times analysis stages and keeps the most recent duration of each"""

    def __init__(self, name: str = 'costlens.performance'):
        self.logger = logging.getLogger(name)
        self.last_durations: Dict[str, float] = {}
        self._active = 0
        self._lock = threading.Lock()

    @contextmanager
    def timer(self, operation: str, **fields):
        """Log how long the wrapped block took, at DEBUG level"""
        started = time.perf_counter()
        with self._lock:
            self._active += 1
        try:
            yield
        finally:
            duration = time.perf_counter() - started
            with self._lock:
                self._active -= 1
                self.last_durations[operation] = duration
            self.logger.debug(
                f"{operation} completed in {duration:.3f}s",
                extra={'operation': operation, 'duration': duration, **fields}
            )

    @property
    def active_timers(self) -> int:
        with self._lock:
            return self._active


_performance_logger = PerformanceLogger()


def setup_logging(level: str = "INFO",
                  log_file: Optional[Path] = None,
                  structured: bool = False,
                  console: bool = True,
                  fmt: str = DEFAULT_FORMAT,
                  max_bytes: int = 10 * 1024 * 1024,
                  backup_count: int = 5,
                  handler: Optional[logging.Handler] = None):
    """
    Replace the root handlers.

    An explicit handler (for example rich's RichHandler) takes the place of the
    plain stdout stream handler. The rotating file handler is added on top.
    """
    root = logging.getLogger()
    root.setLevel(logging.getLevelName(level.upper()))
    root.handlers = []

    formatter = StructuredFormatter() if structured else logging.Formatter(fmt)

    if handler is not None:
        root.addHandler(handler)
    elif console:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(formatter)
        root.addHandler(stream)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        rotating.setFormatter(formatter)
        root.addHandler(rotating)


def configure_from_settings(config, handler: Optional[logging.Handler] = None):
    """Apply a LoggingConfig section"""
    setup_logging(
        level=config.level,
        log_file=config.file,
        structured=config.structured,
        console=config.console,
        fmt=config.format,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
        handler=handler,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_performance_logger() -> PerformanceLogger:
    return _performance_logger
