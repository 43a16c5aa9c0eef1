"""
Logging Configuration for VMware vSphere Collector

structlog events are rendered through stdlib logging so that every handler
shares one JSON line format. Collection cycle timings go to the separate
'performance' logger.
"""

import json
import logging
import logging.handlers
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

# Attributes every LogRecord carries; anything else arrived as an extra
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}

_MAX_LOG_BYTES = 10 * 1024 * 1024

PERFORMANCE_LOGGER = 'performance'


class StructuredFormatter(logging.Formatter):
    """Renders a log record and its key-value extras as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'event': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class CycleTimer:
    """Times collection cycles and logs one record per finished cycle."""

    def __init__(self, logger_name: str = PERFORMANCE_LOGGER):
        self.logger = structlog.get_logger(logger_name)
        self._started: Dict[str, float] = {}

    def start(self, cycle_id: str) -> None:
        self._started[cycle_id] = time.monotonic()

    def stop(self, cycle_id: str, success: bool = True, **fields) -> Optional[float]:
        """Finish timing cycle_id; returns elapsed seconds, None if never started."""
        started = self._started.pop(cycle_id, None)
        if started is None:
            return None

        elapsed = time.monotonic() - started
        self.logger.info("Collection cycle timed", cycle_id=cycle_id, success=success,
                         duration_ms=round(elapsed * 1000, 3), **fields)
        return elapsed

    def pending(self) -> List[str]:
        return list(self._started)


def _file_handler(path: Path, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=str(path), maxBytes=_MAX_LOG_BYTES, backupCount=backup_count
    )
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging(log_level: str = 'INFO', log_dir: Optional[str] = None) -> None:
    """
    Route stdlib and structlog output through JSON handlers.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: When given, also write rotating vsphere_collector.log and
            performance.log files there
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    console = logging.StreamHandler()
    console.setFormatter(StructuredFormatter())
    handlers: List[logging.Handler] = [console]

    perf_logger = logging.getLogger(PERFORMANCE_LOGGER)
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(directory / 'vsphere_collector.log', backup_count=5))

        perf_logger.handlers = [_file_handler(directory / 'performance.log', backup_count=3)]
        perf_logger.setLevel(logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


cycle_timer = CycleTimer()
