"""
Logging setup and operation timing for the certificate manager.

Console output is human readable. The optional log file holds one JSON
object per line so certificate lifecycle events can be picked up by log
shippers with their ``extra_data`` details intact.
"""
import json
import logging
import logging.handlers
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional, List


CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3


@dataclass
class OperationTiming:
    """Duration and outcome of one timed operation."""
    operation: str
    duration_ms: float
    success: bool
    error_message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class JSONFormatter(logging.Formatter):
    """Renders each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger_name': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'line_number': record.lineno,
            'extra_data': getattr(record, 'extra_data', None),
            'exception_info': None,
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry['exception_info'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class PerformanceMonitor:
    """Timing of startup operations such as certificate generation."""

    def __init__(self):
        self._timings: List[OperationTiming] = []
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def measure_operation(self, operation: str, details: Optional[Dict[str, Any]] = None):
        """
        Time the enclosed block and record its outcome.

        Exceptions raised inside the block are recorded and re-raised.
        """
        started = time.perf_counter()
        error_message = None

        try:
            yield
        except Exception as e:
            error_message = str(e)
            raise
        finally:
            timing = OperationTiming(
                operation=operation,
                duration_ms=(time.perf_counter() - started) * 1000,
                success=error_message is None,
                error_message=error_message,
                details=dict(details or {})
            )

            with self._lock:
                self._timings.append(timing)

            level = logging.DEBUG if timing.success else logging.WARNING
            self.logger.log(
                level,
                f"{operation} {'finished' if timing.success else 'failed'} in {timing.duration_ms:.1f} ms",
                extra={'extra_data': {'event': 'timing', **vars(timing)}}
            )

    def get_metrics(self, operation: Optional[str] = None) -> List[OperationTiming]:
        """Recorded timings, optionally for one operation."""
        with self._lock:
            timings = list(self._timings)

        if operation:
            timings = [t for t in timings if t.operation == operation]

        return timings

    def get_operation_stats(self, operation: str) -> Dict[str, Any]:
        """Summary of the recorded timings of one operation, empty if none."""
        timings = self.get_metrics(operation)
        if not timings:
            return {}

        durations = [t.duration_ms for t in timings]
        failures = [t for t in timings if not t.success]

        return {
            'total_calls': len(timings),
            'failure_count': len(failures),
            'last_duration_ms': round(durations[-1], 1),
            'max_duration_ms': round(max(durations), 1),
            'last_error': failures[-1].error_message if failures else None,
        }


class LoggingService:
    """Configures console and rotating JSON file logging."""

    def __init__(self, config):
        """Initialize logging service with configuration."""
        self.config = config
        self.performance_monitor = PerformanceMonitor()
        self._setup_logging()
        self.logger = logging.getLogger(__name__)
        self.logger.debug(f"Logging configured at {config.log_level}, file: {config.log_file_path}")

    def _setup_logging(self):
        """Replace the root logger's handlers."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root_logger.addHandler(console_handler)

        if self.config.log_file_path:
            Path(self.config.log_file_path).parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=self.config.log_file_path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(file_handler)

    def measure_performance(self, operation: str, details: Optional[Dict[str, Any]] = None):
        """Context manager timing operation."""
        return self.performance_monitor.measure_operation(operation, details)

    def get_performance_stats(self) -> Dict[str, Dict[str, Any]]:
        """Timing summary of every recorded operation."""
        operations = dict.fromkeys(t.operation for t in self.performance_monitor.get_metrics())
        return {op: self.performance_monitor.get_operation_stats(op) for op in operations}
