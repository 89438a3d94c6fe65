"""Observability utilities for the Notes MCP server.

Provides timing metrics, operation tracking, and persistent disk
logging with rotation.
"""
import json
import logging
import re
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# Default locations (can be overridden via configure_logging / MetricsCollector)
DEFAULT_LOG_DIR = Path.home() / ".notes-mcp" / "logs"
DEFAULT_METRICS_FILE = Path.home() / ".notes-mcp" / "metrics.json"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Root of the package logger hierarchy
PACKAGE_LOGGER = "notes_mcp"


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB per file
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Configure persistent file logging with rotation.

    Sets up a rotating file handler for the notes_mcp logger hierarchy.
    Log files are rotated when they reach max_bytes, keeping backup_count old files.
    The console handler writes to stderr; stdout carries the MCP stdio transport.

    Args:
        log_dir: Directory for log files. Defaults to ~/.notes-mcp/logs/
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to stderr (default: True)

    Returns:
        Path to the log directory
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(PACKAGE_LOGGER)
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_file = log_path / "notes-mcp.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()  # stderr
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.info(f"Logging configured: {log_file} (max {max_bytes} bytes, {backup_count} backups)")

    return log_path


def _sanitize_error_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Make an error message safe to persist and report.

    Replaces the home directory with ``~``, flattens newlines, collapses
    runs of whitespace and truncates with an ellipsis.
    """
    if message is None:
        return None
    home = str(Path.home())
    if home and home != "/":
        message = message.replace(home, "~")
    message = re.sub(r"[\r\n]+", " ", message)
    message = re.sub(r"\s{2,}", " ", message).strip()
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


@dataclass
class OperationMetrics:
    """Metrics for a single operation type."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float('inf')
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None


class MetricsCollector:
    """Thread-safe metrics collection for note operations.

    Collects timing, success/failure rates, and error information
    for each operation type (create_note, search_notes, etc.).
    Metrics are only written to disk when save_metrics() is called.
    """

    def __init__(self, metrics_file: Optional[Union[str, Path]] = None):
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)
        self._metrics_file = Path(metrics_file) if metrics_file else DEFAULT_METRICS_FILE

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None
    ) -> None:
        """Record metrics for an operation.

        Args:
            operation: The operation name (e.g., 'create_note', 'search_notes')
            duration_ms: Duration in milliseconds
            success: Whether the operation succeeded
            error: Error message if the operation failed
        """
        with self._lock:
            m = self._metrics[operation]
            m.count += 1
            m.total_duration_ms += duration_ms
            m.min_duration_ms = min(m.min_duration_ms, duration_ms)
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)

            if success:
                m.success_count += 1
            else:
                m.error_count += 1
                m.last_error = _sanitize_error_message(error)
                m.last_error_time = datetime.now(timezone.utc)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Get a snapshot of all metrics, keyed by operation name."""
        with self._lock:
            result = {}
            for op, m in self._metrics.items():
                avg_duration = m.total_duration_ms / m.count if m.count > 0 else 0
                min_dur = m.min_duration_ms if m.min_duration_ms != float('inf') else 0
                result[op] = {
                    'count': m.count,
                    'success_count': m.success_count,
                    'error_count': m.error_count,
                    'success_rate': m.success_count / m.count if m.count > 0 else 0,
                    'avg_duration_ms': round(avg_duration, 2),
                    'min_duration_ms': round(min_dur, 2),
                    'max_duration_ms': round(m.max_duration_ms, 2),
                    'last_error': m.last_error,
                    'last_error_time': m.last_error_time.isoformat() if m.last_error_time else None
                }
            return result

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of overall server health."""
        with self._lock:
            total_ops = sum(m.count for m in self._metrics.values())
            total_success = sum(m.success_count for m in self._metrics.values())
            total_errors = sum(m.error_count for m in self._metrics.values())

            return {
                'uptime_seconds': (datetime.now(timezone.utc) - self._start_time).total_seconds(),
                'total_operations': total_ops,
                'total_success': total_success,
                'total_errors': total_errors,
                'overall_success_rate': total_success / total_ops if total_ops > 0 else 1.0,
                'operations_tracked': sorted(self._metrics.keys())
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._metrics.clear()
            self._start_time = datetime.now(timezone.utc)

    def save_metrics(self) -> bool:
        """Write metrics to disk atomically via a temp file.

        Returns:
            True if saved successfully, False otherwise.
        """
        with self._lock:
            try:
                self._metrics_file.parent.mkdir(parents=True, exist_ok=True)

                data = {
                    "start_time": self._start_time.isoformat(),
                    "saved_at": datetime.now(timezone.utc).isoformat(),
                    "operations": {},
                }
                for op_name, m in self._metrics.items():
                    data["operations"][op_name] = {
                        "count": m.count,
                        "success_count": m.success_count,
                        "error_count": m.error_count,
                        "total_duration_ms": m.total_duration_ms,
                        "min_duration_ms": m.min_duration_ms if m.min_duration_ms != float("inf") else None,
                        "max_duration_ms": m.max_duration_ms,
                        "last_error": m.last_error,
                        "last_error_time": m.last_error_time.isoformat() if m.last_error_time else None,
                    }

                temp_file = self._metrics_file.with_suffix(".tmp")
                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                temp_file.replace(self._metrics_file)
                return True

            except (OSError, TypeError) as e:
                logger.error(f"Failed to save metrics to {self._metrics_file}: {e}")
                return False

    def get_metrics_file(self) -> Path:
        """Get the path to the metrics file."""
        return self._metrics_file


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, collector: Optional[MetricsCollector] = None, **context):
    """Context manager for timing and logging operations.

    Args:
        operation: Name of the operation being performed
        collector: Metrics collector to record into (defaults to the global one)
        **context: Additional context to include in log messages

    Yields:
        A dictionary where you can store result info. Setting
        ``op['error']`` marks the operation as failed without raising.

    Example:
        with timed_operation('search_notes', term='todo') as op:
            results = store.search('todo')
            op['result_count'] = len(results)
    """
    collector = collector or metrics
    correlation_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {'correlation_id': correlation_id}

    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg = None
    success = True

    try:
        yield result_info
    except Exception as e:
        success = False
        error_msg = str(e)
        raise
    finally:
        if success and result_info.get('error'):
            success = False
            error_msg = str(result_info['error'])
        duration_ms = (time.perf_counter() - start_time) * 1000
        collector.record_operation(operation, duration_ms, success, error_msg)

        result_str = ', '.join(
            f'{k}={v}' for k, v in result_info.items() if k not in ('correlation_id', 'error')
        )
        status = 'OK' if success else f'ERROR: {_sanitize_error_message(error_msg)}'
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )
