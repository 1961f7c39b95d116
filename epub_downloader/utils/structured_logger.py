"""
Structured logging for the application.

A single ``StructuredLogger`` is constructed at process start from the
configuration and handed to every component that logs. It writes either a
human-readable Rich log or JSON lines, and is closed when the process stops.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Optional

from rich.console import Console
from rich.logging import RichHandler

from epub_downloader.exceptions import AppError, error_code, is_retryable
from epub_downloader.models.config import AppConfig

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class StructuredLogger:
    """
    Logger that outputs either human-readable or machine-parseable logs.

    Usage:
        with StructuredLogger("epub_downloader", log_path=path) as logger:
            logger.info("session_validated", email="me@example.com")
    """

    def __init__(
        self,
        name: str = "epub_downloader",
        level: str = "info",
        log_path: Path | None = None,
        enable_json: bool = False,
        enabled: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: One of debug, info, warn, error
            log_path: File receiving the log (None = stderr)
            enable_json: Write JSON lines instead of Rich-formatted text
            enabled: Emit anything at all (False makes a silent logger)
        """
        self.name = name
        self.log_path = log_path
        self.level = LOG_LEVELS.get(level, logging.INFO)
        self.enable_json = enabled and enable_json
        self.enable_console = enabled and not enable_json

        self._logger = logging.getLogger(name)
        self._handler: Optional[logging.Handler] = None
        self._stream: Optional[IO[str]] = None
        self._owns_stream = False

        if self.enable_console or self.enable_json:
            if log_path is not None:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                self._stream = open(log_path, "a", encoding="utf-8")  # noqa: SIM115
                self._owns_stream = True
            else:
                self._stream = sys.stderr

        if self.enable_console:
            self._handler = RichHandler(
                console=Console(file=self._stream, no_color=self._owns_stream),
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%Y-%m-%d %H:%M:%S]",
            )
            self._logger.addHandler(self._handler)
            self._logger.setLevel(self.level)
            self._logger.propagate = False

        # Session context (added to all JSON entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    @classmethod
    def from_config(cls, config: AppConfig) -> "StructuredLogger":
        log_path = Path(config.log_path).expanduser() if config.log_path else None
        return cls(
            "epub_downloader",
            level=config.log_level,
            log_path=log_path,
            enable_json=not config.pretty_log,
        )

    @classmethod
    def disabled(cls) -> "StructuredLogger":
        """A logger that drops everything, for components built without one."""
        return cls("epub_downloader", enabled=False)

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry as a JSON line."""
        if not self._stream or self._stream.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._stream.write(json.dumps(entry, default=str) + "\n")
            self._stream.flush()
        except OSError as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if level < self.level:
            return
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **context)

    def log_error(self, event: str, err: BaseException, **context) -> None:
        """Log an error with its code, technical message, and wrapped cause."""
        message = err.message if isinstance(err, AppError) else str(err)
        cause = err.__cause__
        self.error(
            event,
            code=error_code(err),
            error=message,
            retryable=is_retryable(err),
            cause=str(cause) if cause is not None else None,
            **context,
        )

    def close(self) -> None:
        """Detach the handler and close the log file."""
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler = None
        if self._owns_stream and self._stream and not self._stream.closed:
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class APILogger:
    """Specialized logger for API events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def request_started(self, method: str, endpoint: str):
        """Log API request started."""
        self.logger.debug("api_request_started", method=method, endpoint=endpoint)

    def request_completed(self, endpoint: str, status_code: int, duration_ms: float):
        """Log API request completed."""
        self.logger.debug(
            "api_request_completed",
            endpoint=endpoint,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
        )

    def request_failed(self, endpoint: str, err: BaseException, duration_ms: float):
        """Log API request failed."""
        self.logger.log_error(
            "api_request_failed",
            err,
            endpoint=endpoint,
            duration_ms=round(duration_ms, 2),
        )

    def rate_limit_wait(self, endpoint: str, wait_s: float):
        """Log a request held back by the rate limiter."""
        self.logger.debug(
            "api_rate_limit_wait", endpoint=endpoint, wait_ms=round(wait_s * 1000, 2)
        )
