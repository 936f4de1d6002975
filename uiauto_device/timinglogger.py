# uiauto_device/timinglogger.py
"""
@file timinglogger.py
@brief Timing-specific logger for lifecycle wait observability.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Dict, Optional

_STATUS_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


class TimingLogger:
    """Thread-safe timing logger. Emits key=value lines to a stdlib logger and an optional file."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._file_path: Optional[str] = None
        self._level = logging.INFO
        self.log_target = logger or logging.getLogger("uiauto_device.timing")

    def configure(
        self,
        *,
        file_path: Optional[str] = None,
        level: str = "INFO",
    ) -> None:
        """Configure logger settings."""
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        with self._lock:
            self._file_path = file_path
            self._level = resolved

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log(
        self,
        *,
        event: str,
        description: Optional[str] = None,
        status: str = "info",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a timing log event."""
        if not self._enabled:
            return

        level = _STATUS_LEVELS.get(status.lower(), logging.INFO)
        if level < self._level:
            return

        parts = [
            f"[{status.lower()}]",
            "[timing]",
            f"time={time.strftime('%H:%M:%S')}",
            f"event={event}",
        ]
        if description:
            parts.append(f"description={description}")
        for key, value in (metadata or {}).items():
            parts.append(f"{key}={value}")
        line = " ".join(parts)

        self.log_target.log(level, "%s", line)

        if self._file_path:
            self._write_file(line)

    def _write_file(self, line: str) -> None:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)) or ".", exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            self.log_target.warning("Could not write timing log file %s: %s", self._file_path, e)


TIMING_LOGGER = TimingLogger()
