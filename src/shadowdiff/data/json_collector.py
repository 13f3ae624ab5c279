# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/data/json_collector.py

from datetime import datetime
from typing import Any

import orjson
from pydantic import BaseModel


class JSONCollector:
    """Collects structured data from CLI commands for external testing/automation.

    When enabled, captures operation results and metadata as JSON.
    When disabled, all methods are no-ops.
    """

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self.data = {} if enabled else None

    def capture_success(self, result: Any = None, **extra: Any) -> None:
        """Capture successful operation data.

        Args:
            result: Operation result; pydantic models are dumped in JSON mode
            **extra: Additional keys to record (None values are skipped)
        """
        if not self.enabled:
            return

        self.data["status"] = "success"
        self.data["timestamp"] = datetime.now().isoformat()
        if result is not None:
            self.data["result"] = self._extract(result)
        self.record_all(**extra)

    def capture_error(self, error: Exception, **extra: Any) -> None:
        """Capture error operation data."""
        if not self.enabled:
            return

        self.data["status"] = "error"
        self.data["timestamp"] = datetime.now().isoformat()
        self.data["error"] = str(error)
        self.data["error_type"] = type(error).__name__
        step = getattr(error, "step", None)
        if step:
            self.data["step"] = step
        cleanup_error = getattr(error, "cleanup_error", None)
        if cleanup_error is not None:
            self.data["cleanup_error"] = str(cleanup_error)
        self.record_all(**extra)

    def capture_cancelled(self, **extra: Any) -> None:
        if not self.enabled:
            return

        self.data["status"] = "cancelled"
        self.data["timestamp"] = datetime.now().isoformat()
        self.record_all(**extra)

    def record(self, key: str, value: Any) -> None:
        if not self.enabled:
            return

        self.data[key] = value

    def record_all(self, **kwargs: Any) -> None:
        """Record multiple key-value pairs, filtering out None values."""
        if not self.enabled:
            return

        for key, value in kwargs.items():
            if value is not None:
                self.data[key] = value

    def output(self) -> None:
        """Output collected JSON data to stdout if enabled."""
        if not self.enabled:
            return

        json_str = orjson.dumps(self.data, option=orjson.OPT_INDENT_2, default=str).decode()
        print(f"<JSON-STDOUT>{json_str}</JSON-STDOUT>")

    def _extract(self, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        return value
