from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol


logger = logging.getLogger(__name__)

TELEMETRY_PATH_ENV = "TRANSCRIPT_BRIDGE_TELEMETRY_PATH"


class ErrorReporter(Protocol):
    """Anything that accepts an exception plus structured context."""

    def capture_exception(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        ...


class TelemetryLogger:
    """Append-only JSONL sink for events and captured exceptions."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or os.environ.get(TELEMETRY_PATH_ENV)
        self._fh = None
        self._lock = threading.Lock()
        if self.path:
            p = Path(self.path)
            p.parent.mkdir(parents=True, exist_ok=True)
            # append mode JSONL
            self._fh = p.open("a", encoding="utf-8")

    def log(self, payload: Dict[str, Any]) -> None:
        if not self._fh:
            return
        line = json.dumps(payload, separators=(",", ":"), default=str) + "\n"
        with self._lock:
            try:
                self._fh.write(line)
                self._fh.flush()
            except OSError as exc:
                logger.warning("telemetry write failed: %s", exc)

    def capture_exception(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        self.log(
            {
                "event": "exception",
                "ts": time.time(),
                "error_type": error.__class__.__name__,
                "message": str(error),
                "details": getattr(error, "details", None) or {},
                "context": context or {},
            }
        )

    def close(self) -> None:
        with self._lock:
            if self._fh:
                try:
                    self._fh.close()
                except OSError as exc:
                    logger.warning("telemetry close failed: %s", exc)
                self._fh = None
