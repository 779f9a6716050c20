"""Debug event log for the browser TUI.

Key presses, routing outcomes and overlay changes are recorded when
BILLBROWSE_TUI_DEBUG is set; BILLBROWSE_TUI_DEBUG_FILE additionally streams
each event as one NDJSON line.
"""

import json
import os
import threading
import time
from typing import Optional, TextIO

_MAX_EVENTS = 500
_KEEP_EVENTS = 250


class DebugLogger:
    """Thread-safe debug event logger with optional file streaming."""

    def __init__(self, app) -> None:
        """Initialize debug logger.

        Args:
            app: The BrowserApp instance (used for reading the active context)
        """
        self.app = app
        self._events: list[dict[str, object]] = []
        self._file_path: Optional[str] = None
        self._file: Optional[TextIO] = None
        self._file_lock = threading.Lock()

    @staticmethod
    def enabled() -> bool:
        return bool(os.getenv("BILLBROWSE_TUI_DEBUG") or os.getenv("BILLBROWSE_TUI_DEBUG_FILE"))

    def _context(self) -> str:
        browser = getattr(self.app, "browser", None)
        ctx = getattr(browser, "context", None)
        return str(getattr(ctx, "value", ctx or ""))

    def log(self, *, event: str, data: Optional[dict[str, object]] = None) -> None:
        """Record a debug event. Never raises.

        Args:
            event: Event name/type
            data: Optional event data dictionary
        """
        try:
            if not self.enabled():
                return
            payload: dict[str, object] = {
                "t": float(time.time()),
                "event": str(event),
                "context": self._context(),
                "data": data or {},
            }
            self._events.append(payload)
            if len(self._events) > _MAX_EVENTS:
                self._events = self._events[-_KEEP_EVENTS:]

            path = os.getenv("BILLBROWSE_TUI_DEBUG_FILE")
            if path:
                self._write(path, payload)
        except Exception:
            return

    def _write(self, path: str, payload: dict[str, object]) -> None:
        with self._file_lock:
            try:
                if self._file is None or self._file_path != path:
                    self._close_locked()
                    self._file_path = path
                    self._file = open(path, "a", encoding="utf-8", buffering=1)
                self._file.write(json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n")
                self._file.flush()
            except Exception:
                # Debug output must not break the UI.
                return

    def _close_locked(self) -> None:
        try:
            if self._file is not None:
                self._file.flush()
                self._file.close()
        except Exception:
            pass
        finally:
            self._file = None
            self._file_path = None

    def close(self) -> None:
        """Flush and close the NDJSON file, if open."""
        with self._file_lock:
            self._close_locked()

    @property
    def events(self) -> list[dict[str, object]]:
        """Copy of the recorded events."""
        return self._events.copy()


__all__ = ["DebugLogger"]
