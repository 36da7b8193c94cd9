"""
Wizard session event log — append-only, one JSON object per line (.jsonl).

Usage:
    from modules.observability.logger import WizardEventLog

    events = WizardEventLog()
    events.log("temp_1718000000000_3f9a12bc", "session_started", {"mode": "create"})

Logs are written to  <SESSION_LOG_DIR>/<draft_id>.jsonl .  When
SESSION_LOG_ENABLED is false (the default) log() is a no-op.

Event types emitted by the wizard controller, with their payload keys:
    session_started    mode, restored (create only)
    hydration_failed   error
    step_changed       from, to, label, route_points, days, activities, images
    handoff            mode, preview_path, route_points, days, activities, images
    session_closed     -

The handle for a draft is closed on session close and on handoff.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

import config


class WizardEventLog:
    """Thread-safe, append-only JSONL logger keyed by draft id."""

    def __init__(self, logs_dir: Path | str | None = None, enabled: bool | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else Path(config.SESSION_LOG_DIR)
        self.enabled = config.SESSION_LOG_ENABLED if enabled is None else enabled
        self._lock = threading.Lock()
        self._handles: dict[str, IO[str]] = {}  # draft_id -> file handle

    # ── public API ────────────────────────────────────────────────────────

    def log(self, draft_id: str, event_type: str, payload: dict | None = None) -> None:
        """Append one structured JSON record to ``<draft_id>.jsonl``."""
        if not self.enabled:
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "draft_id": draft_id,
            "event_type": event_type,
            "payload": payload or {},
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            fh = self._handles.get(draft_id)
            if fh is None:
                fh = self._open(draft_id)
            fh.write(line)
            fh.flush()

    def close(self, draft_id: str | None = None) -> None:
        """Close one or all open file handles."""
        with self._lock:
            if draft_id:
                fh = self._handles.pop(draft_id, None)
                if fh:
                    fh.close()
            else:
                for fh in self._handles.values():
                    fh.close()
                self._handles.clear()

    # ── internals ─────────────────────────────────────────────────────────

    def _open(self, draft_id: str) -> IO[str]:
        os.makedirs(self._logs_dir, exist_ok=True)
        path = self._logs_dir / f"{draft_id}.jsonl"
        fh = open(path, "a", encoding="utf-8")  # noqa: SIM115
        self._handles[draft_id] = fh
        return fh
