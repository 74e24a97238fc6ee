"""
Audit Logger — Structured JSON-lines audit trail.

One line per scan: timestamp, scan_id, files scanned, violations found,
references, duration, and whether the scan was cancelled.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path

from voidguard.config import settings
from voidguard.models.scan_models import AuditEntry

logger = logging.getLogger("voidguard.audit")


class AuditLogger:
    """Appends audit entries to a JSON-lines file."""

    def __init__(self, log_path: str | None = None) -> None:
        # None follows settings.audit_log_path at write time
        self._log_path = log_path
        self._lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        return Path(self._log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry) -> None:
        """Append an audit entry. Write failures are logged, never raised."""
        line = json.dumps(
            {"timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()), **entry.model_dump()}
        )
        with self._lock:
            try:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                logger.error("Failed to write audit log %s: %s", self.log_path, e)

    def read_recent(self, count: int = 50) -> list[AuditEntry]:
        """Most recent ``count`` entries; unreadable lines are skipped."""
        try:
            lines = self.log_path.read_text(encoding="utf-8").splitlines()
        except OSError:
            return []

        entries: list[AuditEntry] = []
        for line in lines[-count:]:
            if not line.strip():
                continue
            try:
                entries.append(AuditEntry.model_validate_json(line))
            except ValueError:
                logger.warning("Skipping malformed audit line in %s", self.log_path)
        return entries
