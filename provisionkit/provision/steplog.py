"""
Append-only step log for a provisioning run.

Each entry carries a timestamp and a status marker. Entries are mirrored to
the module logger (console) and, when configured, to a log file that is
rewritten at the start of every run. Once frozen the log rejects new entries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

STATUS_INFO = "info"
STATUS_OK = "ok"
STATUS_WARN = "warn"
STATUS_FAIL = "fail"

_LEVELS = {
    STATUS_INFO: logging.INFO,
    STATUS_OK: logging.INFO,
    STATUS_WARN: logging.WARNING,
    STATUS_FAIL: logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    """A single timestamped step message."""

    timestamp: datetime
    status: str
    message: str

    def format(self) -> str:
        """
        Render the entry as a log file line.

        Example:
            >>> LogEntry(datetime(2024, 5, 1, 12, 0, 0), "ok", "Cloned").format()
            '2024-05-01T12:00:00 [OK] Cloned'
        """
        stamp = self.timestamp.isoformat(timespec="seconds")
        return f"{stamp} [{self.status.upper()}] {self.message}"


class StepLog:
    """Collects step messages for one run."""

    def __init__(self, log_file: Optional[Path] = None):
        self.log_file = Path(log_file) if log_file else None
        self._entries: List[LogEntry] = []
        self._frozen = False

        if self.log_file:
            self._reset_file()

    def _reset_file(self) -> None:
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file.write_text("", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cannot write log file {self.log_file}: {e}")
            self.log_file = None

    @property
    def frozen(self) -> bool:
        return self._frozen

    def record(self, status: str, message: str) -> LogEntry:
        """
        Append an entry.

        Raises:
            RuntimeError: If the log has been frozen
            ValueError: If status is not a known marker
        """
        if self._frozen:
            raise RuntimeError("Step log is finalized; no further entries allowed")
        if status not in _LEVELS:
            raise ValueError(f"Unknown status marker: {status}")

        entry = LogEntry(timestamp=datetime.now(), status=status, message=message)
        self._entries.append(entry)

        logger.log(_LEVELS[status], message)
        if self.log_file:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(entry.format() + "\n")

        return entry

    def info(self, message: str) -> LogEntry:
        return self.record(STATUS_INFO, message)

    def ok(self, message: str) -> LogEntry:
        return self.record(STATUS_OK, message)

    def warn(self, message: str) -> LogEntry:
        return self.record(STATUS_WARN, message)

    def fail(self, message: str) -> LogEntry:
        return self.record(STATUS_FAIL, message)

    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def freeze(self) -> Tuple[LogEntry, ...]:
        """Finalize the log and return its entries."""
        self._frozen = True
        return tuple(self._entries)
