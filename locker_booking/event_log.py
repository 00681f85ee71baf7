from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable
import logging
import shutil
import threading

import yaml

logger = logging.getLogger(__name__)


class EventLogError(RuntimeError):
    pass


class YamlEventLog:
    """Append-only audit trail of successful writes, kept as a YAML list.

    Each entry is ``{event_time, event_type, payload}``. A file that cannot be
    parsed is copied aside as ``<stem>.corrupt.<timestamp><suffix>`` and
    started over.
    """

    def __init__(self, path: str | Path, clock: Callable[[], datetime] | None = None) -> None:
        self.path = Path(path)
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._ensure_file()

    def _ensure_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]\n", encoding="utf-8")

    def _read_events(self) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            self._reset()
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted(error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted(ValueError("top-level YAML is not a list"))
            return []
        return [row for row in payload if isinstance(row, dict)]

    def _write_events(self, rows: list[dict[str, Any]]) -> None:
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as error:
            raise EventLogError(f"Failed to write event log: {self.path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _reset(self) -> None:
        try:
            self.path.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise EventLogError(f"Failed to reset event log: {self.path}") from error

    def _recover_corrupted(self, error: Exception) -> None:
        timestamp = self._clock().strftime("%Y%m%d%H%M%S")
        backup_path = self.path.with_name(f"{self.path.stem}.corrupt.{timestamp}{self.path.suffix}")
        try:
            if self.path.exists():
                shutil.copy2(self.path, backup_path)
        except OSError:
            logger.warning("Could not back up corrupted event log %s", self.path)

        self._reset()
        logger.warning("Event log %s was reset (%s); backup at %s", self.path.name, error, backup_path.name)

    def record(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or self._clock()).isoformat(timespec="seconds")
        with self._lock:
            events = self._read_events()
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_events(events)

    def events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._read_events()
        if event_type is None:
            return rows
        return [row for row in rows if row.get("event_type") == event_type]


class NullEventLog:
    """Used when no event log path is configured."""

    def record(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        return None

    def events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        return []
