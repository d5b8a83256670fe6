"""Structured JSONL run logs written by the interpreter and tools."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping

__all__ = ["RunLogEntry", "RunLogger", "load_run_log"]


def _default(value: Any) -> Any:
    if isinstance(value, Path):
        return value.as_posix()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return str(value)


class RunLogger:
    """Append ``{event, timestamp, data}`` records to a JSONL file.

    Instances satisfy the interpreter logger protocol and can be shared
    between threads.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def log(self, event: str, data: Mapping[str, Any]) -> None:
        record = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": dict(data),
        }
        line = json.dumps(record, ensure_ascii=False, default=_default)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


@dataclass(slots=True)
class RunLogEntry:
    """In-memory representation of one run log record."""

    event: str
    timestamp: str
    data: Mapping[str, Any]

    @property
    def attempt(self) -> int | None:
        value = self.data.get("attempt")
        if isinstance(value, int):
            return value
        return None


def load_run_log(path: Path | str) -> List[RunLogEntry]:
    """Load every record of a run log; a missing file yields no entries."""
    log_path = Path(path)
    if not log_path.exists():
        return []
    entries: List[RunLogEntry] = []
    with log_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            payload = json.loads(line)
            data = payload.get("data")
            entries.append(
                RunLogEntry(
                    event=str(payload.get("event") or "").strip(),
                    timestamp=str(payload.get("timestamp") or ""),
                    data=data if isinstance(data, Mapping) else {},
                )
            )
    return entries
