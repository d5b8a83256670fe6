"""Durable per-lane message logs stored as JSON lines under the workspace."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Iterator, List, Union

from pydantic import ValidationError

from ..workspace import resolve_within
from .schema import ContextMessage, LaneSnapshot

__all__ = ["ContextStore", "ContextStoreError", "DEFAULT_STORAGE_DIR", "safe_lane_id"]

DEFAULT_STORAGE_DIR = Path(".agentcore/context")
LOGGER = logging.getLogger(__name__)

MessageInput = Union[ContextMessage, Mapping[str, Any]]

_UNSAFE_LANE_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")


class ContextStoreError(RuntimeError):
    """Raised when a lane log cannot be read back."""


def safe_lane_id(lane_id: str) -> str:
    """Map an opaque lane id (``job:task:role``) onto a file-name-safe stem.

    Ids that needed rewriting get a short digest of the original appended, so
    ``job:1`` and ``job/1`` land in different files.
    """
    stem = _UNSAFE_LANE_CHARS.sub("_", lane_id)
    if stem == lane_id:
        return stem
    digest = hashlib.sha1(lane_id.encode("utf-8")).hexdigest()[:8]
    return f"{stem}-{digest}"


def _coerce_messages(messages: MessageInput | Sequence[MessageInput]) -> List[ContextMessage]:
    if isinstance(messages, (ContextMessage, Mapping)):
        items: Sequence[MessageInput] = [messages]
    else:
        items = messages
    coerced: List[ContextMessage] = []
    for item in items:
        if isinstance(item, ContextMessage):
            coerced.append(item)
        else:
            coerced.append(ContextMessage.model_validate(dict(item)))
    return coerced


def _serialise(messages: Sequence[ContextMessage]) -> str:
    if not messages:
        return ""
    lines = [json.dumps(message.to_record(), ensure_ascii=False, separators=(",", ":")) for message in messages]
    return "\n".join(lines) + "\n"


class ContextStore:
    """Append-friendly message persistence keyed by lane id.

    Operations on one lane are serialised by a per-lane lock; distinct lanes
    never contend.
    """

    def __init__(self, workspace_root: Path | str, storage_dir: Path | str = DEFAULT_STORAGE_DIR) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self.storage_dir = resolve_within(self.workspace_root, storage_dir)
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ paths
    def lane_path(self, lane_id: str) -> Path:
        """Return the log file backing ``lane_id``."""
        if not isinstance(lane_id, str) or not lane_id.strip():
            raise ValueError("Lane id must be a non-empty string")
        return resolve_within(self.workspace_root, self.storage_dir / f"{safe_lane_id(lane_id)}.jsonl")

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = threading.Lock()
                self._locks[path] = lock
            return lock

    # ------------------------------------------------------------------- read
    def load_lane(self, lane_id: str) -> LaneSnapshot:
        """Return every message of ``lane_id`` in append order."""
        path = self.lane_path(lane_id)
        with self._lock_for(path):
            return self._load(lane_id, path)

    def list_lanes(self) -> list[str]:
        """Return the (file-name-safe) ids of lanes persisted so far."""
        if not self.storage_dir.is_dir():
            return []
        return sorted(entry.stem for entry in self.storage_dir.glob("*.jsonl") if entry.is_file())

    def _load(self, lane_id: str, path: Path) -> LaneSnapshot:
        try:
            raw = path.read_bytes()
            stats = path.stat()
        except FileNotFoundError:
            return LaneSnapshot(lane_id=lane_id)
        messages = list(self._parse_lines(lane_id, raw.decode("utf-8")))
        return LaneSnapshot(
            lane_id=lane_id,
            messages=messages,
            message_count=len(messages),
            byte_size=len(raw),
            updated_at=stats.st_mtime * 1000,
        )

    @staticmethod
    def _parse_lines(lane_id: str, content: str) -> Iterator[ContextMessage]:
        for number, line in enumerate(content.split("\n"), start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                yield ContextMessage.model_validate(json.loads(stripped))
            except (json.JSONDecodeError, ValidationError) as error:
                raise ContextStoreError(f"Corrupt record in lane {lane_id!r} at line {number}: {error}") from error

    # ---------------------------------------------------------------- mutate
    def append(self, lane_id: str, messages: MessageInput | Sequence[MessageInput]) -> LaneSnapshot:
        """Append ``messages`` to the lane, creating it when absent."""
        path = self.lane_path(lane_id)
        items = _coerce_messages(messages)
        with self._lock_for(path):
            if items:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8", newline="\n") as handle:
                    handle.write(_serialise(items))
                LOGGER.debug("Appended %d message(s) to lane %s", len(items), lane_id)
            return self._load(lane_id, path)

    def replace(self, lane_id: str, messages: Sequence[MessageInput]) -> LaneSnapshot:
        """Discard the lane history and store ``messages`` as the new history."""
        path = self.lane_path(lane_id)
        items = _coerce_messages(list(messages))
        with self._lock_for(path):
            self._write(path, items)
            LOGGER.debug("Replaced lane %s with %d message(s)", lane_id, len(items))
            return self._load(lane_id, path)

    def truncate(self, lane_id: str, keep: int) -> LaneSnapshot:
        """Keep only the most recent ``keep`` messages of the lane."""
        if keep < 0:
            raise ValueError("keep must be non-negative")
        path = self.lane_path(lane_id)
        with self._lock_for(path):
            snapshot = self._load(lane_id, path)
            if snapshot.message_count <= keep:
                return snapshot
            trimmed = snapshot.messages[-keep:] if keep else []
            self._write(path, trimmed)
            LOGGER.debug("Truncated lane %s to %d message(s)", lane_id, keep)
            return self._load(lane_id, path)

    @staticmethod
    def _write(path: Path, messages: Sequence[ContextMessage]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=path.parent,
            prefix=f".{path.stem}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                handle.write(_serialise(messages))
            os.replace(handle.name, path)
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise
