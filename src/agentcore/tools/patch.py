"""Search/replace patch application with guard rails and explicit rollback."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from ..structured import CreateAction, DeleteAction, PatchAction, ReplaceAction
from ..workspace import resolve_within

__all__ = [
    "AmbiguousMatchError",
    "PatchApplier",
    "PatchApplyResult",
    "PatchEncodingError",
    "PatchError",
    "PatchValidationError",
    "RollbackEntry",
    "RollbackPlan",
    "SearchBlockNotFoundError",
    "collapse_whitespace",
    "replace_once",
]

TELEMETRY_LOGGER = logging.getLogger("agentcore.telemetry")
LOGGER = logging.getLogger(__name__)

FileValidator = Callable[[Path], None]


class PatchError(RuntimeError):
    """Raised when a patch action cannot be applied."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class AmbiguousMatchError(PatchError):
    """The search block matched more than one location."""


class SearchBlockNotFoundError(PatchError):
    """The search block matched nowhere, even after whitespace folding."""


class PatchValidationError(PatchError):
    """The post-write validation hook rejected a file."""


class PatchEncodingError(PatchError):
    """A replace target is not valid UTF-8 text."""


@dataclass(slots=True)
class RollbackEntry:
    """Pre-image of a single patch target."""

    file: str
    resolved: Path
    existed: bool
    content: bytes | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "resolved": self.resolved.as_posix(),
            "existed": self.existed,
            "size": len(self.content) if self.content is not None else None,
        }


@dataclass(slots=True)
class RollbackPlan:
    """Ordered pre-images captured before a patch is applied."""

    entries: list[RollbackEntry] = field(default_factory=list)

    @property
    def files(self) -> list[str]:
        return [entry.file for entry in self.entries]

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [entry.to_dict() for entry in self.entries]}


@dataclass(slots=True)
class PatchApplyResult:
    """Outcome of :meth:`PatchApplier.apply`."""

    touched: list[str] = field(default_factory=list)


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log structured telemetry events when applying patches."""
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _read_text(path: Path, file: str) -> str:
    try:
        # newline="" keeps CRLF intact.
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except UnicodeDecodeError as error:
        raise PatchEncodingError(
            f"Cannot replace in non UTF-8 file: {file}",
            details={"position": error.start},
        ) from None


def _write_text(path: Path, content: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(content)


def _find_all(haystack: str, needle: str) -> list[int]:
    """Return every (possibly overlapping) start index of ``needle``."""
    if not needle:
        return []
    hits: list[int] = []
    start = haystack.find(needle)
    while start != -1:
        hits.append(start)
        start = haystack.find(needle, start + 1)
    return hits


def collapse_whitespace(text: str) -> tuple[str, list[int]]:
    """Drop whitespace from ``text`` and map each kept character to its origin.

    ``positions[i]`` is the index in ``text`` of ``collapsed[i]``.
    """
    kept: list[str] = []
    positions: list[int] = []
    for index, char in enumerate(text):
        if char.isspace():
            continue
        kept.append(char)
        positions.append(index)
    return "".join(kept), positions


def replace_once(content: str, search: str, replace: str) -> str:
    """Replace the single occurrence of ``search`` in ``content``.

    Exact matches are tried first. When there are none, both strings are
    compared with whitespace removed and the original span is recovered from
    the position map.
    """
    exact = _find_all(content, search)
    if len(exact) == 1:
        start = exact[0]
        return content[:start] + replace + content[start + len(search) :]
    if len(exact) > 1:
        raise AmbiguousMatchError(
            "Ambiguous search block. Provide more context.",
            details={"strategy": "exact", "matches": len(exact)},
        )

    collapsed_content, positions = collapse_whitespace(content)
    collapsed_search, _ = collapse_whitespace(search)
    fuzzy = _find_all(collapsed_content, collapsed_search)
    if not fuzzy:
        raise SearchBlockNotFoundError(
            "Search block not found in file.",
            details={"strategy": "whitespace", "matches": 0},
        )
    if len(fuzzy) > 1:
        raise AmbiguousMatchError(
            "Ambiguous search block. Provide more context.",
            details={"strategy": "whitespace", "matches": len(fuzzy)},
        )
    begin = positions[fuzzy[0]]
    end = positions[fuzzy[0] + len(collapsed_search) - 1] + 1
    return content[:begin] + replace + content[end:]


class PatchApplier:
    """Apply patch actions inside a single workspace root."""

    def __init__(self, workspace_root: Path | str, *, validate_file: FileValidator | None = None) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self._validate_file = validate_file

    def _resolve(self, target: str) -> Path:
        return resolve_within(self.workspace_root, target)

    def create_rollback_plan(self, actions: Sequence[PatchAction]) -> RollbackPlan:
        """Capture the pre-image of every target without mutating anything."""
        # Validate every path before the first read.
        resolved = [(action.file, self._resolve(action.file)) for action in actions]
        entries: list[RollbackEntry] = []
        for file, path in resolved:
            try:
                content = path.read_bytes()
            except FileNotFoundError:
                entries.append(RollbackEntry(file=file, resolved=path, existed=False))
            else:
                entries.append(RollbackEntry(file=file, resolved=path, existed=True, content=content))
        plan = RollbackPlan(entries=entries)
        _emit_patch_event(
            "patch_rollback_captured",
            files=plan.files,
            existing=[entry.file for entry in entries if entry.existed],
        )
        return plan

    def apply(self, actions: Sequence[PatchAction]) -> PatchApplyResult:
        """Execute ``actions`` in order. Partial progress is left in place on failure."""
        result = PatchApplyResult()
        for index, action in enumerate(actions):
            try:
                self._apply_action(action, result)
            except OSError as error:
                failure = PatchError(
                    f"Failed to {action.action} {action.file}: {error}",
                    details={"errno": error.errno},
                )
                self._report_failure(failure, action, index, result)
                raise failure from error
            except PatchError as error:
                self._report_failure(error, action, index, result)
                raise
        _emit_patch_event("patch_apply_succeeded", touched=result.touched)
        return result

    @staticmethod
    def _report_failure(error: PatchError, action: PatchAction, index: int, result: PatchApplyResult) -> None:
        error.details.setdefault("file", action.file)
        error.details.setdefault("action_index", index)
        error.details.setdefault("touched", list(result.touched))
        _emit_patch_event(
            "patch_apply_failed",
            file=action.file,
            action=action.action,
            index=index,
            error=str(error),
            touched=result.touched,
        )

    def _apply_action(self, action: PatchAction, result: PatchApplyResult) -> None:
        path = self._resolve(action.file)
        if isinstance(action, CreateAction):
            path.parent.mkdir(parents=True, exist_ok=True)
            _write_text(path, action.content)
            result.touched.append(action.file)
            self._run_validator(path)
        elif isinstance(action, DeleteAction):
            path.unlink(missing_ok=True)
            result.touched.append(action.file)
        elif isinstance(action, ReplaceAction):
            try:
                content = _read_text(path, action.file)
            except FileNotFoundError:
                raise SearchBlockNotFoundError(
                    f"Cannot replace in missing file: {action.file}",
                    details={"strategy": "exact", "matches": 0},
                ) from None
            _write_text(path, replace_once(content, action.search_block, action.replace_block))
            result.touched.append(action.file)
            self._run_validator(path)
        else:
            raise PatchError(f"Unsupported patch action: {action!r}")

    def _run_validator(self, path: Path) -> None:
        if self._validate_file is None:
            return
        try:
            self._validate_file(path)
        except PatchError:
            raise
        except Exception as error:
            raise PatchValidationError(f"Validation failed for {path.name}: {error}") from error

    def rollback(self, plan: RollbackPlan) -> None:
        """Restore every entry of ``plan``; missing targets are not an error."""
        for entry in plan.entries:
            if entry.existed:
                entry.resolved.parent.mkdir(parents=True, exist_ok=True)
                entry.resolved.write_bytes(entry.content or b"")
            else:
                try:
                    entry.resolved.unlink()
                except (FileNotFoundError, NotADirectoryError):
                    pass
        LOGGER.debug("Rolled back %d patch target(s)", len(plan.entries))
        _emit_patch_event("patch_rollback_applied", files=plan.files)
