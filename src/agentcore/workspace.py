"""Workspace confinement helpers shared by every side-effecting component."""

from __future__ import annotations

import os
from pathlib import Path

__all__ = ["PathEscapeError", "relative_to_root", "resolve_within"]


class PathEscapeError(ValueError):
    """Raised when a path resolves outside the permitted workspace root."""

    def __init__(self, path: str | os.PathLike[str], root: str | os.PathLike[str]) -> None:
        self.path = str(path)
        self.root = str(root)
        super().__init__(f"Path is outside the workspace root: {self.path}")


def resolve_within(root: Path | str, target: Path | str) -> Path:
    """Resolve ``target`` against ``root`` and reject anything that escapes it.

    Resolution is lexical: ``..`` segments are collapsed without consulting the
    filesystem so the check can run before any read or write happens. Absolute
    targets are accepted only when they already live under ``root``.
    """
    root_path = os.path.abspath(os.fspath(root))
    raw = os.fspath(target)
    candidate = os.path.normpath(os.path.join(root_path, raw))
    try:
        common = os.path.commonpath([root_path, candidate])
    except ValueError:
        # Different drives on Windows.
        raise PathEscapeError(raw, root_path) from None
    if common != root_path:
        raise PathEscapeError(raw, root_path)
    return Path(candidate)


def relative_to_root(root: Path | str, path: Path | str) -> str:
    """Return ``path`` as a POSIX string relative to ``root`` (``.`` for the root)."""
    relative = os.path.relpath(os.fspath(path), os.path.abspath(os.fspath(root)))
    if relative == os.curdir:
        return "."
    return Path(relative).as_posix()
