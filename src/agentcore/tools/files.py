"""Workspace file tools: read, write, list and stat."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List

from .registry import ToolContext, ToolDefinition, ToolOutput

__all__ = ["create_file_tools"]

DEFAULT_LIST_DEPTH = 2


def _string_argument(arguments: Mapping[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str):
        raise TypeError(f"Argument '{key}' must be a string")
    return value


def _read_file(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    resolved = context.resolve_path(_string_argument(arguments, "path"))
    return ToolOutput(output=resolved.read_text(encoding="utf-8"))


def _write_file(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    resolved = context.resolve_path(_string_argument(arguments, "path"))
    content = _string_argument(arguments, "content")
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(content, encoding="utf-8")
    relative = context.relative(resolved)
    context.record_touched_file(relative)
    return ToolOutput(output=f"Wrote {relative}")


def _walk(base: Path, max_depth: int, depth: int, entries: List[Path]) -> None:
    if depth > max_depth:
        return
    for entry in sorted(base.iterdir(), key=lambda item: item.name):
        entries.append(entry)
        if entry.is_dir() and not entry.is_symlink():
            _walk(entry, max_depth, depth + 1, entries)


def _list_files(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    target = arguments.get("path", ".") if isinstance(arguments, Mapping) else "."
    max_depth = arguments.get("maxDepth", DEFAULT_LIST_DEPTH) if isinstance(arguments, Mapping) else DEFAULT_LIST_DEPTH
    if isinstance(max_depth, bool) or not isinstance(max_depth, int):
        raise TypeError("Argument 'maxDepth' must be an integer")
    resolved = context.resolve_path(str(target))
    entries: List[Path] = []
    _walk(resolved, max_depth, 0, entries)
    relative_entries = [context.relative(entry) for entry in entries]
    return ToolOutput(output="\n".join(relative_entries), data={"entries": relative_entries})


def _stat_path(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    resolved = context.resolve_path(_string_argument(arguments, "path"))
    stats = resolved.stat()
    info = {
        "path": context.relative(resolved),
        "isFile": resolved.is_file(),
        "isDirectory": resolved.is_dir(),
        "size": stats.st_size,
        "mtimeMs": stats.st_mtime * 1000,
    }
    return ToolOutput(output=json.dumps(info, indent=2), data=info)


def create_file_tools() -> list[ToolDefinition]:
    return [
        ToolDefinition(
            name="read_file",
            description="Read a text file from the workspace.",
            handler=_read_file,
            input_schema={"type": "object", "required": ["path"], "properties": {"path": {"type": "string"}}},
        ),
        ToolDefinition(
            name="write_file",
            description="Write content to a file inside the workspace.",
            handler=_write_file,
            input_schema={
                "type": "object",
                "required": ["path", "content"],
                "properties": {"path": {"type": "string"}, "content": {"type": "string"}},
            },
        ),
        ToolDefinition(
            name="list_files",
            description="List files under a directory within the workspace.",
            handler=_list_files,
            input_schema={
                "type": "object",
                "properties": {"path": {"type": "string"}, "maxDepth": {"type": "number"}},
            },
        ),
        ToolDefinition(
            name="stat_path",
            description="Get stat info for a file or directory.",
            handler=_stat_path,
            input_schema={"type": "object", "required": ["path"], "properties": {"path": {"type": "string"}}},
        ),
    ]
