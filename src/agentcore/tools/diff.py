"""Summarise pending workspace changes from ``git status``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .process import run_process
from .registry import ToolContext, ToolDefinition, ToolOutput

__all__ = ["DEFAULT_DIFF_LINES", "DiffSummaryError", "create_diff_tool"]

DEFAULT_DIFF_LINES = 200


class DiffSummaryError(RuntimeError):
    """Raised when ``git status`` cannot be collected."""


def _diff_summary(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    max_lines = arguments.get("maxLines", DEFAULT_DIFF_LINES) if isinstance(arguments, Mapping) else DEFAULT_DIFF_LINES
    if isinstance(max_lines, bool) or not isinstance(max_lines, int) or max_lines < 0:
        raise TypeError("Argument 'maxLines' must be a non-negative integer")

    result = run_process(["git", "status", "--porcelain"], context.workspace_root)
    if result.returncode != 0:
        message = result.stderr.strip() or result.stdout.strip() or "git status failed"
        raise DiffSummaryError(message)

    lines = [line for line in result.stdout.splitlines() if line]
    clipped = lines[:max_lines]
    return ToolOutput(output="\n".join(clipped), data={"count": len(clipped), "total": len(lines)})


def create_diff_tool() -> ToolDefinition:
    return ToolDefinition(
        name="diff_summary",
        description="Show a git status summary of workspace changes.",
        handler=_diff_summary,
        input_schema={"type": "object", "properties": {"maxLines": {"type": "number"}}},
    )
