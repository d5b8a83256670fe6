"""Text search over the workspace with ripgrep, falling back to grep."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from .process import ProcessResult, run_process
from .registry import ToolContext, ToolDefinition, ToolOutput

__all__ = ["MAX_SEARCH_LINES", "create_search_tool"]

LOGGER = logging.getLogger(__name__)
MAX_SEARCH_LINES = 200


def _search(command: list[str], cwd: Path) -> Optional[ProcessResult]:
    try:
        result = run_process(command, cwd)
    except FileNotFoundError:
        LOGGER.debug("Search executable not available: %s", command[0])
        return None
    # Exit status 1 means "no matches" for both rg and grep.
    if result.returncode not in (0, 1):
        LOGGER.debug("%s exited with %s: %s", command[0], result.returncode, result.stderr.strip())
        return None
    return result


def _search_repo(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    query = arguments.get("query")
    if not isinstance(query, str) or not query:
        raise TypeError("Argument 'query' must be a non-empty string")
    glob = arguments.get("glob")

    command = ["rg", "--line-number", "--column", "--no-heading", "--color", "never"]
    if isinstance(glob, str) and glob:
        command.extend(["--glob", glob])
    command.extend(["--", query, "."])

    result = _search(command, context.workspace_root)
    if result is None:
        result = _search(["grep", "-R", "-n", "--", query, "."], context.workspace_root)
    output = result.stdout if result is not None else ""

    lines = [line for line in output.splitlines() if line][:MAX_SEARCH_LINES]
    return ToolOutput(output="\n".join(lines), data={"count": len(lines)})


def create_search_tool() -> ToolDefinition:
    return ToolDefinition(
        name="search_repo",
        description="Search for text in the workspace using rg when available.",
        handler=_search_repo,
        input_schema={
            "type": "object",
            "required": ["query"],
            "properties": {"query": {"type": "string"}, "glob": {"type": "string"}},
        },
    )
