from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pytest

from agentcore.tools import (
    DuplicateToolError,
    ToolContext,
    ToolDefinition,
    ToolOutput,
    ToolRegistry,
    create_default_registry,
)


def _echo_tool(calls: list[Mapping[str, Any]]) -> ToolDefinition:
    def handler(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
        calls.append(arguments)
        return ToolOutput(output=str(arguments["text"]), data={"length": len(arguments["text"])})

    return ToolDefinition(
        name="echo",
        description="Echo text back.",
        handler=handler,
        input_schema={"type": "object", "required": ["text"], "properties": {"text": {"type": "string"}}},
    )


def test_execute_runs_handler(tmp_path: Path) -> None:
    calls: list[Mapping[str, Any]] = []
    registry = ToolRegistry([_echo_tool(calls)])

    result = registry.execute("echo", {"text": "hi"}, ToolContext(workspace_root=tmp_path))

    assert result.ok
    assert result.output == "hi"
    assert result.data == {"length": 2}
    assert result.error is None


def test_unknown_tool_is_reported(tmp_path: Path) -> None:
    result = ToolRegistry().execute("nope", {}, ToolContext(workspace_root=tmp_path))

    assert not result.ok
    assert result.output == ""
    assert result.error == "Unknown tool: nope"


def test_missing_required_keys_never_reach_handler(tmp_path: Path) -> None:
    calls: list[Mapping[str, Any]] = []
    registry = ToolRegistry([_echo_tool(calls)])
    context = ToolContext(workspace_root=tmp_path)

    missing = registry.execute("echo", {}, context)
    wrong_type = registry.execute("echo", ["hi"], context)

    assert missing.error == "Missing required arguments: text"
    assert wrong_type.error == "Invalid arguments: expected object with required keys text"
    assert calls == []


def test_handler_exceptions_become_failures(tmp_path: Path) -> None:
    def boom(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
        raise RuntimeError("exploded")

    registry = ToolRegistry([ToolDefinition(name="boom", description="", handler=boom)])

    result = registry.execute("boom", {}, ToolContext(workspace_root=tmp_path))

    assert not result.ok
    assert result.error == "exploded"


def test_duplicate_registration_is_rejected() -> None:
    registry = ToolRegistry([_echo_tool([])])
    with pytest.raises(DuplicateToolError):
        registry.register(_echo_tool([]))


def test_default_registry_describes_builtins() -> None:
    registry = create_default_registry()
    names = [entry["name"] for entry in registry.describe()]

    assert names == ["read_file", "write_file", "list_files", "stat_path", "search_repo", "diff_summary", "run_shell"]
    described = {entry["name"]: entry for entry in registry.describe()}
    assert described["write_file"]["input_schema"]["required"] == ["path", "content"]
    assert len(registry.list()) == len(names)
    assert "run_shell" in registry
