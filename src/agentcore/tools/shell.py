"""Allow-listed command execution from the workspace root.

The tool fails closed: it is disabled unless the context enables it, and an
empty allow-list rejects every command.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .process import run_process
from .registry import ToolContext, ToolDefinition, ToolOutput

__all__ = ["ShellToolError", "create_shell_tool"]


class ShellToolError(RuntimeError):
    """Raised when a shell invocation is refused or fails."""


def _run_shell(arguments: Mapping[str, Any], context: ToolContext) -> ToolOutput:
    if not context.allow_shell:
        raise ShellToolError("Shell tool is disabled")
    command = arguments.get("command")
    if not isinstance(command, str) or not command:
        raise TypeError("Argument 'command' must be a non-empty string")
    if not context.shell_allowlist or command not in context.shell_allowlist:
        raise ShellToolError(f"Command not allowed: {command}")

    extra = arguments.get("args") or []
    if not isinstance(extra, (list, tuple)) or not all(isinstance(item, str) for item in extra):
        raise TypeError("Argument 'args' must be a list of strings")
    timeout = arguments.get("timeout", context.shell_timeout)

    result = run_process([command, *extra], context.workspace_root, timeout=timeout)
    if result.returncode != 0:
        message = result.stderr or result.stdout or f"Command failed with exit code {result.returncode}"
        raise ShellToolError(message)
    return ToolOutput(
        output=result.stdout or result.stderr,
        data={"stdout": result.stdout, "stderr": result.stderr, "exitCode": result.returncode},
    )


def create_shell_tool() -> ToolDefinition:
    return ToolDefinition(
        name="run_shell",
        description="Run a shell command from the workspace root (allowlist only).",
        handler=_run_shell,
        input_schema={
            "type": "object",
            "required": ["command"],
            "properties": {
                "command": {"type": "string"},
                "args": {"type": "array", "items": {"type": "string"}},
                "timeout": {"type": "number"},
            },
        },
    )
