"""Name-keyed dispatcher for the tools advertised to a model.

Tool failures are data: :meth:`ToolRegistry.execute` never raises for an
unknown tool, invalid arguments, or a handler error. It returns a
:class:`ToolExecutionResult` with ``ok=False`` instead so the caller can feed
the message back to the model.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..workspace import relative_to_root, resolve_within

__all__ = [
    "DuplicateToolError",
    "ToolContext",
    "ToolDefinition",
    "ToolExecutionResult",
    "ToolHandler",
    "ToolOutput",
    "ToolRegistry",
    "create_default_registry",
]

LOGGER = logging.getLogger(__name__)


class DuplicateToolError(ValueError):
    """Raised when a tool name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


@dataclass(slots=True)
class ToolContext:
    """Per-invocation execution context shared by every tool."""

    workspace_root: Path
    allow_shell: bool = False
    shell_allowlist: tuple[str, ...] = ()
    allow_outside_workspace: bool = False
    shell_timeout: Optional[float] = None
    touched_files: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.workspace_root = Path(os.path.abspath(self.workspace_root))
        self.shell_allowlist = tuple(self.shell_allowlist)

    def resolve_path(self, target: str | os.PathLike[str]) -> Path:
        """Resolve a tool path argument, rejecting escapes unless explicitly allowed."""
        if self.allow_outside_workspace:
            return Path(os.path.normpath(os.path.join(self.workspace_root, os.fspath(target))))
        return resolve_within(self.workspace_root, target)

    def relative(self, path: Path) -> str:
        return relative_to_root(self.workspace_root, path)

    def record_touched_file(self, path: str) -> None:
        if path not in self.touched_files:
            self.touched_files.append(path)


@dataclass(slots=True)
class ToolOutput:
    """Value returned by a tool handler."""

    output: str
    data: Optional[Dict[str, Any]] = None


@dataclass(slots=True)
class ToolExecutionResult:
    ok: bool
    output: str = ""
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": self.ok, "output": self.output}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        return payload


ToolHandler = Callable[[Mapping[str, Any], ToolContext], ToolOutput]


@dataclass(slots=True)
class ToolDefinition:
    """A named capability with a JSON-schema-like input description.

    Only the ``required`` list of ``input_schema`` is enforced; ``properties``
    is passed through to the model as documentation.
    """

    name: str
    description: str
    handler: ToolHandler
    input_schema: Dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    @property
    def required(self) -> List[str]:
        required = self.input_schema.get("required") or []
        return [str(key) for key in required]

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.input_schema}


def _validate_arguments(arguments: Any, required: List[str]) -> Optional[str]:
    if not required:
        return None
    if not isinstance(arguments, Mapping):
        return f"Invalid arguments: expected object with required keys {', '.join(required)}"
    missing = [key for key in required if key not in arguments]
    if missing:
        return f"Missing required arguments: {', '.join(missing)}"
    return None


class ToolRegistry:
    """Registry of tool definitions keyed by name."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register(tool)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def describe(self) -> List[Dict[str, Any]]:
        """Return name/description/schema triples in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    def execute(self, name: str, arguments: Any, context: ToolContext) -> ToolExecutionResult:
        tool = self._tools.get(name)
        if tool is None:
            return ToolExecutionResult(ok=False, error=f"Unknown tool: {name}")

        error = _validate_arguments(arguments, tool.required)
        if error is not None:
            return ToolExecutionResult(ok=False, error=error)

        try:
            result = tool.handler(arguments if arguments is not None else {}, context)
        except Exception as exc:
            LOGGER.debug("Tool %s failed", name, exc_info=True)
            return ToolExecutionResult(ok=False, error=str(exc) or type(exc).__name__)
        return ToolExecutionResult(ok=True, output=result.output, data=result.data)


def create_default_registry() -> ToolRegistry:
    """Return a registry holding every built-in tool."""
    from .diff import create_diff_tool
    from .files import create_file_tools
    from .search import create_search_tool
    from .shell import create_shell_tool

    return ToolRegistry([*create_file_tools(), create_search_tool(), create_diff_tool(), create_shell_tool()])
