"""Tool integrations exposed by the agent runtime."""

from .patch import (
    AmbiguousMatchError,
    PatchApplier,
    PatchApplyResult,
    PatchEncodingError,
    PatchError,
    PatchValidationError,
    RollbackPlan,
    SearchBlockNotFoundError,
)
from .registry import (
    DuplicateToolError,
    ToolContext,
    ToolDefinition,
    ToolExecutionResult,
    ToolOutput,
    ToolRegistry,
    create_default_registry,
)
from .run_log import RunLogEntry, RunLogger, load_run_log

__all__ = [
    "AmbiguousMatchError",
    "DuplicateToolError",
    "PatchApplier",
    "PatchApplyResult",
    "PatchEncodingError",
    "PatchError",
    "PatchValidationError",
    "RollbackPlan",
    "RunLogEntry",
    "RunLogger",
    "SearchBlockNotFoundError",
    "ToolContext",
    "ToolDefinition",
    "ToolExecutionResult",
    "ToolOutput",
    "ToolRegistry",
    "create_default_registry",
    "load_run_log",
]
