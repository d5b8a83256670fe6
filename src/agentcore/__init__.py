"""Core runtime pieces for a patch-producing coding agent."""

from .config import ConfigError, CoreConfig, load_config
from .structured import CreateAction, DeleteAction, PatchAction, PatchFormat, PatchPayload, ReplaceAction
from .workspace import PathEscapeError, resolve_within

__all__ = [
    "ConfigError",
    "CoreConfig",
    "CreateAction",
    "DeleteAction",
    "PatchAction",
    "PatchFormat",
    "PatchPayload",
    "PathEscapeError",
    "ReplaceAction",
    "load_config",
    "resolve_within",
]
