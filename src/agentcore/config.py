"""Load ``agentcore.yaml`` plus ``AGENTCORE_*`` environment overrides.

Example configuration::

    context:
      storage_dir: .agentcore/context
    interpreter:
      patch_format: search_replace
      max_retries: 1
    tools:
      allow_shell: false
      shell_allowlist: [pytest, ruff]
    deep_investigation:
      evidence_gate: {minSearchHits: 2, minOpenOrSnippet: 1, maxWarnings: 3}
      tool_quota: {search: 1}
      investigation_budget: {minCycles: 1, minSeconds: 0}
    provider:
      model: gpt-4o-mini
      base_url: https://api.openai.com/v1

A missing file yields the defaults. Values from the environment win over the
file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .memory.context_store import DEFAULT_STORAGE_DIR
from .policy.evidence_gate import EvidenceGateConfig, InvestigationBudget, ToolQuotaConfig
from .structured import PATCH_FORMATS, PatchFormat
from .workspace import PathEscapeError, resolve_within

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ContextSettings",
    "CoreConfig",
    "DeepInvestigationSettings",
    "InterpreterSettings",
    "ProviderSettings",
    "ToolSettings",
    "load_config",
]

LOGGER = logging.getLogger(__name__)
CONFIG_FILENAME = "agentcore.yaml"
ENV_PREFIX = "AGENTCORE_"


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed or fails validation."""


@dataclass(slots=True)
class ContextSettings:
    storage_dir: Path = DEFAULT_STORAGE_DIR


@dataclass(slots=True)
class InterpreterSettings:
    patch_format: PatchFormat = "search_replace"
    max_retries: int = 1
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None


@dataclass(slots=True)
class ToolSettings:
    allow_shell: bool = False
    shell_allowlist: tuple[str, ...] = ()
    shell_timeout: Optional[float] = None


@dataclass(slots=True)
class DeepInvestigationSettings:
    evidence_gate: EvidenceGateConfig = field(default_factory=EvidenceGateConfig)
    tool_quota: ToolQuotaConfig = field(default_factory=ToolQuotaConfig)
    investigation_budget: InvestigationBudget = field(default_factory=InvestigationBudget)


@dataclass(slots=True)
class ProviderSettings:
    model: Optional[str] = None
    base_url: Optional[str] = None
    timeout: Optional[float] = None


@dataclass(slots=True)
class CoreConfig:
    """Resolved configuration for one workspace."""

    workspace_root: Path
    config_path: Optional[Path] = None
    context: ContextSettings = field(default_factory=ContextSettings)
    interpreter: InterpreterSettings = field(default_factory=InterpreterSettings)
    tools: ToolSettings = field(default_factory=ToolSettings)
    deep_investigation: DeepInvestigationSettings = field(default_factory=DeepInvestigationSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)

    @property
    def storage_path(self) -> Path:
        return resolve_within(self.workspace_root, self.context.storage_dir)


# ----------------------------------------------------------------------- env
def _parse_bool(value: str, key: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_int(value: str, key: str) -> int:
    try:
        return int(value.strip())
    except ValueError as error:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from error


def _parse_float(value: str, key: str) -> float:
    try:
        return float(value.strip())
    except ValueError as error:
        raise ConfigError(f"{key} must be a number, got {value!r}") from error


def _parse_list(value: str, key: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_str(value: str, key: str) -> str:
    return value.strip()


_ENV_OVERRIDES: tuple[tuple[str, tuple[str, ...], Callable[[str, str], Any]], ...] = (
    ("CONTEXT_DIR", ("context", "storage_dir"), _parse_str),
    ("PATCH_FORMAT", ("interpreter", "patch_format"), _parse_str),
    ("INTERPRETER_MAX_RETRIES", ("interpreter", "max_retries"), _parse_int),
    ("INTERPRETER_TEMPERATURE", ("interpreter", "temperature"), _parse_float),
    ("INTERPRETER_MAX_TOKENS", ("interpreter", "max_tokens"), _parse_int),
    ("ALLOW_SHELL", ("tools", "allow_shell"), _parse_bool),
    ("SHELL_ALLOWLIST", ("tools", "shell_allowlist"), _parse_list),
    ("SHELL_TIMEOUT", ("tools", "shell_timeout"), _parse_float),
    ("EVIDENCE_MIN_SEARCH_HITS", ("deep_investigation", "evidence_gate", "minSearchHits"), _parse_float),
    ("EVIDENCE_MIN_OPEN_OR_SNIPPET", ("deep_investigation", "evidence_gate", "minOpenOrSnippet"), _parse_float),
    ("EVIDENCE_MIN_SYMBOLS_OR_AST", ("deep_investigation", "evidence_gate", "minSymbolsOrAst"), _parse_float),
    ("EVIDENCE_MIN_IMPACT", ("deep_investigation", "evidence_gate", "minImpact"), _parse_float),
    ("EVIDENCE_MAX_WARNINGS", ("deep_investigation", "evidence_gate", "maxWarnings"), _parse_float),
    ("BUDGET_MIN_CYCLES", ("deep_investigation", "investigation_budget", "minCycles"), _parse_int),
    ("BUDGET_MIN_SECONDS", ("deep_investigation", "investigation_budget", "minSeconds"), _parse_float),
    ("BUDGET_MAX_CYCLES", ("deep_investigation", "investigation_budget", "maxCycles"), _parse_int),
    ("MODEL", ("provider", "model"), _parse_str),
    ("BASE_URL", ("provider", "base_url"), _parse_str),
)


def _set_nested(target: Dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = target
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    leaf = path[-1]
    # Drop any snake_case spelling so the override is not shadowed by the file value.
    snake = "".join(f"_{char.lower()}" if char.isupper() else char for char in leaf)
    node.pop(snake, None)
    node[leaf] = value


def _apply_env_overrides(raw: Dict[str, Any], env: Mapping[str, str]) -> None:
    for suffix, path, parser in _ENV_OVERRIDES:
        key = f"{ENV_PREFIX}{suffix}"
        value = env.get(key)
        if value is None:
            continue
        _set_nested(raw, path, parser(value, key))
        LOGGER.debug("Configuration override from %s", key)


# --------------------------------------------------------------------- build
def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse {path}: {error}") from error
    if not isinstance(loaded, Mapping):
        raise ConfigError(f"Configuration must be a mapping at the top level: {path}")
    return _to_dict(loaded)


def _to_dict(value: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key): _to_dict(item) if isinstance(item, Mapping) else item for key, item in value.items()}


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Configuration section '{name}' must be a mapping")
    return dict(value)


def _optional_number(section: Mapping[str, Any], key: str, label: str, kind: type) -> Any:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{label}.{key} must be a number")
    return kind(value)


def _build_interpreter(section: Mapping[str, Any]) -> InterpreterSettings:
    patch_format = section.get("patch_format", "search_replace")
    if patch_format not in PATCH_FORMATS:
        raise ConfigError(f"interpreter.patch_format must be one of {', '.join(PATCH_FORMATS)}")
    max_retries = section.get("max_retries", 1)
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
        raise ConfigError("interpreter.max_retries must be a non-negative integer")
    return InterpreterSettings(
        patch_format=patch_format,
        max_retries=max_retries,
        temperature=_optional_number(section, "temperature", "interpreter", float),
        max_tokens=_optional_number(section, "max_tokens", "interpreter", int),
        timeout=_optional_number(section, "timeout", "interpreter", float),
    )


def _build_tools(section: Mapping[str, Any]) -> ToolSettings:
    allow_shell = section.get("allow_shell", False)
    if not isinstance(allow_shell, bool):
        raise ConfigError("tools.allow_shell must be a boolean")
    allowlist = section.get("shell_allowlist") or []
    if isinstance(allowlist, str) or not all(isinstance(item, str) for item in allowlist):
        raise ConfigError("tools.shell_allowlist must be a list of command names")
    return ToolSettings(
        allow_shell=allow_shell,
        shell_allowlist=tuple(item.strip() for item in allowlist if item.strip()),
        shell_timeout=_optional_number(section, "shell_timeout", "tools", float),
    )


def _check_non_negative(values: Mapping[str, Any], label: str) -> None:
    invalid = sorted(key for key, value in values.items() if isinstance(value, (int, float)) and value < 0)
    if invalid:
        raise ConfigError(f"Invalid config values: {', '.join(f'{label}.{key}' for key in invalid)}")


def _build_deep_investigation(section: Mapping[str, Any]) -> DeepInvestigationSettings:
    try:
        gate = EvidenceGateConfig.model_validate(_section(section, "evidence_gate"))
        quota = ToolQuotaConfig.model_validate(_section(section, "tool_quota"))
        budget = InvestigationBudget.model_validate(_section(section, "investigation_budget"))
    except ValidationError as error:
        raise ConfigError(f"Invalid deep_investigation configuration: {error}") from error
    _check_non_negative(gate.model_dump(by_alias=True), "deep_investigation.evidence_gate")
    _check_non_negative(quota.model_dump(by_alias=True), "deep_investigation.tool_quota")
    _check_non_negative(budget.model_dump(by_alias=True), "deep_investigation.investigation_budget")
    if budget.max_cycles is not None and budget.max_cycles < budget.min_cycles:
        raise ConfigError("Invalid config values: deep_investigation.investigation_budget.maxCycles")
    return DeepInvestigationSettings(evidence_gate=gate, tool_quota=quota, investigation_budget=budget)


def _build_provider(section: Mapping[str, Any]) -> ProviderSettings:
    model = section.get("model")
    base_url = section.get("base_url")
    return ProviderSettings(
        model=str(model) if model else None,
        base_url=str(base_url) if base_url else None,
        timeout=_optional_number(section, "timeout", "provider", float),
    )


def load_config(
    workspace_root: Path | str,
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> CoreConfig:
    """Return the configuration for ``workspace_root``."""
    root = Path(os.path.abspath(workspace_root))
    if config_path is None:
        candidate = root / CONFIG_FILENAME
    else:
        candidate = Path(config_path)
        if not candidate.is_absolute():
            candidate = root / candidate
    raw = _read_yaml(candidate)
    _apply_env_overrides(raw, os.environ if env is None else env)

    context_section = _section(raw, "context")
    storage_value = context_section.get("storage_dir") or DEFAULT_STORAGE_DIR
    storage_dir = Path(str(storage_value))
    try:
        resolve_within(root, storage_dir)
    except PathEscapeError as error:
        raise ConfigError(f"context.storage_dir must stay inside the workspace: {storage_dir}") from error

    return CoreConfig(
        workspace_root=root,
        config_path=candidate if candidate.exists() else None,
        context=ContextSettings(storage_dir=storage_dir),
        interpreter=_build_interpreter(_section(raw, "interpreter")),
        tools=_build_tools(_section(raw, "tools")),
        deep_investigation=_build_deep_investigation(_section(raw, "deep_investigation")),
        provider=_build_provider(_section(raw, "provider")),
    )
