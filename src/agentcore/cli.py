"""Operator CLI for inspecting lanes, evaluating gates and applying patches."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import ConfigError, CoreConfig, load_config
from .interpreter import MalformedPatchError, normalize_patch_output, parse_patch_output
from .memory import ContextStore, ContextStoreError
from .policy import evaluate_evidence_gate
from .structured import PATCH_FORMATS
from .tools import PatchApplier, PatchError, create_default_registry
from .workspace import PathEscapeError

APP_HELP = "Inspect agent lanes, evaluate evidence gates and apply structured patches."

app = typer.Typer(help=APP_HELP)
lane_app = typer.Typer(help="Inspect context store lanes.")
app.add_typer(lane_app, name="lane")

LOGGER = logging.getLogger(__name__)

WORKSPACE_OPTION = typer.Option(".", "--workspace", "-w", help="Workspace root directory.")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to agentcore.yaml (defaults to the workspace).")


def _load(workspace: str, config: Optional[str]) -> CoreConfig:
    try:
        return load_config(Path(workspace), config)
    except ConfigError as error:
        typer.echo(f"Failed to load configuration: {error}")
        raise typer.Exit(code=1) from error


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        typer.echo(f"Failed to parse {path}: {error}")
        raise typer.Exit(code=1) from error


@app.command()
def tools() -> None:
    """List the built-in tools advertised to models."""
    for entry in create_default_registry().describe():
        required = entry["input_schema"].get("required") or []
        suffix = f" (requires: {', '.join(required)})" if required else ""
        typer.echo(f"- {entry['name']}: {entry['description']}{suffix}")


@lane_app.command("show")
def lane_show(
    lane_id: str = typer.Argument(..., help="Lane identifier, for example job:task:role."),
    workspace: str = WORKSPACE_OPTION,
    config: Optional[str] = CONFIG_OPTION,
) -> None:
    """Print a lane snapshot as JSON."""
    settings = _load(workspace, config)
    store = ContextStore(settings.workspace_root, settings.context.storage_dir)
    try:
        snapshot = store.load_lane(lane_id)
    except (ContextStoreError, ValueError) as error:
        typer.echo(f"Failed to load lane: {error}")
        raise typer.Exit(code=1) from error
    typer.echo(json.dumps(snapshot.model_dump(mode="json"), indent=2, ensure_ascii=False))


@lane_app.command("list")
def lane_list(
    workspace: str = WORKSPACE_OPTION,
    config: Optional[str] = CONFIG_OPTION,
) -> None:
    """List persisted lanes."""
    settings = _load(workspace, config)
    lanes = ContextStore(settings.workspace_root, settings.context.storage_dir).list_lanes()
    if not lanes:
        typer.echo("No lanes stored.")
        return
    for lane in lanes:
        typer.echo(f"- {lane}")


@app.command()
def gate(
    evidence_json: Path = typer.Argument(..., help="JSON file with evidence, tool_usage and warnings."),
    workspace: str = WORKSPACE_OPTION,
    config: Optional[str] = CONFIG_OPTION,
) -> None:
    """Evaluate the evidence gate; exits with status 1 when it fails."""
    settings = _load(workspace, config)
    payload = _read_json(evidence_json)
    if not isinstance(payload, dict):
        typer.echo("Evidence file must contain a JSON object.")
        raise typer.Exit(code=1)

    evidence: Dict[str, Any] = payload.get("evidence") if isinstance(payload.get("evidence"), dict) else payload
    tool_usage = payload.get("tool_usage") or payload.get("toolUsage")
    warnings = payload.get("warnings") if "evidence" in payload else None
    assessment = evaluate_evidence_gate(
        settings.deep_investigation.evidence_gate,
        evidence,
        tool_usage if isinstance(tool_usage, dict) else None,
        warnings if isinstance(warnings, list) else None,
    )
    typer.echo(json.dumps(assessment.to_dict(), indent=2))
    if not assessment.passed:
        raise typer.Exit(code=1)


@app.command()
def apply(
    patch_json: Path = typer.Argument(..., help="File holding the patch payload."),
    patch_format: Optional[str] = typer.Option(None, "--format", "-f", help="search_replace or file_writes."),
    keep_partial: bool = typer.Option(False, "--keep-partial", help="Leave partial changes after a failure."),
    workspace: str = WORKSPACE_OPTION,
    config: Optional[str] = CONFIG_OPTION,
) -> None:
    """Parse a structured patch and apply it to the workspace."""
    settings = _load(workspace, config)
    target_format = patch_format or settings.interpreter.patch_format
    if target_format not in PATCH_FORMATS:
        raise typer.BadParameter(f"Unsupported patch format: {target_format}")
    if not patch_json.exists():
        raise typer.BadParameter(f"File not found: {patch_json}")

    raw = patch_json.read_text(encoding="utf-8")
    try:
        normalized = normalize_patch_output(raw)
        if normalized is None:
            raise MalformedPatchError("Patch output is not valid JSON")
        payload = parse_patch_output(normalized, target_format)
    except MalformedPatchError as error:
        typer.echo(f"Malformed patch: {error}")
        raise typer.Exit(code=1) from error

    applier = PatchApplier(settings.workspace_root)
    try:
        plan = applier.create_rollback_plan(payload.patches)
    except (PathEscapeError, OSError) as error:
        typer.echo(f"Rejected patch: {error}")
        raise typer.Exit(code=1) from error

    try:
        result = applier.apply(payload.patches)
    except (PatchError, PathEscapeError, OSError) as error:
        typer.echo(f"Patch failed: {error}")
        if keep_partial:
            typer.echo("Partial changes kept.")
        else:
            applier.rollback(plan)
            typer.echo(f"Rolled back {len(plan.entries)} file(s).")
        raise typer.Exit(code=1) from error

    typer.echo(f"Applied {len(payload.patches)} action(s):")
    for file in result.touched:
        typer.echo(f"- {file}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
