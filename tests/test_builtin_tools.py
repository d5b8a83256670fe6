from __future__ import annotations

import json
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from agentcore.tools import ToolContext, create_default_registry


@pytest.fixture()
def registry():
    return create_default_registry()


def test_read_and_write_stay_inside_workspace(workspace, registry) -> None:
    context = ToolContext(workspace_root=workspace.root)

    written = registry.execute("write_file", {"path": "notes/todo.md", "content": "- ship\n"}, context)
    read = registry.execute("read_file", {"path": "notes/todo.md"}, context)

    assert written.ok and written.output == "Wrote notes/todo.md"
    assert context.touched_files == ["notes/todo.md"]
    assert read.output == "- ship\n"


def test_escaping_paths_are_rejected(workspace, registry, tmp_path: Path) -> None:
    outside = tmp_path / "outside.txt"
    outside.write_text("secret", encoding="utf-8")
    context = ToolContext(workspace_root=workspace.root)

    for name, arguments in [
        ("read_file", {"path": "../outside.txt"}),
        ("write_file", {"path": "../outside.txt", "content": "pwned"}),
        ("stat_path", {"path": str(outside)}),
        ("list_files", {"path": ".."}),
    ]:
        result = registry.execute(name, arguments, context)
        assert not result.ok, name
        assert "outside the workspace root" in (result.error or "")

    assert outside.read_text(encoding="utf-8") == "secret"


def test_outside_access_when_explicitly_allowed(workspace, registry, tmp_path: Path) -> None:
    (tmp_path / "shared.txt").write_text("shared", encoding="utf-8")
    context = ToolContext(workspace_root=workspace.root, allow_outside_workspace=True)

    result = registry.execute("read_file", {"path": "../shared.txt"}, context)

    assert result.ok and result.output == "shared"


def test_list_files_respects_depth(workspace, registry) -> None:
    context = ToolContext(workspace_root=workspace.root)

    shallow = registry.execute("list_files", {"maxDepth": 0}, context)
    deep = registry.execute("list_files", {}, context)

    assert shallow.data["entries"] == ["README.md", "src"]
    assert "src/app/calculator.py" in deep.data["entries"]


def test_stat_path_reports_file_info(workspace, registry) -> None:
    result = registry.execute("stat_path", {"path": "README.md"}, ToolContext(workspace_root=workspace.root))

    info = json.loads(result.output)
    assert info["path"] == "README.md"
    assert info["isFile"] is True
    assert info["isDirectory"] is False
    assert info["size"] == len("# Tiny app\n")


def test_shell_is_disabled_by_default(workspace, registry) -> None:
    result = registry.execute("run_shell", {"command": "ls"}, ToolContext(workspace_root=workspace.root))
    assert result.error == "Shell tool is disabled"


def test_shell_requires_allowlisted_command(workspace, registry) -> None:
    empty = ToolContext(workspace_root=workspace.root, allow_shell=True)
    limited = ToolContext(workspace_root=workspace.root, allow_shell=True, shell_allowlist=("git",))

    assert registry.execute("run_shell", {"command": "ls"}, empty).error == "Command not allowed: ls"
    assert registry.execute("run_shell", {"command": "rm"}, limited).error == "Command not allowed: rm"


def test_shell_runs_allowlisted_command(workspace, registry) -> None:
    context = ToolContext(workspace_root=workspace.root, allow_shell=True, shell_allowlist=(sys.executable,))

    ok = registry.execute("run_shell", {"command": sys.executable, "args": ["-c", "print('hi')"]}, context)
    failed = registry.execute(
        "run_shell",
        {"command": sys.executable, "args": ["-c", "import sys; sys.exit(3)"]},
        context,
    )

    assert ok.ok
    assert ok.output.strip() == "hi"
    assert ok.data["exitCode"] == 0
    assert not failed.ok
    assert failed.error == "Command failed with exit code 3"


def test_shell_timeout_surfaces_as_failure(workspace, registry) -> None:
    context = ToolContext(workspace_root=workspace.root, allow_shell=True, shell_allowlist=(sys.executable,))

    result = registry.execute(
        "run_shell",
        {"command": sys.executable, "args": ["-c", "import time; time.sleep(5)"], "timeout": 0.2},
        context,
    )

    assert not result.ok
    assert "timed out" in (result.error or "")


@pytest.mark.skipif(shutil.which("grep") is None and shutil.which("rg") is None, reason="no search tool")
def test_search_repo_finds_matches(workspace, registry) -> None:
    result = registry.execute("search_repo", {"query": "def sub"}, ToolContext(workspace_root=workspace.root))

    assert result.ok
    assert result.data["count"] == 1
    assert "calculator.py" in result.output


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_diff_summary_reports_untracked_files(workspace, registry) -> None:
    subprocess.run(["git", "init"], cwd=workspace.root, check=True, capture_output=True)

    result = registry.execute("diff_summary", {"maxLines": 1}, ToolContext(workspace_root=workspace.root))

    assert result.ok
    assert result.data["count"] == 1
    assert result.data["total"] == 2


def test_diff_summary_outside_git_fails(tmp_path: Path, registry) -> None:
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    plain = tmp_path / "plain"
    plain.mkdir()

    result = registry.execute("diff_summary", {}, ToolContext(workspace_root=plain))

    assert not result.ok
