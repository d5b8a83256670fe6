from __future__ import annotations

import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class TinyWorkspace:
    """Fixture payload representing a small workspace on disk."""

    root: Path

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


@pytest.fixture()
def workspace(tmp_path: Path) -> TinyWorkspace:
    """Create a workspace with a couple of source files."""

    root = tmp_path / "workspace"
    root.mkdir()
    tiny = TinyWorkspace(root=root)
    tiny.write(
        "src/app/calculator.py",
        textwrap.dedent(
            """
            def add(left, right):
                return left + right


            def sub(left, right):
                return left - right
            """
        ).lstrip(),
    )
    tiny.write("README.md", "# Tiny app\n")
    return tiny
