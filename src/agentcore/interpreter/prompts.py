"""System prompts used by the patch interpreter."""

from __future__ import annotations

import textwrap

from ..structured import PatchFormat

__all__ = ["build_interpreter_prompt", "build_interpreter_retry_prompt"]

_SEARCH_REPLACE_SCHEMA = textwrap.dedent(
    """
    PATCH SCHEMA:
    {
      "patches": [
        {
          "action": "replace",
          "file": "path/to/file.py",
          "search_block": "...",
          "replace_block": "..."
        },
        {"action": "create", "file": "path/to/new.py", "content": "..."},
        {"action": "delete", "file": "path/to/old.py"}
      ]
    }
    """
).strip()

_FILE_WRITES_SCHEMA = textwrap.dedent(
    """
    PATCH SCHEMA:
    {
      "files": [
        {"path": "path/to/file.py", "content": "full file contents..."}
      ],
      "delete": ["path/to/old.py"]
    }
    """
).strip()

_INTERPRETER_BASE = textwrap.dedent(
    """
    ROLE: Patch Interpreter
    TASK: Convert the builder output into a JSON patch payload.
    CONSTRAINTS:
    - Output JSON only (no prose, no markdown, no code fences).
    - Do not invent files outside the builder output.
    - Do not include explanations.
    """
).strip()

_RETRY_BASE = textwrap.dedent(
    """
    ROLE: Patch Interpreter
    TASK: Respond ONLY with valid JSON matching the patch schema.
    CONSTRAINTS:
    - Output JSON only (no prose, no markdown, no code fences).
    - The response must start with '{' or '['.
    - Your previous answer could not be parsed; do not repeat it.
    """
).strip()


def _schema_for(patch_format: PatchFormat) -> str:
    return _FILE_WRITES_SCHEMA if patch_format == "file_writes" else _SEARCH_REPLACE_SCHEMA


def build_interpreter_prompt(patch_format: PatchFormat = "search_replace") -> str:
    return f"{_INTERPRETER_BASE}\n{_schema_for(patch_format)}"


def build_interpreter_retry_prompt(patch_format: PatchFormat = "search_replace") -> str:
    return f"{_RETRY_BASE}\n{_schema_for(patch_format)}"
