"""Subprocess execution shared by the search, diff and shell tools."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = ["ProcessResult", "ProcessTimeoutError", "run_process"]


class ProcessTimeoutError(RuntimeError):
    """Raised when a command exceeds its deadline."""


@dataclass(slots=True)
class ProcessResult:
    args: list[str]
    returncode: int
    stdout: str
    stderr: str


def run_process(command: Sequence[str], cwd: Path, *, timeout: Optional[float] = None) -> ProcessResult:
    """Run ``command`` without a shell and decode its output as UTF-8.

    A missing executable propagates as :class:`FileNotFoundError`.
    """
    args = [str(part) for part in command]
    try:
        process = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=False,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ProcessTimeoutError(f"Command timed out after {timeout}s: {args[0]}") from exc
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    return ProcessResult(args=args, returncode=process.returncode, stdout=stdout, stderr=stderr)
