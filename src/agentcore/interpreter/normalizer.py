"""Recover a JSON document from noisy model output.

Normalisation is an ordered chain of small strategies. Each strategy receives
the current text and either returns a transformed candidate or ``None`` to
decline. A candidate that decodes as JSON ends the chain; otherwise it becomes
the input to the next strategy, so fence stripping and prefix stripping
compose naturally.
"""

from __future__ import annotations

import json
import re
from typing import Callable, Optional, Sequence

__all__ = [
    "NORMALIZATION_STRATEGIES",
    "extract_json_substring",
    "normalize_patch_output",
    "strip_code_fence",
    "strip_json_prefix",
]

Strategy = Callable[[str], Optional[str]]

_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\r?\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_PREFIX_PATTERN = re.compile(r"^\s*json\s*:", re.IGNORECASE)
_CLOSERS = {"{": "}", "[": "]"}


def _decodes(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return False
    return True


def strip_code_fence(text: str) -> Optional[str]:
    """Return the body of the first Markdown code fence, if any."""
    match = _FENCE_PATTERN.search(text)
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


def strip_json_prefix(text: str) -> Optional[str]:
    """Drop a leading ``JSON:`` label."""
    if not _PREFIX_PATTERN.match(text):
        return None
    stripped = _PREFIX_PATTERN.sub("", text, count=1).strip()
    return stripped or None


def _balanced_end(text: str, start: int) -> int | None:
    """Return the index closing the bracket opened at ``start``."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]":
            if not stack or char != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return index
    return None


def extract_json_substring(text: str) -> Optional[str]:
    """Return the first balanced JSON object or array embedded in ``text``."""
    for start, char in enumerate(text):
        if char not in _CLOSERS:
            continue
        end = _balanced_end(text, start)
        if end is None:
            continue
        candidate = text[start : end + 1]
        if _decodes(candidate):
            return candidate
    return None


NORMALIZATION_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("code_fence", strip_code_fence),
    ("json_prefix", strip_json_prefix),
    ("embedded_json", extract_json_substring),
)


def normalize_patch_output(
    raw: str | None,
    strategies: Sequence[tuple[str, Strategy]] = NORMALIZATION_STRATEGIES,
) -> Optional[str]:
    """Return a JSON string recovered from ``raw`` or ``None``."""
    if not raw:
        return None
    current = raw.strip()
    if not current:
        return None
    if _decodes(current):
        return current
    for _, strategy in strategies:
        candidate = strategy(current)
        if candidate is None:
            continue
        candidate = candidate.strip()
        if _decodes(candidate):
            return candidate
        current = candidate
    return None
