"""Typed payloads that describe the file mutations a patch may perform."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

PatchFormat = Literal["search_replace", "file_writes"]
PATCH_FORMATS: tuple[str, ...] = ("search_replace", "file_writes")


@dataclass(frozen=True, slots=True)
class CreateAction:
    """Write ``content`` to ``file``, creating parents and overwriting."""

    file: str
    content: str
    action: Literal["create"] = "create"

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "file": self.file, "content": self.content}


@dataclass(frozen=True, slots=True)
class DeleteAction:
    """Remove ``file`` when present."""

    file: str
    action: Literal["delete"] = "delete"

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "file": self.file}


@dataclass(frozen=True, slots=True)
class ReplaceAction:
    """Swap the single occurrence of ``search_block`` in ``file``."""

    file: str
    search_block: str
    replace_block: str
    action: Literal["replace"] = "replace"

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "file": self.file,
            "search_block": self.search_block,
            "replace_block": self.replace_block,
        }


PatchAction = Union[CreateAction, DeleteAction, ReplaceAction]


@dataclass(slots=True)
class PatchPayload:
    """Ordered list of patch actions produced by the interpreter."""

    patches: list[PatchAction] = field(default_factory=list)

    @property
    def files(self) -> list[str]:
        """Distinct target paths in first-seen order."""
        seen: dict[str, None] = {}
        for action in self.patches:
            seen.setdefault(action.file, None)
        return list(seen)

    def to_dict(self) -> dict[str, Any]:
        return {"patches": [action.to_dict() for action in self.patches]}
