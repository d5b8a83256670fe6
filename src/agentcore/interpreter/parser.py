"""Validate decoded patch JSON into :class:`PatchPayload` instances."""

from __future__ import annotations

import json
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..structured import CreateAction, DeleteAction, PatchAction, PatchFormat, PatchPayload, ReplaceAction
from .normalizer import extract_json_substring, strip_code_fence

__all__ = ["MalformedPatchError", "parse_patch_output"]


class MalformedPatchError(ValueError):
    """Raised when model output cannot be turned into a structured patch."""


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


def _require_text(value: str, field_name: str) -> str:
    if not value.strip():
        raise ValueError(f"Patch field '{field_name}' must be a non-empty string")
    return value


class _PatchEntry(_PayloadModel):
    action: Literal["replace", "create", "delete"]
    file: str
    search_block: Optional[str] = None
    replace_block: Optional[str] = None
    content: Optional[str] = None

    @field_validator("file")
    @classmethod
    def _file_present(cls, value: str) -> str:
        return _require_text(value, "file")

    @model_validator(mode="after")
    def _fields_for_action(self) -> "_PatchEntry":
        if self.action == "replace":
            if self.search_block is None:
                raise ValueError("Patch field 'search_block' is required for replace")
            _require_text(self.search_block, "search_block")
            if self.replace_block is None:
                raise ValueError("Patch field 'replace_block' is required for replace")
        elif self.action == "create" and self.content is None:
            raise ValueError("Patch field 'content' is required for create")
        return self

    def to_action(self) -> PatchAction:
        if self.action == "replace":
            return ReplaceAction(
                file=self.file,
                search_block=self.search_block or "",
                replace_block=self.replace_block or "",
            )
        if self.action == "create":
            return CreateAction(file=self.file, content=self.content or "")
        return DeleteAction(file=self.file)


class _SearchReplacePayload(_PayloadModel):
    patches: List[_PatchEntry] = Field(min_length=1)


class _FileWrite(_PayloadModel):
    path: str
    content: str

    @field_validator("path")
    @classmethod
    def _path_present(cls, value: str) -> str:
        return _require_text(value, "path")


class _FileWritesPayload(_PayloadModel):
    files: List[_FileWrite] = Field(min_length=1)
    delete: List[str] = Field(default_factory=list)

    @field_validator("delete")
    @classmethod
    def _delete_present(cls, value: List[str]) -> List[str]:
        for entry in value:
            _require_text(entry, "delete")
        return value


def _describe(error: ValidationError) -> str:
    parts: list[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = str(item.get("msg", "invalid value"))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid patch payload"


def _parse_search_replace(payload: Any) -> PatchPayload:
    if isinstance(payload, list):
        payload = {"patches": payload}
    if not isinstance(payload, dict):
        raise MalformedPatchError("Patch payload must be an object")
    if not isinstance(payload.get("patches"), list) or not payload["patches"]:
        raise MalformedPatchError("Patch payload must include patches array")
    try:
        model = _SearchReplacePayload.model_validate(payload)
    except ValidationError as error:
        raise MalformedPatchError(f"Invalid patch payload: {_describe(error)}") from error
    return PatchPayload(patches=[entry.to_action() for entry in model.patches])


def _parse_file_writes(payload: Any) -> PatchPayload:
    if not isinstance(payload, dict):
        raise MalformedPatchError("Patch payload must be an object")
    patches = payload.get("patches")
    if isinstance(patches, list) and patches:
        return _parse_search_replace(payload)
    if not isinstance(payload.get("files"), list) or not payload["files"]:
        raise MalformedPatchError("Patch payload must include files array")
    try:
        model = _FileWritesPayload.model_validate(payload)
    except ValidationError as error:
        raise MalformedPatchError(f"Invalid patch payload: {_describe(error)}") from error
    actions: list[PatchAction] = [CreateAction(file=entry.path, content=entry.content) for entry in model.files]
    actions.extend(DeleteAction(file=path) for path in model.delete)
    return PatchPayload(patches=actions)


def parse_patch_output(content: str, patch_format: PatchFormat = "search_replace") -> PatchPayload:
    """Decode ``content`` and validate it against ``patch_format``."""
    if not content or not content.strip():
        raise MalformedPatchError("Patch output is empty")
    text = content.strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        candidate = strip_code_fence(text) or extract_json_substring(text)
        if candidate is None:
            raise MalformedPatchError("Patch output is not valid JSON") from None
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as error:
            raise MalformedPatchError("Patch output is not valid JSON") from error
    if patch_format == "file_writes":
        return _parse_file_writes(payload)
    if patch_format != "search_replace":
        raise MalformedPatchError(f"Unsupported patch format: {patch_format}")
    return _parse_search_replace(payload)
