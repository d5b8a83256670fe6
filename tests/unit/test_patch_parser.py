from __future__ import annotations

import json

import pytest

from agentcore.interpreter.parser import MalformedPatchError, parse_patch_output
from agentcore.structured import CreateAction, DeleteAction, ReplaceAction


def _dump(payload: object) -> str:
    return json.dumps(payload)


def test_search_replace_payload_maps_to_actions() -> None:
    payload = parse_patch_output(
        _dump(
            {
                "patches": [
                    {"action": "replace", "file": "a.py", "search_block": "x = 1", "replace_block": "x = 2"},
                    {"action": "create", "file": "b.py", "content": "print('b')\n"},
                    {"action": "delete", "file": "c.py"},
                ]
            }
        )
    )

    assert payload.patches == [
        ReplaceAction(file="a.py", search_block="x = 1", replace_block="x = 2"),
        CreateAction(file="b.py", content="print('b')\n"),
        DeleteAction(file="c.py"),
    ]
    assert payload.files == ["a.py", "b.py", "c.py"]


def test_bare_array_is_accepted_for_search_replace() -> None:
    payload = parse_patch_output(_dump([{"action": "delete", "file": "old.txt"}]))
    assert payload.patches == [DeleteAction(file="old.txt")]


def test_empty_replace_block_deletes_text() -> None:
    payload = parse_patch_output(
        _dump({"patches": [{"action": "replace", "file": "a.py", "search_block": "debug()\n", "replace_block": ""}]})
    )
    assert payload.patches[0].replace_block == ""


@pytest.mark.parametrize(
    "entry",
    [
        {"action": "replace", "file": "a.py", "search_block": "  ", "replace_block": "x"},
        {"action": "replace", "file": "a.py", "search_block": "x"},
        {"action": "create", "file": "a.py"},
        {"action": "delete", "file": ""},
        {"action": "rename", "file": "a.py"},
    ],
)
def test_invalid_entries_are_rejected(entry: dict) -> None:
    with pytest.raises(MalformedPatchError):
        parse_patch_output(_dump({"patches": [entry]}))


def test_missing_patches_array_is_rejected() -> None:
    with pytest.raises(MalformedPatchError, match="patches array"):
        parse_patch_output(_dump({"patches": []}))


def test_file_writes_payload_maps_to_create_and_delete() -> None:
    payload = parse_patch_output(
        _dump({"files": [{"path": "a.py", "content": ""}], "delete": ["b.py"]}),
        "file_writes",
    )
    assert payload.patches == [CreateAction(file="a.py", content=""), DeleteAction(file="b.py")]


def test_file_writes_falls_back_to_patches_when_present() -> None:
    payload = parse_patch_output(
        _dump({"patches": [{"action": "delete", "file": "a.py"}]}),
        "file_writes",
    )
    assert payload.patches == [DeleteAction(file="a.py")]


def test_file_writes_without_files_is_rejected() -> None:
    with pytest.raises(MalformedPatchError, match="files array"):
        parse_patch_output(_dump({"files": []}), "file_writes")


def test_non_json_is_rejected() -> None:
    with pytest.raises(MalformedPatchError):
        parse_patch_output("not json")
