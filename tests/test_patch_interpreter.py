from __future__ import annotations

import json
from typing import Any, Mapping

import pytest

from agentcore.interpreter import MalformedPatchError, PatchInterpreter
from agentcore.models import ProviderRequest, ProviderResponse, ProviderTransportError, StaticProvider
from agentcore.models.provider import Provider
from agentcore.structured import CreateAction, DeleteAction

VALID = json.dumps({"patches": [{"action": "delete", "file": "old.py"}]})


class RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def log(self, event: str, data: Mapping[str, Any]) -> None:
        self.events.append((event, dict(data)))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


class ExplodingLogger:
    def log(self, event: str, data: Mapping[str, Any]) -> None:
        raise RuntimeError("log sink is down")


class FailingProvider(Provider):
    name = "failing"

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        raise ProviderTransportError("connection reset")


def test_valid_json_needs_no_provider_call() -> None:
    provider = StaticProvider(["unused"])
    logger = RecordingLogger()
    interpreter = PatchInterpreter(provider, logger=logger)

    payload = interpreter.interpret(VALID)

    assert payload.patches == [DeleteAction(file="old.py")]
    assert provider.calls == 0
    assert logger.names() == ["interpreter_direct_parse"]


def test_embedded_json_in_prose_needs_no_provider_call() -> None:
    provider = StaticProvider(["unused"])
    interpreter = PatchInterpreter(provider)

    payload = interpreter.interpret(f"Here is my patch: {VALID} Let me know!")

    assert payload.patches == [DeleteAction(file="old.py")]
    assert provider.calls == 0


def test_assisted_parse_repairs_output() -> None:
    provider = StaticProvider([VALID])
    logger = RecordingLogger()
    interpreter = PatchInterpreter(provider, logger=logger, model="repair-model")

    payload = interpreter.interpret("delete old.py please")

    assert payload.patches == [DeleteAction(file="old.py")]
    assert provider.calls == 1
    request = provider.requests[0]
    assert request.model == "repair-model"
    assert request.stream is False
    assert request.response_format == {"type": "json"}
    assert [message.role for message in request.messages] == ["system", "user"]
    assert request.messages[1].content == "delete old.py please"
    assert logger.names() == ["provider_request", "interpreter_request", "interpreter_response"]


def test_retries_are_bounded_and_last_error_raised() -> None:
    provider = StaticProvider(["still not json"])
    logger = RecordingLogger()
    interpreter = PatchInterpreter(provider, max_retries=2, logger=logger)

    with pytest.raises(MalformedPatchError):
        interpreter.interpret("garbage")

    assert provider.calls == 3
    retries = [data["attempt"] for event, data in logger.events if event == "interpreter_retry"]
    assert retries == [1, 2]


def test_zero_retries_means_single_assisted_attempt() -> None:
    provider = StaticProvider(["nope"])
    interpreter = PatchInterpreter(provider, max_retries=0)

    with pytest.raises(MalformedPatchError):
        interpreter.interpret("garbage")

    assert provider.calls == 1


def test_retry_prompt_differs_from_first_prompt() -> None:
    provider = StaticProvider(["nope", VALID])
    interpreter = PatchInterpreter(provider, max_retries=1)

    interpreter.interpret("garbage")

    first, second = provider.requests
    assert first.messages[0].content != second.messages[0].content


def test_logger_failures_do_not_break_interpretation() -> None:
    interpreter = PatchInterpreter(StaticProvider([VALID]), logger=ExplodingLogger())

    payload = interpreter.interpret("garbage")

    assert payload.patches == [DeleteAction(file="old.py")]


def test_file_writes_format_override() -> None:
    provider = StaticProvider(["unused"])
    interpreter = PatchInterpreter(provider, patch_format="search_replace")

    payload = interpreter.interpret(
        json.dumps({"files": [{"path": "new.py", "content": "x = 1\n"}]}),
        patch_format="file_writes",
    )

    assert payload.patches == [CreateAction(file="new.py", content="x = 1\n")]


def test_provider_transport_errors_propagate() -> None:
    interpreter = PatchInterpreter(FailingProvider())

    with pytest.raises(ProviderTransportError):
        interpreter.interpret("garbage")


def test_invalid_configuration_is_rejected() -> None:
    with pytest.raises(ValueError):
        PatchInterpreter(StaticProvider([VALID]), max_retries=-1)
    with pytest.raises(ValueError):
        PatchInterpreter(StaticProvider([VALID]), patch_format="unified_diff")  # type: ignore[arg-type]


def test_unsupported_format_override_fails_before_any_request() -> None:
    provider = StaticProvider([VALID])
    interpreter = PatchInterpreter(provider)

    with pytest.raises(ValueError, match="unified_diff"):
        interpreter.interpret("garbage", patch_format="unified_diff")  # type: ignore[arg-type]
    assert provider.calls == 0
