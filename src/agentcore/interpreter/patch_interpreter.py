"""Turn raw builder output into a structured patch, with model-assisted repair."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from ..models.provider import Provider, ProviderMessage, ProviderRequest
from ..structured import PATCH_FORMATS, PatchFormat, PatchPayload
from .normalizer import normalize_patch_output
from .parser import MalformedPatchError, parse_patch_output
from .prompts import build_interpreter_prompt, build_interpreter_retry_prompt

__all__ = [
    "InterpreterLogger",
    "PatchInterpreter",
    "TelemetryInterpreterLogger",
]

LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("agentcore.telemetry")


class InterpreterLogger(Protocol):
    """Structured sink for interpreter events."""

    def log(self, event: str, data: Mapping[str, Any]) -> None: ...


class TelemetryInterpreterLogger:
    """Forward interpreter events to the ``agentcore.telemetry`` logger."""

    def log(self, event: str, data: Mapping[str, Any]) -> None:
        payload = {"event": event, **dict(data)}
        TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), default=str))


class PatchInterpreter:
    """Convert agent output to a :class:`PatchPayload`.

    The attempts form a bounded progression: a direct parse, one
    provider-assisted repair, then up to ``max_retries`` repairs with a
    stricter prompt. The last parse failure is raised once the budget is spent.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        patch_format: PatchFormat = "search_replace",
        max_retries: int = 1,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        response_format: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
        logger: Optional[InterpreterLogger] = None,
    ) -> None:
        if patch_format not in PATCH_FORMATS:
            raise ValueError(f"Unsupported patch format: {patch_format}")
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self._provider = provider
        self._patch_format: PatchFormat = patch_format
        self._max_retries = max_retries
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._response_format = dict(response_format or {"type": "json"})
        self._model = model
        self._logger = logger

    @property
    def patch_format(self) -> PatchFormat:
        return self._patch_format

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def interpret(self, raw: str, patch_format: Optional[PatchFormat] = None) -> PatchPayload:
        target: PatchFormat = patch_format or self._patch_format
        if target not in PATCH_FORMATS:
            raise ValueError(f"Unsupported patch format: {target}")
        try:
            payload = self._parse(raw, target)
        except MalformedPatchError as error:
            LOGGER.debug("Direct patch parse failed: %s", error)
        else:
            self._log("interpreter_direct_parse", {"patchFormat": target, "length": len(raw or "")})
            return payload

        content = self._request_patch(build_interpreter_prompt(target), raw, retry=False, patch_format=target)
        try:
            return self._parse(content, target)
        except MalformedPatchError as error:
            last_error = error

        for attempt in range(1, self._max_retries + 1):
            self._log("interpreter_retry", {"attempt": attempt, "error": str(last_error)})
            content = self._request_patch(
                build_interpreter_retry_prompt(target),
                raw,
                retry=True,
                patch_format=target,
            )
            try:
                return self._parse(content, target)
            except MalformedPatchError as error:
                last_error = error

        raise last_error

    @staticmethod
    def _parse(content: str, patch_format: PatchFormat) -> PatchPayload:
        normalized = normalize_patch_output(content)
        if normalized is None:
            raise MalformedPatchError("Patch output is not valid JSON")
        return parse_patch_output(normalized, patch_format)

    def _request_patch(self, prompt: str, raw: str, *, retry: bool, patch_format: PatchFormat) -> str:
        request = ProviderRequest(
            messages=[
                ProviderMessage(role="system", content=prompt),
                ProviderMessage(role="user", content=raw or ""),
            ],
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            response_format=dict(self._response_format),
            stream=False,
            timeout=self._timeout,
        )
        self._log(
            "provider_request",
            {"provider": getattr(self._provider, "name", type(self._provider).__name__), **request.to_dict()},
        )
        self._log("interpreter_request", {"retry": retry, "patchFormat": patch_format, "model": self._model})
        response = self._provider.generate(request)
        content = response.message.content if response.message else ""
        content = content or ""
        self._log(
            "interpreter_response",
            {"retry": retry, "length": len(content), "patchFormat": patch_format},
        )
        return content

    def _log(self, event: str, data: Mapping[str, Any]) -> None:
        if self._logger is None:
            return
        try:
            self._logger.log(event, data)
        except Exception:
            LOGGER.warning("Interpreter logger failed for event %s", event, exc_info=True)
