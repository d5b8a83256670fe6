"""Provider that speaks the OpenAI-compatible chat completions API."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Optional

from .provider import (
    Provider,
    ProviderMessage,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseFormatError,
    ProviderTransportError,
)

__all__ = ["OpenAICompatibleProvider"]

LOGGER = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any], float], str]


class OpenAICompatibleProvider(Provider):
    """Thin adapter around ``/chat/completions`` style endpoints."""

    name = "openai-compatible"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        transport: Optional[Transport] = None,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key or os.getenv("AGENTCORE_API_KEY") or os.getenv("OPENAI_API_KEY")
        self._base_url = base_url.rstrip("/")
        self._model = model
        timeout_override = os.getenv("AGENTCORE_PROVIDER_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                LOGGER.warning("Ignoring invalid AGENTCORE_PROVIDER_TIMEOUT=%r", timeout_override)
        self._timeout = timeout
        self._transport = transport or self._http_transport

        if transport is None and not self._api_key:
            raise ValueError("An API key is required when using the default transport.")

    @property
    def model(self) -> str:
        return self._model

    def build_payload(self, request: ProviderRequest) -> Dict[str, Any]:
        """Render the chat completions body for ``request``."""
        payload: Dict[str, Any] = {
            "model": request.model or self._model,
            "messages": [message.to_dict() for message in request.messages],
            "stream": False,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.response_format.get("type") in {"json", "json_object"}:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        payload = self.build_payload(request)
        timeout = request.timeout or self._timeout
        try:
            raw_response = self._transport(payload, timeout)
        except ProviderTransportError:
            raise
        except Exception as error:
            raise ProviderTransportError(f"Transport rejected the request: {error}") from error

        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            raise ProviderResponseFormatError("Provider response is not JSON.") from error

        content = self._first_choice_content(data)
        if content is None:
            raise ProviderResponseFormatError("Provider response did not contain message content.")
        usage = data.get("usage") if isinstance(data, dict) else None
        return ProviderResponse(
            message=ProviderMessage(role="assistant", content=content),
            usage=usage if isinstance(usage, dict) else {},
            raw=data,
        )

    def _http_transport(self, payload: Dict[str, Any], timeout: float) -> str:
        """Default HTTP transport."""
        import urllib.error
        import urllib.request

        LOGGER.debug("POST %s/chat/completions model=%s", self._base_url, payload.get("model"))
        request = urllib.request.Request(
            f"{self._base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise ProviderTransportError("Provider response timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise ProviderTransportError(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise ProviderTransportError(f"Failed to reach provider endpoint: {error.reason}") from error

        if status >= 400:
            raise ProviderTransportError(f"Unexpected HTTP status {status}")

        return raw.decode("utf-8")

    @staticmethod
    def _first_choice_content(data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        choices = data.get("choices")
        if not isinstance(choices, list):
            return None
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message")
            if isinstance(message, dict):
                content = message.get("content")
                if isinstance(content, str):
                    return content
            text = choice.get("text")
            if isinstance(text, str):
                return text
        return None
