"""Uniform request/response contract shared by all model providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

__all__ = [
    "Provider",
    "ProviderError",
    "ProviderMessage",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderResponseFormatError",
    "ProviderTransportError",
    "StaticProvider",
]


class ProviderError(RuntimeError):
    """Base error raised for provider failures."""


class ProviderTransportError(ProviderError):
    """Raised when the underlying transport fails to return a response."""


class ProviderResponseFormatError(ProviderError):
    """Raised when the provider answers with an unusable payload."""


@dataclass(slots=True)
class ProviderMessage:
    """Single chat message exchanged with a provider."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class ProviderRequest:
    """Provider-agnostic generation request."""

    messages: List[ProviderMessage]
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_format: Dict[str, Any] = field(default_factory=lambda: {"type": "json"})
    stream: bool = False
    timeout: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [message.to_dict() for message in self.messages],
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": dict(self.response_format),
            "stream": self.stream,
        }


@dataclass(slots=True)
class ProviderResponse:
    """Provider-agnostic generation result."""

    message: ProviderMessage
    usage: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None


class Provider:
    """Base class for model providers. Subclasses implement :meth:`generate`."""

    name: str = "provider"

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        raise NotImplementedError("Subclasses must implement generate().")


class StaticProvider(Provider):
    """Replay scripted responses in order and record every request.

    Useful offline and in tests: once the script is exhausted the last
    response is repeated.
    """

    name = "static"

    def __init__(self, responses: Sequence[str]) -> None:
        if not responses:
            raise ValueError("StaticProvider requires at least one scripted response.")
        self._responses = list(responses)
        self.requests: list[ProviderRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        self.requests.append(request)
        index = min(len(self.requests), len(self._responses)) - 1
        content = self._responses[index]
        return ProviderResponse(message=ProviderMessage(role="assistant", content=content))
