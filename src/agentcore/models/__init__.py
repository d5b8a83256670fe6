"""Convenience exports for model provider implementations."""

from .openai_compatible import OpenAICompatibleProvider
from .provider import (
    Provider,
    ProviderError,
    ProviderMessage,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseFormatError,
    ProviderTransportError,
    StaticProvider,
)

__all__ = [
    "OpenAICompatibleProvider",
    "Provider",
    "ProviderError",
    "ProviderMessage",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderResponseFormatError",
    "ProviderTransportError",
    "StaticProvider",
]
