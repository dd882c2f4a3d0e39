"""Completion providers and the model client behind them."""

from .client import AIClient, ClientSettings
from .provider import (
    CompletionProvider,
    HttpCompletionProvider,
    ModelCompletionProvider,
    ProviderConfigurationError,
    build_provider,
)

__all__ = [
    "AIClient",
    "ClientSettings",
    "CompletionProvider",
    "HttpCompletionProvider",
    "ModelCompletionProvider",
    "ProviderConfigurationError",
    "build_provider",
]
