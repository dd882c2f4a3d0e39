"""Completion providers: where ghost text comes from.

The orchestrator only needs :class:`CompletionProvider`. Two implementations
ship here: :class:`HttpCompletionProvider` speaks the ``POST /suggest``
contract of a separate backend, and :class:`ModelCompletionProvider` builds the
prompt itself and calls an OpenAI-compatible model directly. Both collapse
every failure into ``""`` ("no suggestion") after logging it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from openai import APIError

from ..ghost.overlap import strip_code_fences
from .client import AIClient, ClientSettings
from .prompts import COMPLETION_MODES, CompletionMode, build_completion_prompt

if TYPE_CHECKING:  # pragma: no cover
    from ..services.settings import Settings

__all__ = [
    "CompletionProvider",
    "CompletionRequest",
    "HttpCompletionProvider",
    "ModelCompletionProvider",
    "ProviderConfigurationError",
    "build_provider",
]

LOGGER = logging.getLogger(__name__)


class ProviderConfigurationError(RuntimeError):
    """Raised when a provider cannot be built from the current settings."""


class CompletionProvider(Protocol):
    """Async source of raw suggestion text; ``""`` means no suggestion."""

    async def request_completion(
        self, problem: str, code: str, language: str, mode: CompletionMode
    ) -> str:
        ...


@dataclass(slots=True, frozen=True)
class CompletionRequest:
    """Body of a ``POST /suggest`` call."""

    problem: str
    code: str
    language: str
    mode: CompletionMode = "chunk"

    def __post_init__(self) -> None:
        if self.mode not in COMPLETION_MODES:
            raise ValueError(f"Unsupported completion mode: {self.mode!r}")

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


class HttpCompletionProvider:
    """Client for a suggestion backend exposing ``POST /suggest``."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return self._url

    async def request_completion(
        self, problem: str, code: str, language: str, mode: CompletionMode
    ) -> str:
        request = CompletionRequest(problem=problem, code=code, language=language, mode=mode)
        LOGGER.debug("POST %s mode=%s context=%d chars", self._url, mode, len(code))
        try:
            response = await self._client.post(self._url, json=request.to_payload())
        except httpx.HTTPError as exc:
            LOGGER.warning("Suggestion backend unreachable at %s: %s", self._url, exc)
            return ""
        if not response.is_success:
            LOGGER.warning("Suggestion backend returned HTTP %s", response.status_code)
            return ""
        try:
            data = response.json()
        except ValueError:
            LOGGER.warning("Suggestion backend returned a non-JSON body")
            return ""
        ghost = data.get("ghost") if isinstance(data, dict) else None
        if not isinstance(ghost, str):
            LOGGER.warning("Suggestion backend response lacks a string 'ghost' field")
            return ""
        return ghost

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ModelCompletionProvider:
    """Asks an OpenAI-compatible chat model for the continuation directly."""

    def __init__(self, client: AIClient, *, temperature: float | None = 0.2) -> None:
        self._client = client
        self._temperature = temperature

    async def request_completion(
        self, problem: str, code: str, language: str, mode: CompletionMode
    ) -> str:
        prompt = build_completion_prompt(problem, code, language, mode)
        LOGGER.debug("Requesting %s completion from %s", mode, self._client.settings.model)
        try:
            raw = await self._client.complete(
                [{"role": "user", "content": prompt}], temperature=self._temperature
            )
        except (APIError, httpx.HTTPError) as exc:
            LOGGER.warning("Model completion failed: %s", exc)
            return ""
        ghost = strip_code_fences(raw)
        LOGGER.debug("Model returned %d chars (%d after fence cleanup)", len(raw), len(ghost))
        return ghost

    async def aclose(self) -> None:
        await self._client.aclose()


def build_provider(settings: "Settings") -> HttpCompletionProvider | ModelCompletionProvider:
    """Instantiate the provider selected by ``settings.provider``."""

    kind = settings.provider
    if kind == "http":
        return HttpCompletionProvider(settings.suggest_url, timeout=settings.request_timeout)
    if kind == "openai":
        if not settings.api_key:
            raise ProviderConfigurationError(
                "An API key is required for the openai provider (set GHOSTTYPE_API_KEY)."
            )
        client = AIClient(
            ClientSettings(
                base_url=settings.base_url,
                api_key=settings.api_key,
                model=settings.model,
                request_timeout=settings.request_timeout,
                max_retries=settings.max_retries,
                retry_min_seconds=settings.retry_min_seconds,
                retry_max_seconds=settings.retry_max_seconds,
                debug_logging=settings.debug_logging,
            )
        )
        return ModelCompletionProvider(client, temperature=settings.temperature)
    raise ProviderConfigurationError(f"Unknown provider kind: {kind!r}")
