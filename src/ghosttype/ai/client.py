"""Async chat client for OpenAI-compatible endpoints, used by the model provider."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, cast

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI, RateLimitError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

__all__ = ["ClientSettings", "AIClient"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the AI client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    request_timeout: float | None = 30.0
    max_retries: int = 2
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 4.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


class AIClient:
    """Streams chat completions and collects them into plain text, with retries."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def stream_text(
        self,
        messages: Iterable[Mapping[str, Any]],
        *,
        temperature: float | None = 0.2,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield content deltas for the given messages."""

        payload = self._build_payload(messages, temperature=temperature, max_tokens=max_tokens)
        LOGGER.debug(
            "Starting streamed completion via %s with %d message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        async for attempt in self._retrying():
            with attempt:
                async with self._client.chat.completions.stream(**payload) as stream:
                    async for event in stream:
                        if getattr(event, "type", None) != "content.delta":
                            continue
                        delta = getattr(event, "delta", None)
                        if delta:
                            yield str(delta)
                break

    async def complete(
        self,
        messages: Iterable[Mapping[str, Any]],
        *,
        temperature: float | None = 0.2,
        max_tokens: int | None = None,
    ) -> str:
        """Return the full completion text for ``messages``."""

        parts: List[str] = []
        async for chunk in self.stream_text(messages, temperature=temperature, max_tokens=max_tokens):
            parts.append(chunk)
        return "".join(parts)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            default_headers=headers,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIError,
                    APIStatusError,
                    APIConnectionError,
                    RateLimitError,
                    httpx.TimeoutException,
                )
            ),
        )

    def _build_payload(
        self,
        messages: Iterable[Mapping[str, Any]],
        *,
        temperature: float | None,
        max_tokens: int | None,
    ) -> Dict[str, Any]:
        normalized = [cast(ChatCompletionMessageParam, dict(message)) for message in messages]
        if not normalized:
            raise ValueError("At least one message is required for a completion")
        payload: Dict[str, Any] = {"model": self._settings.model, "messages": normalized}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Completion payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Completion payload:\n%s", serialized)
