"""Tests for the completion providers."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, cast

import httpx
import pytest

from ghosttype.ai.client import AIClient
from ghosttype.ai.provider import (
    CompletionRequest,
    HttpCompletionProvider,
    ModelCompletionProvider,
    ProviderConfigurationError,
    build_provider,
)
from ghosttype.services.settings import Settings

SUGGEST_URL = "http://backend.test/suggest"


def _http_provider(handler) -> HttpCompletionProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpCompletionProvider(SUGGEST_URL, client=client)


class _FakeModelClient:
    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.settings = SimpleNamespace(model="stub-model")
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def complete(self, messages, *, temperature=None, max_tokens=None) -> str:
        self.calls.append({"messages": list(messages), "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        self.closed = True


class TestHttpCompletionProvider:
    @pytest.mark.asyncio
    async def test_posts_request_and_returns_ghost(self) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"ghost": "return 1  # base case"})

        provider = _http_provider(handler)
        result = await provider.request_completion("Sum", "def f():\n    ", "python", "chunk")

        assert result == "return 1  # base case"
        assert seen == [
            {"problem": "Sum", "code": "def f():\n    ", "language": "python", "mode": "chunk"}
        ]

    @pytest.mark.asyncio
    async def test_non_success_status_yields_empty(self) -> None:
        provider = _http_provider(lambda request: httpx.Response(500, json={"ghost": "x"}))

        assert await provider.request_completion("p", "", "python", "chunk") == ""

    @pytest.mark.asyncio
    async def test_non_json_body_yields_empty(self) -> None:
        provider = _http_provider(lambda request: httpx.Response(200, text="<html>"))

        assert await provider.request_completion("p", "", "python", "chunk") == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"text": "x"}, {"ghost": None}, ["ghost"]])
    async def test_missing_ghost_field_yields_empty(self, body: Any) -> None:
        provider = _http_provider(lambda request: httpx.Response(200, json=body))

        assert await provider.request_completion("p", "", "python", "step") == ""

    @pytest.mark.asyncio
    async def test_network_error_yields_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _http_provider(handler)

        assert await provider.request_completion("p", "", "python", "chunk") == ""

    def test_request_rejects_unknown_mode(self) -> None:
        with pytest.raises(ValueError):
            CompletionRequest(problem="p", code="", language="python", mode=cast(Any, "all"))


class TestModelCompletionProvider:
    @pytest.mark.asyncio
    async def test_builds_prompt_and_strips_fences(self) -> None:
        fake = _FakeModelClient(reply="```python\nx = 1  # one\n```")
        provider = ModelCompletionProvider(cast(AIClient, fake), temperature=0.1)

        result = await provider.request_completion("Count", "import os\n", "python", "full")

        assert result == "x = 1  # one"
        prompt = fake.calls[0]["messages"][0]["content"]
        assert "Problem: Count" in prompt
        assert "REMAINING code" in prompt
        assert fake.calls[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_transport_failure_yields_empty(self) -> None:
        fake = _FakeModelClient(error=httpx.ConnectError("down"))
        provider = ModelCompletionProvider(cast(AIClient, fake))

        assert await provider.request_completion("p", "", "python", "chunk") == ""

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self) -> None:
        fake = _FakeModelClient()
        provider = ModelCompletionProvider(cast(AIClient, fake))

        await provider.aclose()

        assert fake.closed


class TestBuildProvider:
    @pytest.mark.asyncio
    async def test_http_provider_uses_suggest_url(self) -> None:
        provider = build_provider(Settings(provider="http", suggest_url=SUGGEST_URL))

        assert isinstance(provider, HttpCompletionProvider)
        assert provider.url == SUGGEST_URL
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_openai_provider_requires_api_key(self) -> None:
        with pytest.raises(ProviderConfigurationError):
            build_provider(Settings(provider="openai", api_key=""))

        provider = build_provider(Settings(provider="openai", api_key="sk-test"))
        assert isinstance(provider, ModelCompletionProvider)
        await provider.aclose()

    def test_unknown_provider_kind_is_rejected(self) -> None:
        with pytest.raises(ProviderConfigurationError):
            build_provider(Settings(provider="carrier-pigeon"))
