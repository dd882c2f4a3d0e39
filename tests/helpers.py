"""Shared test helpers and stub classes.

Import from here instead of duplicating these doubles in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any


class FakeProvider:
    """Scripted completion provider.

    Responses are handed out in call order. When ``gate`` is set the call
    suspends until the event fires, which lets tests interleave requests.

    Example:
        from tests.helpers import FakeProvider

        provider = FakeProvider("x = 1  # assign")
    """

    def __init__(self, *responses: str, error: Exception | None = None) -> None:
        self.responses = list(responses)
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[dict[str, Any]] = []

    async def request_completion(self, problem: str, code: str, language: str, mode: str) -> str:
        self.calls.append({"problem": problem, "code": code, "language": language, "mode": mode})
        response = self.responses.pop(0) if self.responses else ""
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return response


class RecordingRenderer:
    """Render callback that keeps every snapshot it was handed."""

    def __init__(self) -> None:
        self.snapshots: list[Any] = []

    def __call__(self, snapshot: Any) -> None:
        self.snapshots.append(snapshot)

    @property
    def last(self) -> Any:
        return self.snapshots[-1] if self.snapshots else None
