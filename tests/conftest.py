"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from ghosttype.editor.buffer import TextBuffer
from ghosttype.editor.document_model import Position

# Qt widgets are created without a display in CI.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in list(os.environ):
        if name.startswith("GHOSTTYPE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GHOSTTYPE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def empty_buffer() -> TextBuffer:
    return TextBuffer()


@pytest.fixture
def function_buffer() -> TextBuffer:
    """Buffer whose caret sits after ``total = `` inside a function body."""

    return TextBuffer("def total(xs):\n    total = ", cursor=Position(1, 12))
