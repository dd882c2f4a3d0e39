"""Editor capability protocol and an in-memory buffer implementing it.

The ghost-text core never talks to a widget directly; it only needs the small
capability set described by :class:`EditorBuffer`. :class:`TextBuffer` keeps
those semantics in plain Python so reconciliation can be exercised without a
running ``QApplication``; :mod:`ghosttype.editor.ghost_text_edit` provides the
Qt-backed equivalent.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .document_model import Position, advance_position, normalize_newlines

__all__ = [
    "ContentListener",
    "ScrollListener",
    "EditorBuffer",
    "TextBuffer",
]


class ContentListener(Protocol):
    """Callback fired after every buffer mutation."""

    def __call__(self, is_bulk_replace: bool) -> None:
        ...


class ScrollListener(Protocol):
    """Callback fired when the viewport scrolls."""

    def __call__(self) -> None:
        ...


@runtime_checkable
class EditorBuffer(Protocol):
    """Capabilities the ghost-text core consumes from the host editor."""

    def get_line_content(self, row: int) -> str:
        ...

    def line_count(self) -> int:
        ...

    def text(self) -> str:
        ...

    def get_cursor_position(self) -> Position:
        ...

    def set_cursor_position(self, position: Position) -> None:
        ...

    def apply_insertion(self, row: int, column: int, text: str) -> None:
        ...

    def add_content_listener(self, listener: ContentListener) -> None:
        ...

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        ...


class TextBuffer:
    """Line-based text buffer with a single caret and change listeners."""

    def __init__(self, text: str = "", *, cursor: Position | None = None) -> None:
        self._lines: list[str] = normalize_newlines(text).split("\n")
        self._cursor = self._clamp(cursor or Position(0, 0))
        self._content_listeners: list[ContentListener] = []
        self._scroll_listeners: list[ScrollListener] = []

    # ------------------------------------------------------------------
    # EditorBuffer capabilities
    # ------------------------------------------------------------------
    def get_line_content(self, row: int) -> str:
        if 0 <= row < len(self._lines):
            return self._lines[row]
        return ""

    def line_count(self) -> int:
        return len(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)

    def get_cursor_position(self) -> Position:
        return self._cursor

    def set_cursor_position(self, position: Position) -> None:
        self._cursor = self._clamp(position)

    def apply_insertion(self, row: int, column: int, text: str) -> None:
        """Insert ``text`` at ``(row, column)`` as one edit.

        The caret only moves when the insertion lands strictly before it.
        """

        if not text:
            return
        at = self._clamp(Position(row, column))
        self._insert(at, normalize_newlines(text))
        self._emit_content_changed(False)

    def add_content_listener(self, listener: ContentListener) -> None:
        self._content_listeners.append(listener)

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        self._scroll_listeners.append(listener)

    # ------------------------------------------------------------------
    # User-style editing
    # ------------------------------------------------------------------
    def type_text(self, text: str) -> None:
        """Simulate keystrokes: each character is inserted at the caret and emits a change."""

        for char in normalize_newlines(text):
            caret = self._cursor
            self._insert(caret, char)
            self._cursor = advance_position(caret, char)
            self._emit_content_changed(False)

    def backspace(self, count: int = 1) -> None:
        for _ in range(max(0, count)):
            row, column = self._cursor.as_tuple()
            if column > 0:
                line = self._lines[row]
                self._lines[row] = line[: column - 1] + line[column:]
                self._cursor = Position(row, column - 1)
            elif row > 0:
                previous = self._lines[row - 1]
                self._lines[row - 1] = previous + self._lines.pop(row)
                self._cursor = Position(row - 1, len(previous))
            else:
                return
            self._emit_content_changed(False)

    def set_text(self, text: str, *, cursor: Position | None = None) -> None:
        """Replace the whole document; listeners see this as a bulk replacement."""

        self._lines = normalize_newlines(text).split("\n")
        self._cursor = self._clamp(cursor or Position(0, 0))
        self._emit_content_changed(True)

    def scroll(self) -> None:
        for listener in list(self._scroll_listeners):
            listener()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _insert(self, at: Position, text: str) -> None:
        line = self._lines[at.row]
        head, tail = line[: at.column], line[at.column :]
        pieces = text.split("\n")
        pieces[0] = head + pieces[0]
        pieces[-1] = pieces[-1] + tail
        self._lines[at.row : at.row + 1] = pieces
        if at < self._cursor:
            self._cursor = self._shift(self._cursor, at, text)

    @staticmethod
    def _shift(cursor: Position, at: Position, text: str) -> Position:
        added_rows = text.count("\n")
        if cursor.row != at.row:
            return Position(cursor.row + added_rows, cursor.column)
        end = advance_position(at, text)
        return Position(end.row, end.column + (cursor.column - at.column))

    def _clamp(self, position: Position) -> Position:
        row = max(0, min(position.row, len(self._lines) - 1))
        column = max(0, min(position.column, len(self._lines[row])))
        return Position(row, column)

    def _emit_content_changed(self, is_bulk_replace: bool) -> None:
        for listener in list(self._content_listeners):
            listener(is_bulk_replace)
