"""Positions and text helpers shared by the buffer, the ghost state and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Position",
    "normalize_newlines",
    "split_lines",
    "slice_code_up_to_cursor",
    "end_position",
    "advance_position",
]


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """Zero-based ``(row, column)`` location inside a text buffer."""

    row: int = 0
    column: int = 0

    def as_tuple(self) -> tuple[int, int]:
        return (self.row, self.column)


def normalize_newlines(text: str) -> str:
    """Collapse CRLF and lone CR line endings to LF."""

    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    return normalize_newlines(text).split("\n")


def slice_code_up_to_cursor(text: str, cursor: Position) -> str:
    """Return the document content from its start up to ``cursor``."""

    lines = text.split("\n")
    if cursor.row < 0:
        return ""
    if cursor.row >= len(lines):
        return text
    head = lines[: cursor.row]
    head.append(lines[cursor.row][: max(0, cursor.column)])
    return "\n".join(head)


def end_position(text: str) -> Position:
    """Position just past the last character of ``text``."""

    lines = text.split("\n")
    return Position(len(lines) - 1, len(lines[-1]))


def advance_position(start: Position, inserted: str) -> Position:
    """Where a caret at ``start`` ends up after typing ``inserted``."""

    if not inserted:
        return start
    lines = inserted.split("\n")
    if len(lines) == 1:
        return Position(start.row, start.column + len(inserted))
    return Position(start.row + len(lines) - 1, len(lines[-1]))
