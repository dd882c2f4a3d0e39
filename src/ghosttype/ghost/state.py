"""Suggestion state: immutable snapshots plus the object that owns the live one.

:class:`SuggestionSnapshot` is a plain value that reconciliation replaces on
every keystroke. :class:`GhostSuggestion` owns the current snapshot and is the
only place that touches the buffer on the suggestion's behalf (reserving host
rows on show/append and inserting text on accept). Presentation is delegated to
a render callback so the overlay can be a pure function of the snapshot.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Iterator

from ..editor.buffer import EditorBuffer
from ..editor.document_model import Position, advance_position, split_lines
from .annotations import code_for_accept, strip_annotation

__all__ = ["SuggestionSnapshot", "GhostSuggestion", "RenderCallback", "split_suggestion"]

LOGGER = logging.getLogger(__name__)

RenderCallback = Callable[["SuggestionSnapshot"], None]


def split_suggestion(text: str) -> tuple[str, ...]:
    return tuple(split_lines(text))


@dataclass(slots=True, frozen=True)
class SuggestionSnapshot:
    """One reconciliation step of the active suggestion.

    ``anchor`` is ``None`` when no suggestion is active. ``line_index`` may equal
    ``len(lines)`` once the user has moved past every suggested line.
    """

    lines: tuple[str, ...] = ()
    anchor: Position | None = None
    line_index: int = 0
    consumed_column: int = 0
    mismatch: bool = False

    @property
    def active(self) -> bool:
        return self.anchor is not None and bool(self.lines)

    @property
    def current_line(self) -> str:
        if 0 <= self.line_index < len(self.lines):
            return self.lines[self.line_index]
        return ""

    @property
    def current_code(self) -> str:
        """Annotation-stripped code portion of the line being typed against."""

        return strip_annotation(self.current_line)

    @property
    def expected_row(self) -> int:
        if self.anchor is None:
            return 0
        return self.anchor.row + self.line_index

    def remaining_lines(self) -> tuple[str, ...]:
        return self.lines[self.line_index :]

    def remaining_text(self) -> str:
        """Unconsumed suggestion text, annotations included."""

        return "\n".join(self.remaining_lines())[self.consumed_column :]

    def accept_text(self) -> str:
        """Code the buffer would receive if the suggestion were accepted now."""

        cleaned = "\n".join(code_for_accept(line) for line in self.remaining_lines())
        return cleaned[self.consumed_column :]

    def extended(self, more: tuple[str, ...]) -> "SuggestionSnapshot":
        return replace(self, lines=self.lines + more)


class GhostSuggestion:
    """Owns the live suggestion and exposes show/append/accept/hide."""

    def __init__(self, buffer: EditorBuffer, *, on_render: RenderCallback | None = None) -> None:
        self._buffer = buffer
        self._on_render = on_render
        self._snapshot = SuggestionSnapshot()
        self._reserved_rows = 0
        self._editing = False

    @property
    def snapshot(self) -> SuggestionSnapshot:
        return self._snapshot

    @property
    def active(self) -> bool:
        return self._snapshot.active

    @property
    def lines(self) -> tuple[str, ...]:
        return self._snapshot.lines

    @property
    def is_editing_buffer(self) -> bool:
        """True while this object is applying its own buffer edit."""

        return self._editing

    def set_render_callback(self, callback: RenderCallback | None) -> None:
        self._on_render = callback
        self.render()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def show(self, text: str) -> None:
        """Replace any current suggestion with ``text`` anchored at the cursor."""

        self.hide()
        if not text:
            return
        anchor = self._buffer.get_cursor_position()
        self._snapshot = SuggestionSnapshot(lines=split_suggestion(text), anchor=anchor)
        self._reserve_rows(len(self._snapshot.lines))
        self._buffer.set_cursor_position(anchor)
        LOGGER.debug(
            "Ghost shown at %s with %d line(s)", anchor.as_tuple(), len(self._snapshot.lines)
        )
        self.render()

    def append(self, text: str) -> None:
        """Extend the current suggestion without resetting reconciliation progress."""

        if not text:
            return
        if not self.active:
            self.show(text)
            return
        more = split_suggestion(text)
        self._snapshot = self._snapshot.extended(more)
        caret = self._buffer.get_cursor_position()
        self._reserve_rows(len(self._snapshot.lines))
        self._buffer.set_cursor_position(caret)
        LOGGER.debug("Ghost extended by %d line(s)", len(more))
        self.render()

    def hide(self) -> None:
        """Drop the suggestion and its overlay; buffer content is left alone."""

        if not self._snapshot.active and self._reserved_rows == 0:
            return
        self._snapshot = SuggestionSnapshot()
        self._reserved_rows = 0
        self.render()

    def accept(self) -> str:
        """Insert the remaining code at the cursor, then hide. Returns the inserted text."""

        if not self.active:
            return ""
        text = self._snapshot.accept_text()
        if text:
            caret = self._buffer.get_cursor_position()
            with self._editing_buffer():
                self._buffer.apply_insertion(caret.row, caret.column, text)
            self._buffer.set_cursor_position(advance_position(caret, text))
            LOGGER.debug("Ghost accepted: inserted %d chars at %s", len(text), caret.as_tuple())
        self.hide()
        return text

    # ------------------------------------------------------------------
    # Reconciliation hooks
    # ------------------------------------------------------------------
    def update(self, snapshot: SuggestionSnapshot) -> None:
        """Install a reconciled snapshot and re-render."""

        if not self.active:
            return
        self._snapshot = snapshot
        self.render()

    def render(self) -> None:
        if self._on_render is not None:
            self._on_render(self._snapshot)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _reserve_rows(self, line_count: int) -> None:
        # Every overlay line needs a host row below the anchor; only the
        # shortfall against what was already reserved is inserted.
        anchor = self._snapshot.anchor
        needed = line_count - 1
        missing = needed - self._reserved_rows
        if anchor is None or missing <= 0:
            return
        row = min(anchor.row + self._reserved_rows, self._buffer.line_count() - 1)
        column = len(self._buffer.get_line_content(row))
        with self._editing_buffer():
            self._buffer.apply_insertion(row, column, "\n" * missing)
        self._reserved_rows = needed

    @contextmanager
    def _editing_buffer(self) -> Iterator[None]:
        self._editing = True
        try:
            yield
        finally:
            self._editing = False
