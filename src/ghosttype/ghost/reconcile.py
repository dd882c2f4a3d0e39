"""Keystroke reconciliation between the live buffer and the active suggestion."""

from __future__ import annotations

import logging
from dataclasses import replace

from ..editor.buffer import EditorBuffer
from ..editor.document_model import Position
from .state import GhostSuggestion, SuggestionSnapshot

__all__ = ["common_prefix_length", "reconcile", "ReconciliationEngine"]

LOGGER = logging.getLogger(__name__)


def common_prefix_length(left: str, right: str) -> int:
    limit = min(len(left), len(right))
    index = 0
    while index < limit and left[index] == right[index]:
        index += 1
    return index


def reconcile(snapshot: SuggestionSnapshot, cursor: Position, row_text: str) -> SuggestionSnapshot:
    """Return the snapshot that reflects ``cursor`` and the text of the cursor's row.

    Recomputed from scratch on every edit; suggestion lines are editor-line
    sized so the prefix scan stays cheap.
    """

    if not snapshot.active or snapshot.anchor is None:
        return snapshot

    if cursor.row > snapshot.expected_row:
        # A line break past the matched portion moves reconciliation on to
        # the next suggestion line, whatever was typed on the previous one.
        return replace(
            snapshot,
            line_index=snapshot.line_index + 1,
            consumed_column=0,
            mismatch=False,
        )

    base_column = snapshot.anchor.column if snapshot.line_index == 0 else 0
    typed = row_text[base_column : cursor.column]
    code = snapshot.current_code

    if not code and typed:
        return replace(snapshot, mismatch=True)

    matched = common_prefix_length(typed, code)
    return replace(snapshot, consumed_column=matched, mismatch=len(typed) > matched)


class ReconciliationEngine:
    """Feeds buffer change and scroll events into a :class:`GhostSuggestion`."""

    def __init__(self, buffer: EditorBuffer, ghost: GhostSuggestion) -> None:
        self._buffer = buffer
        self._ghost = ghost
        self._attached = False

    def attach(self) -> None:
        if self._attached:
            return
        self._buffer.add_content_listener(self.on_content_changed)
        self._buffer.add_scroll_listener(self.on_viewport_scrolled)
        self._attached = True

    def on_content_changed(self, is_bulk_replace: bool) -> None:
        if is_bulk_replace or not self._ghost.active or self._ghost.is_editing_buffer:
            return
        cursor = self._buffer.get_cursor_position()
        previous = self._ghost.snapshot
        updated = reconcile(previous, cursor, self._buffer.get_line_content(cursor.row))
        if updated.mismatch and not previous.mismatch:
            LOGGER.debug(
                "Typing diverged from suggestion line %d at column %d",
                updated.line_index,
                updated.consumed_column,
            )
        self._ghost.update(updated)

    def on_viewport_scrolled(self) -> None:
        if self._ghost.active:
            self._ghost.render()
