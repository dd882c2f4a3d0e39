"""Qt host editor that satisfies :class:`EditorBuffer` and paints the ghost overlay.

The widget is deliberately thin: rows and columns map onto ``QTextBlock``
numbers and positions within a block, content and scroll signals are forwarded
to listeners, and painting defers to :func:`render_overlay` so the layout
rules stay testable without a display.
"""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor, QFont, QKeyEvent, QPainter, QPaintEvent, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit, QWidget

from ..ghost.renderer import OverlayRow, SegmentKind, ViewportGeometry, render_overlay
from ..ghost.state import SuggestionSnapshot
from ..services.settings import GhostColors
from .buffer import ContentListener, ScrollListener
from .document_model import Position

__all__ = ["GhostTextEdit", "KeyInterceptor"]

LOGGER = logging.getLogger(__name__)

KeyInterceptor = Callable[[QKeyEvent], bool]


class GhostTextEdit(QPlainTextEdit):
    """Plain-text editor with an inline, non-editable suggestion overlay."""

    def __init__(self, parent: QWidget | None = None, *, colors: GhostColors | None = None) -> None:
        super().__init__(parent)
        self._content_listeners: list[ContentListener] = []
        self._scroll_listeners: list[ScrollListener] = []
        self._bulk_replace = False
        self._snapshot = SuggestionSnapshot()
        self._colors = colors or GhostColors()
        self._key_interceptor: KeyInterceptor | None = None
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.textChanged.connect(self._handle_text_changed)
        self.verticalScrollBar().valueChanged.connect(self._handle_scrolled)
        self.horizontalScrollBar().valueChanged.connect(self._handle_scrolled)

    # ------------------------------------------------------------------
    # EditorBuffer
    # ------------------------------------------------------------------
    def get_line_content(self, row: int) -> str:
        block = self.document().findBlockByNumber(row)
        return block.text() if block.isValid() else ""

    def line_count(self) -> int:
        return self.document().blockCount()

    def text(self) -> str:
        return self.toPlainText()

    def get_cursor_position(self) -> Position:
        cursor = self.textCursor()
        return Position(cursor.blockNumber(), cursor.positionInBlock())

    def set_cursor_position(self, position: Position) -> None:
        cursor = self.textCursor()
        cursor.setPosition(self._offset_for(position))
        self.setTextCursor(cursor)

    def apply_insertion(self, row: int, column: int, text: str) -> None:
        cursor = QTextCursor(self.document())
        cursor.setPosition(self._offset_for(Position(row, column)))
        cursor.insertText(text)

    def add_content_listener(self, listener: ContentListener) -> None:
        self._content_listeners.append(listener)

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        self._scroll_listeners.append(listener)

    # ------------------------------------------------------------------
    # Host API
    # ------------------------------------------------------------------
    def set_document_text(self, text: str) -> None:
        """Replace the whole document; listeners see it as a bulk replace."""

        self._bulk_replace = True
        try:
            self.setPlainText(text)
            LOGGER.debug("Document replaced with %d chars", len(text))
        finally:
            self._bulk_replace = False

    def set_key_interceptor(self, interceptor: KeyInterceptor | None) -> None:
        """Install a callable that may consume key presses before the editor sees them."""

        self._key_interceptor = interceptor

    @property
    def ghost_snapshot(self) -> SuggestionSnapshot:
        return self._snapshot

    def render_ghost(self, snapshot: SuggestionSnapshot) -> None:
        """Render callback for :class:`GhostSuggestion`."""

        self._snapshot = snapshot
        self.viewport().update()

    def overlay_geometry(self) -> ViewportGeometry | None:
        """Sample caret and line metrics in viewport coordinates."""

        if not self._snapshot.active:
            return None
        caret = self.cursorRect()
        margin = self.document().documentMargin()
        block = self.document().findBlockByNumber(self._snapshot.expected_row)
        if block.isValid():
            block_rect = self.blockBoundingGeometry(block).translated(self.contentOffset())
            line_start_x = block_rect.left() + margin
        else:
            line_start_x = self.contentOffset().x() + margin
        return ViewportGeometry(
            cursor_x=float(caret.left()),
            cursor_y=float(caret.top()),
            line_start_x=float(line_start_x),
            line_height=float(self.fontMetrics().lineSpacing()),
        )

    def overlay_rows(self) -> tuple[OverlayRow, ...]:
        return render_overlay(self._snapshot, self.overlay_geometry())

    # ------------------------------------------------------------------
    # Qt overrides
    # ------------------------------------------------------------------
    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802 - Qt override
        interceptor = self._key_interceptor
        if interceptor is not None and interceptor(event):
            event.accept()
            return
        super().keyPressEvent(event)

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt override
        super().paintEvent(event)
        rows = self.overlay_rows()
        if not rows:
            return
        painter = QPainter(self.viewport())
        try:
            self._paint_rows(painter, rows)
        finally:
            painter.end()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _paint_rows(self, painter: QPainter, rows: tuple[OverlayRow, ...]) -> None:
        metrics = self.fontMetrics()
        base_font = QFont(self.font())
        struck_font = QFont(self.font())
        struck_font.setStrikeOut(True)
        for row in rows:
            x = row.x
            baseline = row.y + metrics.ascent()
            for segment in row.segments:
                painter.setFont(struck_font if segment.kind == "mismatch" else base_font)
                painter.setPen(self._color_for(segment.kind))
                painter.drawText(QPointF(x, baseline), segment.text)
                x += metrics.horizontalAdvance(segment.text)

    def _color_for(self, kind: SegmentKind) -> QColor:
        return QColor(getattr(self._colors, kind, self._colors.code))

    def _offset_for(self, position: Position) -> int:
        document = self.document()
        row = max(0, min(position.row, document.blockCount() - 1))
        block = document.findBlockByNumber(row)
        column = max(0, min(position.column, block.length() - 1))
        return block.position() + column

    def _handle_text_changed(self) -> None:
        is_bulk = self._bulk_replace
        for listener in list(self._content_listeners):
            listener(is_bulk)

    def _handle_scrolled(self, _value: int) -> None:
        for listener in list(self._scroll_listeners):
            listener()
