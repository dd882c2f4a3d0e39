"""Pure layout of the ghost overlay.

The renderer turns a :class:`SuggestionSnapshot` and the viewport geometry of
the moment into positioned, classified text rows. It owns no widgets; the Qt
editor paints whatever this returns, and tests can assert on it directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .annotations import INSTRUCTION_MARKER
from .state import SuggestionSnapshot

__all__ = [
    "SegmentKind",
    "ViewportGeometry",
    "OverlaySegment",
    "OverlayRow",
    "split_segments",
    "render_overlay",
]

SegmentKind = Literal["code", "comment", "instruction", "mismatch"]


@dataclass(slots=True, frozen=True)
class ViewportGeometry:
    """Pixel metrics sampled from the host editor at paint time.

    ``cursor_x``/``cursor_y`` locate the top-left of the caret cell;
    ``line_start_x`` is the left edge of text on the row being reconciled.
    """

    cursor_x: float
    cursor_y: float
    line_start_x: float
    line_height: float


@dataclass(slots=True, frozen=True)
class OverlaySegment:
    text: str
    kind: SegmentKind


@dataclass(slots=True, frozen=True)
class OverlayRow:
    """One painted overlay line."""

    index: int
    x: float
    y: float
    segments: tuple[OverlaySegment, ...]
    mismatch: bool = False

    @property
    def text(self) -> str:
        return "".join(segment.text for segment in self.segments)


def split_segments(text: str) -> tuple[OverlaySegment, ...]:
    """Classify ``text`` into code, comment and instruction runs."""

    if not text:
        return ()
    marker = text.find(INSTRUCTION_MARKER)
    if marker >= 0:
        return _non_empty(
            OverlaySegment(text[:marker], "code"),
            OverlaySegment(text[marker:], "instruction"),
        )
    hash_index = text.find("#")
    if hash_index >= 0:
        return _non_empty(
            OverlaySegment(text[:hash_index], "code"),
            OverlaySegment(text[hash_index:], "comment"),
        )
    return (OverlaySegment(text, "code"),)


def render_overlay(
    snapshot: SuggestionSnapshot, geometry: ViewportGeometry | None
) -> tuple[OverlayRow, ...]:
    """Lay out every not-yet-passed suggestion line below the caret."""

    if not snapshot.active or geometry is None:
        return ()
    rows: list[OverlayRow] = []
    for index in range(snapshot.line_index, len(snapshot.lines)):
        line = snapshot.lines[index]
        offset = index - snapshot.line_index
        if offset == 0:
            visible = line[snapshot.consumed_column :]
            x = geometry.cursor_x
        else:
            visible = line
            x = geometry.line_start_x
        if snapshot.mismatch:
            segments = (OverlaySegment(visible, "mismatch"),) if visible else ()
        else:
            segments = split_segments(visible)
        rows.append(
            OverlayRow(
                index=index,
                x=x,
                y=geometry.cursor_y + offset * geometry.line_height,
                segments=segments,
                mismatch=snapshot.mismatch,
            )
        )
    return tuple(rows)


def _non_empty(*segments: OverlaySegment) -> tuple[OverlaySegment, ...]:
    return tuple(segment for segment in segments if segment.text)
