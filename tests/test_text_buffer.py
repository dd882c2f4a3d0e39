"""Tests for the in-memory editor buffer and position helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, call

from ghosttype.editor.buffer import EditorBuffer, TextBuffer
from ghosttype.editor.document_model import (
    Position,
    advance_position,
    end_position,
    normalize_newlines,
    slice_code_up_to_cursor,
)


def test_text_buffer_satisfies_editor_buffer_protocol() -> None:
    assert isinstance(TextBuffer(), EditorBuffer)


def test_type_text_moves_caret_and_emits_per_character() -> None:
    buffer = TextBuffer()
    listener = MagicMock()
    buffer.add_content_listener(listener)

    buffer.type_text("ab\nc")

    assert buffer.text() == "ab\nc"
    assert buffer.get_cursor_position() == Position(1, 1)
    assert listener.call_args_list == [call(False)] * 4


def test_apply_insertion_before_caret_shifts_caret() -> None:
    buffer = TextBuffer("hello", cursor=Position(0, 5))

    buffer.apply_insertion(0, 0, "> ")

    assert buffer.text() == "> hello"
    assert buffer.get_cursor_position() == Position(0, 7)


def test_apply_insertion_at_caret_leaves_caret_in_place() -> None:
    buffer = TextBuffer("hello", cursor=Position(0, 5))

    buffer.apply_insertion(0, 5, "\n\n")

    assert buffer.text() == "hello\n\n"
    assert buffer.line_count() == 3
    assert buffer.get_cursor_position() == Position(0, 5)


def test_multiline_insertion_on_caret_row_keeps_caret_on_same_character() -> None:
    buffer = TextBuffer("abcd", cursor=Position(0, 3))

    buffer.apply_insertion(0, 1, "X\nY")

    assert buffer.text() == "aX\nYbcd"
    assert buffer.get_cursor_position() == Position(1, 3)
    assert buffer.get_line_content(1)[3] == "d"


def test_insertion_on_earlier_row_moves_caret_down() -> None:
    buffer = TextBuffer("one\ntwo", cursor=Position(1, 2))

    buffer.apply_insertion(0, 3, "\nmore")

    assert buffer.get_cursor_position() == Position(2, 2)


def test_set_text_is_reported_as_bulk_replace() -> None:
    buffer = TextBuffer("old")
    listener = MagicMock()
    buffer.add_content_listener(listener)

    buffer.set_text("new\ntext", cursor=Position(1, 4))

    listener.assert_called_once_with(True)
    assert buffer.get_cursor_position() == Position(1, 4)


def test_backspace_joins_lines_at_column_zero() -> None:
    buffer = TextBuffer("ab\nc", cursor=Position(1, 0))

    buffer.backspace()

    assert buffer.text() == "abc"
    assert buffer.get_cursor_position() == Position(0, 2)


def test_backspace_at_document_start_is_noop() -> None:
    buffer = TextBuffer("abc")
    listener = MagicMock()
    buffer.add_content_listener(listener)

    buffer.backspace(3)

    assert buffer.text() == "abc"
    listener.assert_not_called()


def test_scroll_notifies_scroll_listeners() -> None:
    buffer = TextBuffer()
    listener = MagicMock()
    buffer.add_scroll_listener(listener)

    buffer.scroll()

    listener.assert_called_once_with()


def test_cursor_is_clamped_to_document() -> None:
    buffer = TextBuffer("ab\ncd")

    buffer.set_cursor_position(Position(9, 9))

    assert buffer.get_cursor_position() == Position(1, 2)
    assert buffer.get_line_content(5) == ""


def test_crlf_input_is_normalized() -> None:
    buffer = TextBuffer("a\r\nb\rc")

    assert buffer.text() == "a\nb\nc"
    assert normalize_newlines("x\r\n") == "x\n"


def test_slice_code_up_to_cursor() -> None:
    text = "def f():\n    return 1"

    assert slice_code_up_to_cursor(text, Position(1, 4)) == "def f():\n    "
    assert slice_code_up_to_cursor(text, Position(0, 0)) == ""
    assert slice_code_up_to_cursor(text, Position(7, 0)) == text


def test_position_helpers() -> None:
    assert end_position("ab\ncde") == Position(1, 3)
    assert advance_position(Position(2, 4), "xy") == Position(2, 6)
    assert advance_position(Position(2, 4), "x\nyz") == Position(3, 2)
    assert advance_position(Position(2, 4), "") == Position(2, 4)
    assert Position(1, 9) < Position(2, 0)
