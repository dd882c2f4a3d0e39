"""Parsing of the annotation convention the completion provider is asked to follow.

Every generated line may carry an explanation after ``"  # "``; a line whose
stripped content starts with ``#`` is annotation only. This is a contract with
the provider, not a comment parser for any particular language.
"""

from __future__ import annotations

ANNOTATION_DELIMITER = "  # "
INSTRUCTION_MARKER = "# [INSTRUCTION]"

__all__ = [
    "ANNOTATION_DELIMITER",
    "INSTRUCTION_MARKER",
    "strip_annotation",
    "is_annotation_only",
    "code_for_accept",
]


def is_annotation_only(line: str) -> bool:
    return line.strip().startswith("#")


def strip_annotation(line: str) -> str:
    """Return the code portion of ``line``; ``""`` for annotation-only lines."""

    if not line or is_annotation_only(line):
        return ""
    return line.split(ANNOTATION_DELIMITER, 1)[0]


def code_for_accept(line: str) -> str:
    # Falls back to the raw line so code that legitimately contains the
    # delimiter is never dropped on accept.
    return strip_annotation(line) or line
