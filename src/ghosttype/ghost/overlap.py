"""Best-effort removal of provider output that repeats the end of the input."""

from __future__ import annotations

import logging
import re

__all__ = ["remove_overlap", "strip_code_fences"]

LOGGER = logging.getLogger(__name__)

# A fuzzy match must start within this many characters past the last line's length.
FUZZY_WINDOW = 5
FUZZY_MIN_LENGTH = 3

_LEADING_FENCE = re.compile(r"^```[a-z]*\n", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")


def remove_overlap(code_context: str, raw_suggestion: str) -> str:
    """Strip the part of ``raw_suggestion`` that merely repeats ``code_context``'s last line.

    Two rules are tried in order: an exact prefix match of the last context
    line, then a fuzzy match of its stripped form near the start of the
    suggestion. When neither applies the suggestion is returned unchanged.
    """

    if not raw_suggestion:
        return ""
    last_line = code_context.split("\n")[-1]

    if last_line and raw_suggestion.startswith(last_line):
        LOGGER.debug("Trimmed exact overlap of %d chars", len(last_line))
        return raw_suggestion[len(last_line) :]

    needle = last_line.strip()
    if len(needle) > FUZZY_MIN_LENGTH:
        index = raw_suggestion.find(needle)
        if 0 <= index < len(last_line) + FUZZY_WINDOW:
            LOGGER.debug("Trimmed fuzzy overlap ending at offset %d", index + len(needle))
            return raw_suggestion[index + len(needle) :]

    return raw_suggestion


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences a model may wrap around raw code."""

    if not text:
        return ""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text)
    return text.rstrip()
