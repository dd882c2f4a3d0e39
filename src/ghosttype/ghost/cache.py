"""Single-slot suggestion cache.

The cache remembers the last successful fetch as ``(origin snapshot, full
suggestion text)`` so a hidden suggestion can be re-shown, or resumed after the
user typed part of it, without another provider round trip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..editor.document_model import normalize_newlines

__all__ = [
    "CacheEntry",
    "CacheStats",
    "SuggestionCache",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """The cached fetch.

    Attributes:
        origin_snapshot: Buffer content from the document start up to the
            cursor at fetch time.
        full_suggestion_text: The trimmed suggestion returned for that context.
    """

    origin_snapshot: str
    full_suggestion_text: str

    def remaining_for(self, code_context: str) -> str | None:
        """Return the unconsumed suggestion suffix for ``code_context``, or ``None`` when stale."""

        context = normalize_newlines(code_context)
        origin = normalize_newlines(self.origin_snapshot)
        if not context.startswith(origin):
            return None
        delta = context[len(origin) :]
        suggestion = normalize_newlines(self.full_suggestion_text)
        if not suggestion.startswith(delta):
            return None
        return suggestion[len(delta) :]


@dataclass(slots=True)
class CacheStats:
    """Counters for cache activity.

    Attributes:
        hits: Lookups that produced a non-empty suffix.
        misses: Lookups on an empty, stale or exhausted slot.
        stores: Successful fetches written to the slot.
        invalidations: Explicit clears after an accept.
    """

    hits: int = 0
    misses: int = 0
    stores: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "invalidations": self.invalidations,
            "hit_rate": self.hit_rate,
        }


class SuggestionCache:
    """Holds at most one :class:`CacheEntry`, replaced wholesale on every store."""

    def __init__(self) -> None:
        self._entry: CacheEntry | None = None
        self._stats = CacheStats()

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def lookup(self, code_context: str) -> str | None:
        """Return the reusable suggestion suffix for ``code_context``.

        ``None`` signals a miss: no entry, a context that no longer extends the
        origin snapshot, typing that diverged from the cached suggestion, or
        nothing left to show.
        """

        entry = self._entry
        if entry is None:
            self._stats.misses += 1
            LOGGER.debug("Suggestion cache miss: empty slot")
            return None
        remainder = entry.remaining_for(code_context)
        if not remainder:
            self._stats.misses += 1
            LOGGER.debug(
                "Suggestion cache miss: %s",
                "stale context" if remainder is None else "suggestion exhausted",
            )
            return None
        self._stats.hits += 1
        LOGGER.debug("Suggestion cache hit: %d chars remaining", len(remainder))
        return remainder

    def store(self, code_context: str, suggestion_text: str) -> None:
        """Replace the slot with a freshly fetched suggestion."""

        self._entry = CacheEntry(origin_snapshot=code_context, full_suggestion_text=suggestion_text)
        self._stats.stores += 1
        LOGGER.debug(
            "Suggestion cache stored: origin=%d chars, suggestion=%d chars",
            len(code_context),
            len(suggestion_text),
        )

    def invalidate(self) -> None:
        """Clear the slot once its suggestion has been consumed by an accept."""

        if self._entry is None:
            return
        self._entry = None
        self._stats.invalidations += 1
        LOGGER.debug("Suggestion cache invalidated")
