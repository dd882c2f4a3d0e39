"""User-facing ghost-text actions.

:class:`GhostOrchestrator` binds generate, toggle, extend-with-next-step,
accept and cancel to the cache, the provider and the live suggestion. It owns
the ``IDLE``/``SUGGESTED`` phase and a request generation counter: every fetch
is tagged with the generation current when it started, and a response that
resolves after a newer fetch, a cancel or an accept is dropped instead of
overwriting the suggestion.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Literal

from ..ai.prompts import CompletionMode, augment_problem
from ..editor.buffer import EditorBuffer
from ..editor.document_model import slice_code_up_to_cursor
from ..events import (
    Event,
    EventBus,
    StaleResponseDiscarded,
    SuggestionAccepted,
    SuggestionExtended,
    SuggestionHidden,
    SuggestionRequestFailed,
    SuggestionShown,
)
from .cache import SuggestionCache
from .overlap import remove_overlap
from .reconcile import ReconciliationEngine
from .state import GhostSuggestion, SuggestionSnapshot, split_suggestion

if TYPE_CHECKING:  # pragma: no cover
    from ..ai.provider import CompletionProvider

__all__ = ["GhostPhase", "GhostOrchestrator"]

LOGGER = logging.getLogger(__name__)


class GhostPhase(Enum):
    IDLE = "idle"
    SUGGESTED = "suggested"


class GhostOrchestrator:
    """Coordinates the suggestion cache, the provider and the overlay."""

    def __init__(
        self,
        buffer: EditorBuffer,
        provider: "CompletionProvider",
        *,
        problem: str = "",
        language: str = "python",
        request_timeout: float | None = 30.0,
        augment_instructions: bool = True,
        ghost: GhostSuggestion | None = None,
        cache: SuggestionCache | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._buffer = buffer
        self._provider = provider
        self.problem = problem
        self.language = language
        self._request_timeout = request_timeout
        self._augment_instructions = augment_instructions
        self._ghost = ghost or GhostSuggestion(buffer)
        self._cache = cache or SuggestionCache()
        self._bus = event_bus
        self._engine = ReconciliationEngine(buffer, self._ghost)
        self._engine.attach()
        self._phase = GhostPhase.IDLE
        self._generation = 0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def phase(self) -> GhostPhase:
        return self._phase

    @property
    def ghost(self) -> GhostSuggestion:
        return self._ghost

    @property
    def cache(self) -> SuggestionCache:
        return self._cache

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_suggesting(self) -> bool:
        return self._phase is GhostPhase.SUGGESTED and self._ghost.active

    def code_context(self) -> str:
        """Buffer content from the document start up to the cursor."""

        return slice_code_up_to_cursor(self._buffer.text(), self._buffer.get_cursor_position())

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def generate(self) -> bool:
        """Show a suggestion for the cursor, from the cache when possible.

        Returns True when a suggestion is visible afterwards because of this call.
        """

        self._sync_phase()
        if self._phase is GhostPhase.SUGGESTED:
            return False
        context = self.code_context()
        if self._show_from_cache(context):
            return True
        return await self._fetch_and_show(context)

    async def toggle_visibility(self) -> bool:
        """Hide a visible suggestion, or bring one back (cache first, then fetch)."""

        self._sync_phase()
        if self._phase is GhostPhase.SUGGESTED:
            self._dismiss("toggle")
            return False
        context = self.code_context()
        if self._show_from_cache(context):
            return True
        LOGGER.debug("Toggle found no reusable suggestion; generating")
        return await self._fetch_and_show(context)

    async def extend_with_next_step(self) -> bool:
        """Fetch one more logical step as if the current suggestion were already accepted.

        The cache is re-keyed on the context read before the request, so any
        typing that lands while it is in flight is treated like typing against
        a cached suggestion.
        """

        live_context = self.code_context()
        base = self._ghost.snapshot if self.is_suggesting else None
        hypothetical = live_context
        if base is not None and base.remaining_lines():
            hypothetical += base.remaining_text() + "\n"

        text = await self._fetch(hypothetical, "step")
        if not text:
            return False

        if base is not None and self._ghost.active:
            before = len(self._ghost.lines)
            self._ghost.append(text)
            combined = _remaining_with(base, split_suggestion(text))
            self._publish(
                SuggestionExtended(
                    added_lines=len(self._ghost.lines) - before,
                    total_lines=len(self._ghost.lines),
                )
            )
        else:
            self._ghost.show(text)
            combined = text
            self._publish(SuggestionShown(line_count=len(self._ghost.lines)))
        self._cache.store(live_context, combined)
        self._phase = GhostPhase.SUGGESTED
        return True

    def accept(self) -> str:
        """Insert the remaining suggestion; returns the inserted text (``""`` when idle)."""

        if not self.is_suggesting:
            return ""
        inserted = self._ghost.accept()
        self._phase = GhostPhase.IDLE
        self._generation += 1
        if inserted:
            self._cache.invalidate()
            self._publish(SuggestionAccepted(inserted_chars=len(inserted)))
        return inserted

    def cancel(self) -> None:
        """Dismiss the overlay, keep the cache, and drop any in-flight response."""

        self._dismiss("cancel")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _sync_phase(self) -> None:
        if self._phase is GhostPhase.SUGGESTED and not self._ghost.active:
            self._phase = GhostPhase.IDLE

    async def _fetch_and_show(self, context: str) -> bool:
        text = await self._fetch(context, "chunk")
        if not text:
            return False
        self._cache.store(context, text)
        self._ghost.show(text)
        self._phase = GhostPhase.SUGGESTED
        self._publish(SuggestionShown(line_count=len(self._ghost.lines)))
        return True

    def _show_from_cache(self, context: str) -> bool:
        remainder = self._cache.lookup(context)
        if not remainder:
            return False
        self._generation += 1
        self._ghost.show(remainder)
        self._phase = GhostPhase.SUGGESTED
        self._publish(SuggestionShown(line_count=len(self._ghost.lines), from_cache=True))
        return True

    def _dismiss(self, reason: Literal["toggle", "cancel"]) -> None:
        self._generation += 1
        was_visible = self._ghost.active
        self._ghost.hide()
        self._phase = GhostPhase.IDLE
        if was_visible:
            self._publish(SuggestionHidden(reason=reason))

    async def _fetch(self, context: str, mode: CompletionMode) -> str | None:
        self._generation += 1
        generation = self._generation
        problem = self.problem
        if self._augment_instructions:
            problem = augment_problem(problem, language=self.language)
        LOGGER.debug("Fetching %s suggestion (generation %d, %d chars)", mode, generation, len(context))

        try:
            raw = await asyncio.wait_for(
                self._provider.request_completion(problem, context, self.language, mode),
                timeout=self._request_timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("Completion provider timed out after %ss", self._request_timeout)
            self._publish_failure(generation, mode, "timeout")
            return None
        except Exception:
            LOGGER.exception("Completion provider raised")
            self._publish_failure(generation, mode, "error")
            return None

        if self._is_stale(generation, mode):
            self._publish(StaleResponseDiscarded(generation=generation, current_generation=self._generation))
            return None

        cleaned = remove_overlap(context, raw or "")
        if not cleaned:
            LOGGER.debug("Provider returned no usable %s suggestion", mode)
            self._publish(SuggestionRequestFailed(mode=mode, reason="empty"))
            return None
        return cleaned

    def _is_stale(self, generation: int, mode: CompletionMode) -> bool:
        if generation == self._generation:
            return False
        LOGGER.debug(
            "Discarding stale %s response (generation %d, current %d)",
            mode,
            generation,
            self._generation,
        )
        return True

    def _publish_failure(
        self, generation: int, mode: CompletionMode, reason: Literal["timeout", "error"]
    ) -> None:
        # A failure for a request the user already moved past is not reported.
        if not self._is_stale(generation, mode):
            self._publish(SuggestionRequestFailed(mode=mode, reason=reason))

    def _publish(self, event: Event) -> None:
        if self._bus is not None:
            self._bus.publish(event)


def _remaining_with(snapshot: SuggestionSnapshot, more: tuple[str, ...]) -> str:
    """Unconsumed text of ``snapshot`` once ``more`` lines are appended to it."""

    remaining = snapshot.remaining_lines()
    if not remaining:
        return "\n".join(more)
    return "\n".join(remaining + more)[snapshot.consumed_column :]
