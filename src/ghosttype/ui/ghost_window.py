"""Main window: problem statement, ghost-aware editor and status bar."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Coroutine, Literal

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent, QFont, QKeyEvent
from PySide6.QtWidgets import QInputDialog, QLabel, QMainWindow, QVBoxLayout, QWidget

from ..editor.ghost_text_edit import GhostTextEdit
from ..events import (
    EventBus,
    StaleResponseDiscarded,
    SuggestionAccepted,
    SuggestionExtended,
    SuggestionHidden,
    SuggestionRequestFailed,
    SuggestionShown,
)
from ..ghost.orchestrator import GhostOrchestrator
from ..ghost.state import GhostSuggestion
from ..services.settings import Settings, SettingsStore

if TYPE_CHECKING:  # pragma: no cover
    from ..ai.provider import CompletionProvider

__all__ = ["GhostWindow", "WindowContext", "ShortcutAction", "resolve_shortcut"]

LOGGER = logging.getLogger(__name__)

WINDOW_APP_NAME = "GhostType"
IDLE_HINT = "Ctrl+Space: suggest  |  Ctrl+Down: next step  |  Tab: accept  |  Esc: dismiss"

ShortcutAction = Literal["generate", "toggle", "next_step", "accept", "cancel"]


@dataclass(slots=True)
class WindowContext:
    """Shared context passed to the main window when constructing the UI."""

    settings: Settings
    provider: "CompletionProvider"
    settings_store: SettingsStore | None = None


def resolve_shortcut(key: int, modifiers: Qt.KeyboardModifier) -> ShortcutAction | None:
    """Map a key press onto a ghost action, or ``None`` for ordinary typing."""

    ctrl = bool(modifiers & Qt.KeyboardModifier.ControlModifier)
    shift = bool(modifiers & Qt.KeyboardModifier.ShiftModifier)
    if ctrl and shift and key == Qt.Key.Key_X:
        return "toggle"
    if ctrl and key == Qt.Key.Key_Space:
        return "generate"
    if ctrl and key == Qt.Key.Key_Down:
        return "next_step"
    if not ctrl and key == Qt.Key.Key_Tab:
        return "accept"
    if key == Qt.Key.Key_Escape:
        return "cancel"
    return None


class GhostWindow(QMainWindow):
    """Single-document window hosting the ghost-text editor."""

    def __init__(self, context: WindowContext, *, event_bus: EventBus | None = None) -> None:
        super().__init__()
        self._context = context
        settings = context.settings
        self._editor = GhostTextEdit(colors=settings.ghost_colors)
        self._editor.setFont(QFont(settings.font_family, settings.font_size))
        self._problem_label = QLabel(settings.problem)
        self._problem_label.setWordWrap(True)
        self._problem_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

        container = QWidget(self)
        layout = QVBoxLayout(container)
        layout.addWidget(self._problem_label)
        layout.addWidget(self._editor, 1)
        self.setCentralWidget(container)

        self._bus = event_bus or EventBus()
        ghost = GhostSuggestion(self._editor, on_render=self._editor.render_ghost)
        self._orchestrator = GhostOrchestrator(
            self._editor,
            context.provider,
            problem=settings.problem,
            language=settings.language,
            request_timeout=settings.request_timeout,
            augment_instructions=settings.append_instruction_prompt,
            ghost=ghost,
            event_bus=self._bus,
        )
        self._editor.set_key_interceptor(self._handle_key_press)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._last_status_message = ""
        self._current_path: Path | None = None
        self._problem_action = self._install_menu()
        self._subscribe_status_events()
        self._refresh_window_title()
        self.update_status(IDLE_HINT)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def editor(self) -> GhostTextEdit:
        return self._editor

    @property
    def orchestrator(self) -> GhostOrchestrator:
        return self._orchestrator

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def last_status_message(self) -> str:
        return self._last_status_message

    @property
    def problem_action(self) -> QAction:
        return self._problem_action

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load_file(self, path: Path) -> None:
        """Replace the editor content with ``path``; any suggestion is dismissed."""

        text = path.read_text(encoding="utf-8")
        self._orchestrator.cancel()
        self._editor.set_document_text(text)
        self._current_path = path
        self._refresh_window_title()
        self.update_status(f"Opened {path.name}")

    def set_problem(self, problem: str) -> None:
        """Switch the problem statement sent with every request and persist it."""

        self._orchestrator.problem = problem
        self._problem_label.setText(problem)
        self._context.settings = replace(self._context.settings, problem=problem)
        self._persist_settings()

    def trigger(self, action: ShortcutAction) -> asyncio.Task[Any] | None:
        """Run ``action``; async actions are scheduled on the running loop."""

        LOGGER.debug("Shortcut action: %s", action)
        if action == "generate":
            if not self._orchestrator.is_suggesting:
                self.update_status("Generating suggestion…")
            return self._run_coroutine(self._orchestrator.generate())
        if action == "toggle":
            return self._run_coroutine(self._orchestrator.toggle_visibility())
        if action == "next_step":
            self.update_status("Generating next step…")
            return self._run_coroutine(self._orchestrator.extend_with_next_step())
        if action == "accept":
            self._orchestrator.accept()
        elif action == "cancel":
            self._orchestrator.cancel()
        return None

    def update_status(self, message: str, *, timeout_ms: int = 0) -> None:
        """Update the window status bar and keep local bookkeeping."""

        self._last_status_message = message
        self.statusBar().showMessage(message, timeout_ms)
        LOGGER.debug("Status: %s", message)

    # ------------------------------------------------------------------
    # Qt overrides
    # ------------------------------------------------------------------
    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt naming
        for task in list(self._tasks):
            task.cancel()
        self._orchestrator.cancel()
        super().closeEvent(event)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _install_menu(self) -> QAction:
        problem_action = QAction("Set &Problem…", self)
        problem_action.setStatusTip("Change the problem statement used for suggestions")
        problem_action.triggered.connect(self._prompt_for_problem)
        menu = self.menuBar().addMenu("&Session")
        menu.addAction(problem_action)
        return problem_action

    def _prompt_for_problem(self) -> None:
        text, accepted = QInputDialog.getMultiLineText(
            self, "Problem statement", "Describe the task to solve:", self._orchestrator.problem
        )
        problem = text.strip()
        if accepted and problem and problem != self._orchestrator.problem:
            self.set_problem(problem)
            self.update_status("Problem statement updated", timeout_ms=4000)

    def _persist_settings(self) -> None:
        store = self._context.settings_store
        if store is None:
            return
        try:
            store.save(self._context.settings)
        except OSError as exc:
            LOGGER.warning("Failed to persist settings: %s", exc)

    def _handle_key_press(self, event: QKeyEvent) -> bool:
        action = resolve_shortcut(event.key(), event.modifiers())
        if action is None:
            return False
        # Tab and Escape keep their editor meaning when nothing is shown.
        if action in ("accept", "cancel") and not self._orchestrator.is_suggesting:
            return False
        self.trigger(action)
        return True

    def _run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_finished)
        return task

    def _on_task_finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Ghost action failed", exc_info=exc)
            self.update_status("Suggestion failed; see log for details")

    def _subscribe_status_events(self) -> None:
        self._bus.subscribe(SuggestionShown, self._on_suggestion_shown)
        self._bus.subscribe(SuggestionExtended, self._on_suggestion_extended)
        self._bus.subscribe(SuggestionAccepted, self._on_suggestion_accepted)
        self._bus.subscribe(SuggestionHidden, self._on_suggestion_hidden)
        self._bus.subscribe(SuggestionRequestFailed, self._on_request_failed)
        self._bus.subscribe(StaleResponseDiscarded, self._on_stale_response)

    def _on_suggestion_shown(self, event: SuggestionShown) -> None:
        source = "cached" if event.from_cache else "new"
        self.update_status(f"Showing {source} suggestion ({event.line_count} line(s))")

    def _on_suggestion_extended(self, event: SuggestionExtended) -> None:
        self.update_status(f"Added {event.added_lines} line(s); {event.total_lines} pending")

    def _on_suggestion_accepted(self, event: SuggestionAccepted) -> None:
        self.update_status(f"Inserted {event.inserted_chars} character(s)", timeout_ms=4000)

    def _on_suggestion_hidden(self, event: SuggestionHidden) -> None:
        self.update_status(IDLE_HINT)

    def _on_request_failed(self, event: SuggestionRequestFailed) -> None:
        # Failures stay silent for the user; the orchestrator already logged them.
        LOGGER.debug("No %s suggestion shown (%s)", event.mode, event.reason)
        self.update_status(IDLE_HINT)

    def _on_stale_response(self, event: StaleResponseDiscarded) -> None:
        LOGGER.debug(
            "Window ignored stale response %d (now %d)", event.generation, event.current_generation
        )

    def _refresh_window_title(self) -> None:
        name = self._current_path.name if self._current_path is not None else "Untitled"
        self.setWindowTitle(f"{name} - {WINDOW_APP_NAME}")
