"""Qt window wiring the ghost orchestrator to the editor."""

from .ghost_window import GhostWindow, WindowContext, resolve_shortcut

__all__ = ["GhostWindow", "WindowContext", "resolve_shortcut"]
