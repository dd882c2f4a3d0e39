"""Service layer helpers (settings persistence)."""

from .settings import GhostColors, SecretVault, Settings, SettingsStore

__all__ = ["GhostColors", "SecretVault", "Settings", "SettingsStore"]
