"""Inline ghost-text completions for code editors."""

__version__ = "0.1.0"
