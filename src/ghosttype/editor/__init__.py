"""Editor-side pieces: positions, the buffer capability protocol and the Qt editor."""

from .buffer import EditorBuffer, TextBuffer
from .document_model import Position

__all__ = ["EditorBuffer", "TextBuffer", "Position"]
