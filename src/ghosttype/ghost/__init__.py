"""Ghost-text core: suggestion state, reconciliation, cache and overlap trimming.

The orchestrator lives in :mod:`ghosttype.ghost.orchestrator` and is imported
from there directly.
"""

from .cache import CacheEntry, SuggestionCache
from .overlap import remove_overlap, strip_code_fences
from .reconcile import ReconciliationEngine, reconcile
from .state import GhostSuggestion, SuggestionSnapshot

__all__ = [
    "CacheEntry",
    "SuggestionCache",
    "remove_overlap",
    "strip_code_fences",
    "ReconciliationEngine",
    "reconcile",
    "GhostSuggestion",
    "SuggestionSnapshot",
]
