# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.errors",
#   "purpose": "Define the exception hierarchy used across feed ingestion, synthesis, and profile resolution",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "ingestion", "name": "Ingestion Errors", "anchor": "ING", "kind": "api"},
#     {"id": "synthesis", "name": "Context Synthesis Errors", "anchor": "SYN", "kind": "api"},
#     {"id": "profiles", "name": "Profile Resolution Errors", "anchor": "PRO", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across feed ingestion and microformat extraction.

The pipeline spans Atom parsing, per-entry document synthesis, and vocabulary
profile management. Only :class:`IngestionError` is fatal for a feed; the
other failures are scoped to a single entry or a single profile call so that
callers can keep working with the rest of the feed.
"""

from __future__ import annotations

from typing import Iterable, Optional

__all__ = [
    "AtomMicroformatsError",
    "IngestionError",
    "ContextSynthesisError",
    "UnknownVocabularyError",
]


class AtomMicroformatsError(RuntimeError):
    """Base exception for Atom microformat extraction failures."""


class IngestionError(AtomMicroformatsError):
    """Raised when the feed source cannot be turned into a structural graph."""


class ContextSynthesisError(AtomMicroformatsError):
    """Raised when one entry's content cannot become a parseable document."""

    def __init__(self, message: str, *, entry_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.entry_id = entry_id


class UnknownVocabularyError(AtomMicroformatsError):
    """Raised when symbolic vocabulary names have no known profile mapping.

    The error is raised after every known name in the same call has been
    applied, so ``names`` lists only the names that were skipped.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(names)
        joined = ", ".join(self.names)
        super().__init__(f"unknown microformat vocabulary: {joined}")
