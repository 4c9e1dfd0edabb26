# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats",
#   "purpose": "Package initialization for FeedsToKG.AtomMicroformats",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for extracting microformats from Atom feed entries.

This facade exposes feed construction, the engine and ingestor contracts
for substituting collaborators, and the error hierarchy callers react to.
"""

from __future__ import annotations

from .contexts import EntryContext
from .engine import DocumentHandle, MicroformatEngine, MicroformatObject, Mf2Engine
from .errors import (
    AtomMicroformatsError,
    ContextSynthesisError,
    IngestionError,
    UnknownVocabularyError,
)
from .feed import Feed, OutputOptions, ParseState, new_feed
from .ingestion import AtomOwlIngestor, StructuralIngestor
from .settings import AtomMicroformatsSettings, get_settings
from .vocabularies import DEFAULT_REGISTRY, Vocabulary, VocabularyRegistry

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AtomMicroformatsError",
    "AtomMicroformatsSettings",
    "AtomOwlIngestor",
    "ContextSynthesisError",
    "DEFAULT_REGISTRY",
    "DocumentHandle",
    "EntryContext",
    "Feed",
    "IngestionError",
    "Mf2Engine",
    "MicroformatEngine",
    "MicroformatObject",
    "OutputOptions",
    "ParseState",
    "StructuralIngestor",
    "UnknownVocabularyError",
    "Vocabulary",
    "VocabularyRegistry",
    "get_settings",
    "new_feed",
]
