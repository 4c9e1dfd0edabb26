"""Profile resolution for entry contexts.

Profiles are pushed into both the context record and its document handle.
Contexts without a handle are skipped silently, and profile sets only ever
grow; a feed that has already been parsed must be cleared before new
profiles take effect.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .contexts import EntryContext
from .engine import MicroformatEngine
from .errors import UnknownVocabularyError

__all__ = [
    "target_contexts",
    "add_profile",
    "resolve_profile_names",
    "assume_profile",
    "assume_all_profiles",
]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")


def target_contexts(
    contexts: Iterable[EntryContext], entry_id: Optional[str] = None
) -> Iterator[EntryContext]:
    """Yield contexts with a document handle, optionally restricted to ``entry_id``."""

    for context in contexts:
        if context.document is None:
            continue
        if entry_id is not None and context.entry_id != entry_id:
            continue
        yield context


def add_profile(
    contexts: Iterable[EntryContext], uris: Sequence[str], entry_id: Optional[str] = None
) -> int:
    """Declare ``uris`` on the targeted contexts and return how many were touched."""

    touched = 0
    for context in target_contexts(contexts, entry_id):
        context.add_profiles(uris)
        context.document.add_profile(*uris)
        touched += 1
    LOGGER.debug(
        "profiles added",
        extra={
            "stage": "profile",
            "entry_id": entry_id,
            "extra_fields": {"profiles": list(uris), "contexts": touched},
        },
    )
    return touched


def resolve_profile_names(
    engine: MicroformatEngine, names: Iterable[str]
) -> Tuple[List[str], List[str]]:
    """Split ``names`` into canonical profile URIs and unknown names.

    Examples:
        >>> from FeedsToKG.AtomMicroformats.engine import Mf2Engine
        >>> resolve_profile_names(Mf2Engine(), ["hCard", "Nope"])
        (['http://microformats.org/profile/hcard'], ['Nope'])
    """

    uris: List[str] = []
    unknown: List[str] = []
    for name in names:
        uri = engine.canonical_profile(name)
        if uri is None:
            unknown.append(name)
        elif uri not in uris:
            uris.append(uri)
    return uris, unknown


def assume_profile(
    contexts: Sequence[EntryContext],
    engine: MicroformatEngine,
    names: Iterable[str],
    entry_id: Optional[str] = None,
) -> int:
    """Declare vocabularies by name.

    Every known name is applied before unknown names are reported.

    Raises:
        UnknownVocabularyError: If any name has no profile mapping.
    """

    uris, unknown = resolve_profile_names(engine, names)
    touched = add_profile(contexts, uris, entry_id) if uris else 0
    if unknown:
        raise UnknownVocabularyError(unknown)
    return touched


def assume_all_profiles(
    contexts: Sequence[EntryContext],
    engine: MicroformatEngine,
    entry_id: Optional[str] = None,
) -> int:
    """Declare the canonical profile of every vocabulary the engine knows."""

    uris, _ = resolve_profile_names(engine, engine.formats())
    return add_profile(contexts, uris, entry_id)
