# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.feed",
#   "purpose": "Feed facade: construction, profiles, materialisation, and retrieval",
#   "sections": [
#     {
#       "id": "parsestate",
#       "name": "ParseState",
#       "anchor": "class-parsestate",
#       "kind": "class"
#     },
#     {
#       "id": "outputoptions",
#       "name": "OutputOptions",
#       "anchor": "class-outputoptions",
#       "kind": "class"
#     },
#     {
#       "id": "feed",
#       "name": "Feed",
#       "anchor": "class-feed",
#       "kind": "class"
#     },
#     {
#       "id": "new-feed",
#       "name": "new_feed",
#       "anchor": "function-new-feed",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Microformats embedded in Atom feed entries.

A :class:`Feed` corresponds to one Atom document. Microformats are looked for
in each entry's ``<content>`` (never ``<summary>``), with every entry parsed
as if it were its own page. Profiles declared with ``<link rel="profile">``
on an entry or on the whole feed decide which vocabularies are recognised;
because many feeds omit them, the profile methods let callers assume
vocabularies explicitly.

Example:
    >>> feed = new_feed(xml, "http://example.com/feed.atom")  # doctest: +SKIP
    >>> feed.assume_profile("hCard", "hCalendar")  # doctest: +SKIP
    >>> print(feed.to_json(pretty=True))  # doctest: +SKIP
    >>> dataset = feed.model()  # doctest: +SKIP
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from rdflib import Dataset, Graph

from . import profiles as profile_ops
from .contexts import EntryContext, extract_contexts
from .documents import prepare_contexts
from .engine import MicroformatEngine, MicroformatObject, Mf2Engine
from .errors import IngestionError
from .ingestion import AtomOwlIngestor, FeedSource, StructuralIngestor
from .merge import merge_contexts
from .settings import AtomMicroformatsSettings, get_settings

__all__ = ["ParseState", "OutputOptions", "Feed", "new_feed"]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")


class ParseState(str, Enum):
    """Materialisation state of a feed."""

    UNPARSED = "unparsed"
    PARSED = "parsed"


class OutputOptions(BaseModel):
    """Options accepted by the JSON and model output methods.

    ``include_structural_facts`` only affects models; ``pretty``,
    ``canonical`` and ``utf8`` only affect JSON.
    """

    model_config = ConfigDict(extra="forbid")

    include_structural_facts: Optional[bool] = None
    pretty: bool = False
    canonical: bool = False
    utf8: bool = False


def _json_default(value: Any) -> Any:
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Feed:
    """Microformat view over one Atom feed."""

    def __init__(
        self,
        graph: Graph,
        base_uri: str,
        contexts: List[EntryContext],
        *,
        engine: MicroformatEngine,
        settings: Optional[AtomMicroformatsSettings] = None,
    ) -> None:
        self.graph = graph
        self.base_uri = base_uri
        self.engine = engine
        self.settings = settings or get_settings()
        self._contexts = contexts
        self.state = ParseState.UNPARSED

    @classmethod
    def from_source(
        cls,
        source: FeedSource,
        base_uri: str,
        *,
        ingestor: Optional[StructuralIngestor] = None,
        engine: Optional[MicroformatEngine] = None,
        settings: Optional[AtomMicroformatsSettings] = None,
    ) -> "Feed":
        """Ingest ``source`` and prepare one document per HTML entry.

        Args:
            source: Atom XML text/bytes or a parsed ElementTree document.
            base_uri: Feed URL, used to resolve relative references.
            ingestor: Structural ingestor; defaults to :class:`AtomOwlIngestor`.
            engine: Microformat engine; defaults to :class:`Mf2Engine`.
            settings: Explicit settings; defaults to :func:`get_settings`.

        Returns:
            Feed ready for profile configuration and retrieval.

        Raises:
            IngestionError: If the structural graph cannot be produced.
            UnknownVocabularyError: If ``settings.assume_profiles`` names an
                unknown vocabulary.
        """

        settings = settings or get_settings()
        ingestor = ingestor or AtomOwlIngestor()
        engine = engine or Mf2Engine(
            html_parser=settings.html_parser, strict_xhtml=settings.strict_xhtml
        )

        try:
            graph = ingestor.ingest(source, base_uri)
        except IngestionError:
            raise
        except Exception as exc:
            raise IngestionError(f"feed ingestion failed: {exc}") from exc

        contexts = extract_contexts(graph)
        prepare_contexts(contexts, base_uri, engine)
        feed = cls(graph, base_uri, contexts, engine=engine, settings=settings)
        LOGGER.info(
            "feed prepared",
            extra={
                "stage": "ingest",
                "extra_fields": {
                    "base_uri": base_uri,
                    "contexts": len(contexts),
                    "documents": sum(1 for context in contexts if context.document is not None),
                },
            },
        )
        if settings.assume_profiles:
            feed.assume_profile(*settings.assume_profiles)
        return feed

    @property
    def contexts(self) -> Tuple[EntryContext, ...]:
        """Every entry context, including those without a document."""
        return tuple(self._contexts)

    def entry_ids(self) -> List[str]:
        return [context.entry_id for context in self._contexts]

    def get_context(self, entry_id: str) -> Optional[EntryContext]:
        for context in self._contexts:
            if context.entry_id == entry_id:
                return context
        return None

    # --- Profile management ---

    def add_profile(self, *uris: str) -> "Feed":
        """Treat ``uris`` as if declared by every entry."""
        profile_ops.add_profile(self._contexts, uris)
        return self

    def entry_add_profile(self, entry_id: str, *uris: str) -> "Feed":
        profile_ops.add_profile(self._contexts, uris, entry_id)
        return self

    def assume_profile(self, *names: str) -> "Feed":
        """Assume vocabularies by name, e.g. ``assume_profile("hCard", "adr")``.

        Names are case-sensitive. Known names are applied even when others
        are unknown.

        Raises:
            UnknownVocabularyError: Listing the names with no mapping.
        """
        profile_ops.assume_profile(self._contexts, self.engine, names)
        return self

    def entry_assume_profile(self, entry_id: str, *names: str) -> "Feed":
        profile_ops.assume_profile(self._contexts, self.engine, names, entry_id)
        return self

    def assume_all_profiles(self) -> "Feed":
        profile_ops.assume_all_profiles(self._contexts, self.engine)
        return self

    def entry_assume_all_profiles(self, entry_id: str) -> "Feed":
        profile_ops.assume_all_profiles(self._contexts, self.engine, entry_id)
        return self

    # --- Materialisation ---

    def parse_microformats(self) -> "Feed":
        """Extract objects for every entry document; a no-op once parsed."""

        if self.state is ParseState.PARSED:
            return self
        for context in profile_ops.target_contexts(self._contexts):
            if context.objects is not None:
                continue
            try:
                context.objects = context.document.all_objects()
            except Exception as exc:  # engine failures are unpredictable
                context.objects = {name: [] for name in self.engine.formats()}
                LOGGER.warning(
                    "microformat extraction failed",
                    extra={"stage": "parse", "entry_id": context.entry_id, "error": str(exc)},
                )
        self.state = ParseState.PARSED
        return self

    def clear_microformats(self) -> "Feed":
        """Forget extracted objects so new profiles take effect on the next parse."""

        for context in self._contexts:
            context.objects = None
            if context.document is not None:
                context.document.clear_microformats()
        self.state = ParseState.UNPARSED
        return self

    # --- Retrieval ---

    def objects(self, vocabulary: str, entry_id: Optional[str] = None) -> List[MicroformatObject]:
        """Objects of ``vocabulary`` (e.g. ``"hCard"``, ``"RelTag"``) across entries."""

        self.parse_microformats()
        found: List[MicroformatObject] = []
        for context in profile_ops.target_contexts(self._contexts, entry_id):
            found.extend((context.objects or {}).get(vocabulary, ()))
        return found

    def entry_objects(self, entry_id: str, vocabulary: str) -> List[MicroformatObject]:
        return self.objects(vocabulary, entry_id)

    def all_objects(self, entry_id: Optional[str] = None) -> Dict[str, List[MicroformatObject]]:
        """Mapping of every known vocabulary name to its objects (possibly empty)."""

        return {name: self.objects(name, entry_id) for name in self.engine.formats()}

    def entry_all_objects(self, entry_id: str) -> Dict[str, List[MicroformatObject]]:
        return self.all_objects(entry_id)

    def to_json(self, entry_id: Optional[str] = None, **options: Any) -> Union[str, bytes]:
        """Serialise :meth:`all_objects` as JSON.

        Keyword Args:
            pretty: Indent the output.
            canonical: Sort object keys.
            utf8: Return UTF-8 encoded bytes instead of text.
        """

        opts = OutputOptions(**options)
        text = json.dumps(
            self.all_objects(entry_id),
            default=_json_default,
            indent=2 if opts.pretty else None,
            sort_keys=opts.canonical,
            ensure_ascii=False,
        )
        return text.encode("utf-8") if opts.utf8 else text

    def entry_json(self, entry_id: str, **options: Any) -> Union[str, bytes]:
        return self.to_json(entry_id, **options)

    def model(self, **options: Any) -> Dataset:
        """Return a new dataset whose quads trace each fact to its entry.

        Keyword Args:
            include_structural_facts: Also add the AtomOWL graph of the whole
                feed to the default graph.
        """

        dataset = Dataset()
        self.add_to_model(dataset, **options)
        return dataset

    def entry_model(self, entry_id: str, **options: Any) -> Dataset:
        dataset = Dataset()
        self.entry_add_to_model(entry_id, dataset, **options)
        return dataset

    def add_to_model(self, dataset: Dataset, **options: Any) -> "Feed":
        return self._merge(dataset, None, options)

    def entry_add_to_model(self, entry_id: str, dataset: Dataset, **options: Any) -> "Feed":
        return self._merge(dataset, entry_id, options)

    def _merge(self, dataset: Dataset, entry_id: Optional[str], options: Dict[str, Any]) -> "Feed":
        opts = OutputOptions(**options)
        include = opts.include_structural_facts
        if include is None:
            include = self.settings.include_structural_facts
        self.parse_microformats()
        merge_contexts(
            dataset,
            self._contexts,
            self.graph,
            entry_id=entry_id,
            include_structural_facts=include,
        )
        return self

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base_uri={self.base_uri!r}, "
            f"contexts={len(self._contexts)}, state={self.state.value})"
        )


def new_feed(
    source: FeedSource,
    base_uri: str,
    *,
    ingestor: Optional[StructuralIngestor] = None,
    engine: Optional[MicroformatEngine] = None,
    settings: Optional[AtomMicroformatsSettings] = None,
) -> Feed:
    """Construct a :class:`Feed`; see :meth:`Feed.from_source`."""

    return Feed.from_source(source, base_uri, ingestor=ingestor, engine=engine, settings=settings)
