# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.contexts",
#   "purpose": "Per-entry context records discovered from the AtomOWL graph",
#   "sections": [
#     {
#       "id": "entrycontext",
#       "name": "EntryContext",
#       "anchor": "class-entrycontext",
#       "kind": "class"
#     },
#     {
#       "id": "fold-rows",
#       "name": "fold_rows",
#       "anchor": "function-fold-rows",
#       "kind": "function"
#     },
#     {
#       "id": "extract-contexts",
#       "name": "extract_contexts",
#       "anchor": "function-extract-contexts",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Entry context discovery.

Each Atom entry carrying a ``<content>`` block becomes one
:class:`EntryContext`. Contexts are built from a single SPARQL query over the
structural graph. Because the optional parts of that query multiply rows (one
row per profile, per duplicate language, and so on) the rows are folded with
two rules: scalar fields keep the first value seen, while profiles accumulate
in discovery order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from rdflib import Graph
from rdflib.plugins.sparql import prepareQuery

from .namespaces import AWOL, IANA

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .engine import DocumentHandle, MicroformatObject

__all__ = [
    "HTML_MEDIA_TYPES",
    "EntryContext",
    "media_type_of",
    "fold_rows",
    "extract_contexts",
]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")

HTML_MEDIA_TYPES = frozenset({"text/html", "application/xhtml+xml"})

_CONTEXT_QUERY = prepareQuery(
    """
    SELECT ?entry ?entryid ?entrylink ?contenttype ?contentbody ?contentbase ?contentlang ?profile
    WHERE
    {
        ?entry a awol:Entry ;
            awol:content ?content ;
            awol:id ?entryid .
        ?content a awol:Content ;
            awol:type ?contenttype ;
            awol:body ?contentbody .
        OPTIONAL { ?entry iana:self ?entrylink . }
        OPTIONAL { ?content awol:base ?contentbase . }
        OPTIONAL { ?content awol:lang ?contentlang . }
        OPTIONAL
        {
            { ?feed awol:entry ?entry ; iana:profile ?profile . }
            UNION { ?entry iana:profile ?profile . }
        }
    }
    """,
    initNs={"awol": AWOL, "iana": IANA},
)

# (context attribute, query variable) pairs folded with first-wins semantics.
_SCALAR_FIELDS = (
    ("content_body", "contentbody"),
    ("content_type", "contenttype"),
    ("content_lang", "contentlang"),
    ("content_base", "contentbase"),
    ("entry_link", "entrylink"),
)


def media_type_of(content_type: str) -> str:
    """Return the lowercase media type of ``content_type`` without parameters.

    Examples:
        >>> media_type_of("Text/HTML; charset=utf-8")
        'text/html'
    """

    return content_type.split(";", 1)[0].strip().lower()


@dataclass
class EntryContext:
    """Everything the pipeline knows about one feed entry.

    Attributes:
        entry_id: Feed-scoped ``atom:id`` of the entry.
        content_type: Media type of the entry content.
        content_body: Raw content text (unescaped HTML, serialised XHTML, or
            plain text).
        entry_link: ``rel="self"`` link, used as document identity when set.
        content_base: ``xml:base`` in scope for the content, if any.
        content_lang: ``xml:lang`` in scope for the content, if any.
        profiles: Profile URIs declared for the entry or its feed.
        document: Per-entry document handle, only for HTML-family content.
        objects: Materialised objects keyed by vocabulary, ``None`` until
            the feed is parsed.
    """

    entry_id: str
    content_type: str
    content_body: str
    entry_link: Optional[str] = None
    content_base: Optional[str] = None
    content_lang: Optional[str] = None
    profiles: List[str] = field(default_factory=list)
    document: Optional["DocumentHandle"] = field(default=None, repr=False, compare=False)
    objects: Optional[Dict[str, List["MicroformatObject"]]] = field(
        default=None, repr=False, compare=False
    )

    @property
    def identity(self) -> str:
        """Resource that facts extracted from this entry are attributed to."""
        return self.entry_link or self.entry_id

    @property
    def media_type(self) -> str:
        return media_type_of(self.content_type)

    @property
    def is_html(self) -> bool:
        return self.media_type in HTML_MEDIA_TYPES

    def effective_base(self, feed_base: str) -> str:
        """Base URI for resolving relative references inside the content."""
        return self.content_base or feed_base

    def add_profiles(self, uris: Iterable[str]) -> List[str]:
        """Append ``uris`` not already present and return the ones appended."""

        added: List[str] = []
        for uri in uris:
            if uri and uri not in self.profiles:
                self.profiles.append(uri)
                added.append(uri)
        return added


def _lexical(term: Any) -> Optional[str]:
    if term is None:
        return None
    return str(term)


def _release_shared_links(contexts: List[EntryContext]) -> None:
    """Drop ``entry_link`` where it would give two contexts the same identity.

    A link survives only if no other entry uses it as its id and no earlier
    entry already claimed it. The losing entry is identified by its own id.
    """

    entry_ids = {context.entry_id for context in contexts}
    claimed: set = set()
    for context in contexts:
        link = context.entry_link
        if link is None or link == context.entry_id:
            continue
        if link in claimed or link in entry_ids:
            LOGGER.warning(
                "self link shared by several entries, falling back to the entry id",
                extra={
                    "stage": "extract",
                    "entry_id": context.entry_id,
                    "extra_fields": {"entry_link": link},
                },
            )
            context.entry_link = None
            continue
        claimed.add(link)


def fold_rows(rows: Iterable[Mapping[str, Any]]) -> List[EntryContext]:
    """Fold query rows into contexts, one per distinct entry id.

    Args:
        rows: Mappings from query variable name to term. Unbound optional
            variables may be missing or ``None``.

    Returns:
        Contexts in first-seen order. Entries lacking a content body or type
        are dropped. A ``self`` link already used as another entry's
        identity is dropped so every context keeps a distinct identity.

    Examples:
        >>> rows = [
        ...     {"entryid": "e1", "contenttype": "text/html", "contentbody": "<p/>", "profile": "p1"},
        ...     {"entryid": "e1", "contenttype": "text/plain", "contentbody": "<p/>", "profile": "p2"},
        ... ]
        >>> [(c.content_type, c.profiles) for c in fold_rows(rows)]
        [('text/html', ['p1', 'p2'])]
    """

    pending: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        entry_id = _lexical(row.get("entryid"))
        if entry_id is not None:
            entry_id = entry_id.strip()
        if not entry_id:
            LOGGER.debug("skipping entry without an id", extra={"stage": "extract"})
            continue

        record = pending.setdefault(entry_id, {"profiles": []})
        for attribute, variable in _SCALAR_FIELDS:
            if attribute in record:
                continue
            value = _lexical(row.get(variable))
            if value is not None:
                record[attribute] = value

        profile = _lexical(row.get("profile"))
        if profile and profile not in record["profiles"]:
            record["profiles"].append(profile)

    contexts: List[EntryContext] = []
    for entry_id, record in pending.items():
        if "content_body" not in record or "content_type" not in record:
            continue
        contexts.append(EntryContext(entry_id=entry_id, **record))
    _release_shared_links(contexts)
    return contexts


def extract_contexts(graph: Graph) -> List[EntryContext]:
    """Query ``graph`` for entries with content and return their contexts."""

    result = graph.query(_CONTEXT_QUERY)
    contexts = fold_rows(row.asdict() for row in result)
    LOGGER.debug(
        "entry contexts extracted",
        extra={"stage": "extract", "extra_fields": {"contexts": len(contexts)}},
    )
    return contexts
