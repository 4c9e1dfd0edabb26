# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.vocabularies",
#   "purpose": "Closed registry of microformat vocabularies and their profile URIs",
#   "sections": [
#     {
#       "id": "vocabulary",
#       "name": "Vocabulary",
#       "anchor": "class-vocabulary",
#       "kind": "class"
#     },
#     {
#       "id": "vocabularyregistry",
#       "name": "VocabularyRegistry",
#       "anchor": "class-vocabularyregistry",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Microformat vocabularies known to the default engine.

Every vocabulary has a stable, case-sensitive name (``hCard``, ``RelTag``),
one or more profile URIs, and the mf2 root types or ``rel`` values it claims.
A vocabulary is only extracted from a document when one of its profile URIs
has been declared; the first URI is the canonical one pushed by
``assume_profile``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rdflib import Namespace, URIRef

from .namespaces import AWOL, GEO, ICAL, REV, SCHEMA, VCARD, XFN, XHV

__all__ = [
    "Vocabulary",
    "VocabularyRegistry",
    "VOCABULARIES",
    "DEFAULT_REGISTRY",
]


@dataclass(frozen=True, eq=False)
class Vocabulary:
    """One microformat vocabulary.

    Attributes:
        name: Stable vocabulary name used as the key of ``all_objects``.
        profiles: Profile URIs that switch the vocabulary on; first is canonical.
        root_types: mf2 root class names (``h-card``) claimed by the vocabulary.
        rels: ``rel`` values claimed by link-based vocabularies.
        rdf_class: Class asserted for objects of this vocabulary.
        namespace: Namespace for property predicates.
        aliases: mf2 property name to predicate local name overrides.
    """

    name: str
    profiles: Tuple[str, ...]
    namespace: Namespace
    root_types: Tuple[str, ...] = ()
    rels: Tuple[str, ...] = ()
    rdf_class: Optional[URIRef] = None
    aliases: Mapping[str, str] = field(default_factory=dict)

    @property
    def canonical_profile(self) -> str:
        return self.profiles[0]

    @property
    def is_rel(self) -> bool:
        return bool(self.rels)

    def predicate(self, prop: str) -> URIRef:
        return self.namespace[self.aliases.get(prop, prop)]


_HCARD_PROFILES = ("http://microformats.org/profile/hcard", "http://purl.org/uF/hCard/1.0/")
_HATOM_PROFILES = ("http://microformats.org/profile/hatom", "http://purl.org/uF/hAtom/0.1/")

_XFN_RELS = (
    "contact",
    "acquaintance",
    "friend",
    "met",
    "co-worker",
    "colleague",
    "co-resident",
    "neighbor",
    "child",
    "parent",
    "sibling",
    "spouse",
    "kin",
    "muse",
    "crush",
    "date",
    "sweetheart",
    "me",
)

VOCABULARIES: Tuple[Vocabulary, ...] = (
    Vocabulary(
        name="hCard",
        profiles=_HCARD_PROFILES,
        namespace=VCARD,
        root_types=("h-card",),
        rdf_class=VCARD.VCard,
        aliases={"name": "fn"},
    ),
    Vocabulary(
        name="adr",
        profiles=("http://purl.org/uF/adr/0.9/",) + _HCARD_PROFILES,
        namespace=VCARD,
        root_types=("h-adr",),
        rdf_class=VCARD.Address,
    ),
    Vocabulary(
        name="geo",
        profiles=("http://purl.org/uF/geo/0.9/",) + _HCARD_PROFILES,
        namespace=GEO,
        root_types=("h-geo",),
        rdf_class=GEO.Point,
        aliases={"latitude": "lat", "longitude": "long"},
    ),
    Vocabulary(
        name="hCalendar",
        profiles=("http://microformats.org/profile/hcalendar", "http://purl.org/uF/hCalendar/1.1/"),
        namespace=ICAL,
        root_types=("h-event",),
        rdf_class=ICAL.Vevent,
        aliases={"name": "summary", "start": "dtstart", "end": "dtend"},
    ),
    Vocabulary(
        name="hAtom",
        profiles=_HATOM_PROFILES,
        namespace=AWOL,
        root_types=("h-feed",),
        rdf_class=AWOL.Feed,
        aliases={"name": "title"},
    ),
    Vocabulary(
        name="hEntry",
        profiles=_HATOM_PROFILES,
        namespace=AWOL,
        root_types=("h-entry",),
        rdf_class=AWOL.Entry,
        aliases={"name": "title"},
    ),
    Vocabulary(
        name="hReview",
        profiles=("http://microformats.org/profile/hreview", "http://purl.org/uF/hReview/0.3/"),
        namespace=REV,
        root_types=("h-review", "h-review-aggregate"),
        rdf_class=REV.Review,
        aliases={"name": "title", "content": "text"},
    ),
    Vocabulary(
        name="hRecipe",
        profiles=("http://microformats.org/profile/hrecipe",),
        namespace=SCHEMA,
        root_types=("h-recipe",),
        rdf_class=SCHEMA.Recipe,
    ),
    Vocabulary(
        name="hProduct",
        profiles=("http://microformats.org/profile/hproduct",),
        namespace=SCHEMA,
        root_types=("h-product",),
        rdf_class=SCHEMA.Product,
    ),
    Vocabulary(
        name="hResume",
        profiles=("http://microformats.org/profile/hresume",),
        namespace=SCHEMA,
        root_types=("h-resume",),
        rdf_class=SCHEMA.Person,
        aliases={"summary": "description", "contact": "contactPoint", "skill": "knowsAbout"},
    ),
    Vocabulary(
        name="RelTag",
        profiles=("http://microformats.org/profile/rel-tag", "http://purl.org/uF/rel-tag/1.0/"),
        namespace=XHV,
        rels=("tag",),
    ),
    Vocabulary(
        name="RelLicense",
        profiles=(
            "http://microformats.org/profile/rel-license",
            "http://purl.org/uF/rel-license/1.0/",
        ),
        namespace=XHV,
        rels=("license",),
    ),
    Vocabulary(
        name="XFN",
        profiles=("http://gmpg.org/xfn/11", "http://gmpg.org/xfn/1"),
        namespace=XFN,
        rels=_XFN_RELS,
    ),
)


class VocabularyRegistry:
    """Name-keyed lookup over a fixed set of vocabularies."""

    def __init__(self, vocabularies: Iterable[Vocabulary] = VOCABULARIES) -> None:
        self._by_name: Dict[str, Vocabulary] = {}
        self._by_root: Dict[str, Vocabulary] = {}
        self._by_rel: Dict[str, Vocabulary] = {}
        for vocabulary in vocabularies:
            if vocabulary.name in self._by_name:
                raise ValueError(f"duplicate vocabulary name: {vocabulary.name}")
            self._by_name[vocabulary.name] = vocabulary
            for root in vocabulary.root_types:
                self._by_root.setdefault(root, vocabulary)
            for rel in vocabulary.rels:
                self._by_rel.setdefault(rel, vocabulary)

    def names(self) -> Tuple[str, ...]:
        return tuple(self._by_name)

    def get(self, name: str) -> Optional[Vocabulary]:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self._by_name.values())

    def for_types(self, types: Sequence[str]) -> Optional[Vocabulary]:
        """Return the vocabulary claiming the first registered type in ``types``."""

        for root in types:
            vocabulary = self._by_root.get(root)
            if vocabulary is not None:
                return vocabulary
        return None

    def for_rel(self, rel: str) -> Optional[Vocabulary]:
        return self._by_rel.get(rel)

    def enabled(self, profiles: Iterable[str]) -> List[Vocabulary]:
        """Vocabularies switched on by at least one of ``profiles``."""

        declared = set(profiles)
        return [vocab for vocab in self._by_name.values() if declared.intersection(vocab.profiles)]


DEFAULT_REGISTRY = VocabularyRegistry()
