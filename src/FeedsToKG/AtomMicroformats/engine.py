# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.engine",
#   "purpose": "Microformat engine contracts and the default mf2py-backed implementation",
#   "sections": [
#     {
#       "id": "microformatobject",
#       "name": "MicroformatObject",
#       "anchor": "class-microformatobject",
#       "kind": "class"
#     },
#     {
#       "id": "documenthandle",
#       "name": "DocumentHandle",
#       "anchor": "class-documenthandle",
#       "kind": "class"
#     },
#     {
#       "id": "microformatengine",
#       "name": "MicroformatEngine",
#       "anchor": "class-microformatengine",
#       "kind": "class"
#     },
#     {
#       "id": "mf2document",
#       "name": "Mf2Document",
#       "anchor": "class-mf2document",
#       "kind": "class"
#     },
#     {
#       "id": "mf2engine",
#       "name": "Mf2Engine",
#       "anchor": "class-mf2engine",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Microformat extraction engine.

The feed pipeline drives extraction through two small contracts:

- :class:`MicroformatEngine` knows the vocabulary registry and turns a
  synthesised HTML document into a :class:`DocumentHandle`.
- :class:`DocumentHandle` owns one entry's document, its declared profiles,
  and a lazily built cache of extracted objects and RDF facts.

:class:`Mf2Engine` is the default implementation. Recognition is delegated to
``mf2py`` (which understands both microformats2 and classic class names such
as ``vcard``/``fn``); this module adds profile gating, typed objects grouped
by vocabulary, and the RDF projection of those objects.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple
from urllib.parse import unquote_plus, urlsplit

import mf2py
from bs4 import BeautifulSoup, FeatureNotFound, ParserRejectedMarkup
from rdflib import BNode, Graph, Literal, URIRef
from rdflib.term import Node

from .contexts import HTML_MEDIA_TYPES, media_type_of
from .errors import ContextSynthesisError
from .ingestion import XHTML_MEDIA_TYPE
from .namespaces import FOAF, RDF, bind_namespaces
from .vocabularies import DEFAULT_REGISTRY, Vocabulary, VocabularyRegistry

__all__ = [
    "MicroformatObject",
    "DocumentHandle",
    "MicroformatEngine",
    "Mf2Document",
    "Mf2Engine",
]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")

_URI_SCHEMES = frozenset({"http", "https", "mailto", "tel", "urn", "tag", "ftp", "data"})


@dataclass(eq=False)
class MicroformatObject:
    """One extracted microformat object.

    Attributes:
        vocabulary: Registered vocabulary name, or ``None`` for root types the
            registry does not know.
        types: mf2 types (``h-card``) or ``rel-*`` markers for link objects.
        properties: mf2 property name to values; nested microformats appear
            as :class:`MicroformatObject` values.
        children: Nested objects that are not property values.
        value: Plain-text value mf2 assigns to nested objects.
        node: Blank node standing for the object in RDF output.
    """

    vocabulary: Optional[str]
    types: Tuple[str, ...]
    properties: Dict[str, List[Any]] = field(default_factory=dict)
    children: List["MicroformatObject"] = field(default_factory=list)
    value: Any = None
    node: BNode = field(default_factory=BNode, repr=False)

    def get(self, prop: str, default: Any = None) -> Any:
        """Return the first value of ``prop`` or ``default``."""
        values = self.properties.get(prop)
        return values[0] if values else default

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serialisable representation in mf2 shape."""

        payload: Dict[str, Any] = {
            "type": list(self.types),
            "properties": {
                name: [_jsonable(value) for value in values]
                for name, values in self.properties.items()
            },
        }
        if self.children:
            payload["children"] = [child.to_json() for child in self.children]
        if self.value is not None:
            payload["value"] = _jsonable(self.value)
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, MicroformatObject):
        return value.to_json()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


class DocumentHandle(Protocol):
    """Per-entry document plus its parser state."""

    document_uri: str

    @property
    def profiles(self) -> Tuple[str, ...]:
        """Profile URIs declared so far."""

    def add_profile(self, *uris: str) -> None:
        """Declare additional profile URIs."""

    def objects(self, vocabulary: str) -> List[MicroformatObject]:
        """Objects of one vocabulary in extraction order."""

    def all_objects(self) -> Dict[str, List[MicroformatObject]]:
        """Objects for every known vocabulary."""

    def clear_microformats(self) -> None:
        """Forget cached extraction results."""

    def graph(self) -> Graph:
        """RDF facts for the extracted objects."""


class MicroformatEngine(Protocol):
    """Factory for document handles backed by a fixed vocabulary registry."""

    def formats(self) -> Tuple[str, ...]:
        """Names of every vocabulary the engine knows."""

    def canonical_profile(self, name: str) -> Optional[str]:
        """Canonical profile URI for vocabulary ``name`` or ``None`` if unknown."""

    def profile_uris(self, name: str) -> Sequence[str]:
        """Every profile URI that enables vocabulary ``name``; empty if unknown."""

    def build_document(self, html: str, base_uri: str, content_type: str) -> DocumentHandle:
        """Wrap a complete HTML document in a handle."""


def _is_mf2_item(value: Any) -> bool:
    return isinstance(value, dict) and "type" in value and "properties" in value


def _convert(item: Dict[str, Any], registry: VocabularyRegistry) -> MicroformatObject:
    types = tuple(item.get("type", ()))
    vocabulary = registry.for_types(types)
    properties: Dict[str, List[Any]] = {}
    for name, values in item.get("properties", {}).items():
        properties[name] = [
            _convert(value, registry) if _is_mf2_item(value) else value for value in values
        ]
    children = [_convert(child, registry) for child in item.get("children", ())]
    return MicroformatObject(
        vocabulary=vocabulary.name if vocabulary else None,
        types=types,
        properties=properties,
        children=children,
        value=item.get("value"),
    )


def _walk(objects: Iterable[MicroformatObject]) -> Iterator[MicroformatObject]:
    """Yield ``objects`` and everything nested in them, depth first."""

    for obj in objects:
        yield obj
        for values in obj.properties.values():
            yield from _walk(value for value in values if isinstance(value, MicroformatObject))
        yield from _walk(obj.children)


def _tag_from_url(url: str) -> str:
    path = urlsplit(url).path.rstrip("/")
    return unquote_plus(path.rsplit("/", 1)[-1])


def _looks_like_uri(value: str) -> bool:
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        scheme = urlsplit(value).scheme
    except ValueError:
        return False
    return scheme.lower() in _URI_SCHEMES


class Mf2Document:
    """Document handle backed by a BeautifulSoup tree and ``mf2py``."""

    def __init__(
        self,
        soup: BeautifulSoup,
        base_uri: str,
        content_type: str,
        *,
        registry: VocabularyRegistry = DEFAULT_REGISTRY,
        html_parser: str = "html.parser",
    ) -> None:
        self.soup = soup
        self.base_uri = base_uri
        self.content_type = content_type
        self.document_uri = base_uri
        self._registry = registry
        self._html_parser = html_parser
        self._profiles: List[str] = []
        self._parsed: Optional[Dict[str, List[MicroformatObject]]] = None
        self._graph: Optional[Graph] = None

    @property
    def profiles(self) -> Tuple[str, ...]:
        return tuple(self._profiles)

    def add_profile(self, *uris: str) -> None:
        for uri in uris:
            if uri and uri not in self._profiles:
                self._profiles.append(uri)

    def objects(self, vocabulary: str) -> List[MicroformatObject]:
        return list(self._materialize().get(vocabulary, ()))

    def all_objects(self) -> Dict[str, List[MicroformatObject]]:
        parsed = self._materialize()
        return {name: list(parsed.get(name, ())) for name in self._registry.names()}

    def clear_microformats(self) -> None:
        self._parsed = None
        self._graph = None

    def graph(self) -> Graph:
        if self._graph is None:
            self._graph = self._build_graph()
        return self._graph

    def _materialize(self) -> Dict[str, List[MicroformatObject]]:
        if self._parsed is not None:
            return self._parsed

        parsed: Dict[str, List[MicroformatObject]] = {name: [] for name in self._registry.names()}
        enabled = self._registry.enabled(self._profiles)
        if enabled:
            enabled_names = {vocabulary.name for vocabulary in enabled}
            data = mf2py.parse(
                doc=copy.copy(self.soup),
                url=self.base_uri,
                html_parser=self._html_parser,
            )
            roots = [_convert(item, self._registry) for item in data.get("items", ())]
            for obj in _walk(roots):
                if obj.vocabulary in enabled_names:
                    parsed[obj.vocabulary].append(obj)
            for obj in self._rel_objects(data, enabled_names):
                parsed[obj.vocabulary].append(obj)

        LOGGER.debug(
            "document materialised",
            extra={
                "stage": "parse",
                "extra_fields": {
                    "document_uri": self.document_uri,
                    "objects": sum(len(values) for values in parsed.values()),
                },
            },
        )
        self._parsed = parsed
        return parsed

    def _rel_objects(self, data: Dict[str, Any], enabled_names: set) -> List[MicroformatObject]:
        rel_urls = data.get("rel-urls", {})
        found: List[MicroformatObject] = []
        for rel, urls in data.get("rels", {}).items():
            vocabulary = self._registry.for_rel(rel)
            if vocabulary is None or vocabulary.name not in enabled_names:
                continue
            for url in urls:
                properties: Dict[str, List[Any]] = {"href": [url], "rel": [rel]}
                text = rel_urls.get(url, {}).get("text")
                if text:
                    properties["text"] = [text]
                if vocabulary.name == "RelTag":
                    properties["tag"] = [_tag_from_url(url)]
                found.append(
                    MicroformatObject(
                        vocabulary=vocabulary.name,
                        types=(f"rel-{rel}",),
                        properties=properties,
                    )
                )
        return found

    def _build_graph(self) -> Graph:
        graph = Graph()
        bind_namespaces(graph)
        document = URIRef(self.document_uri)
        parsed = self._materialize()
        enabled = {name for name, objects in parsed.items() if objects}
        for name, objects in parsed.items():
            vocabulary = self._registry.get(name)
            if vocabulary is None:
                continue
            for obj in objects:
                if vocabulary.is_rel:
                    rel = obj.get("rel")
                    href = obj.get("href")
                    if rel and href:
                        graph.add((document, vocabulary.predicate(rel), URIRef(href)))
                    continue
                graph.add((document, FOAF.topic, obj.node))
                self._add_object(graph, obj, vocabulary, enabled)
        return graph

    def _add_object(
        self, graph: Graph, obj: MicroformatObject, vocabulary: Vocabulary, enabled: set
    ) -> None:
        if vocabulary.rdf_class is not None:
            graph.add((obj.node, RDF.type, vocabulary.rdf_class))
        for prop, values in obj.properties.items():
            predicate = vocabulary.predicate(prop)
            for value in values:
                term = self._term(value, enabled)
                if term is not None:
                    graph.add((obj.node, predicate, term))

    @staticmethod
    def _term(value: Any, enabled: set) -> Optional[Node]:
        if isinstance(value, MicroformatObject):
            if value.vocabulary in enabled:
                return value.node
            value = value.value
        elif isinstance(value, dict):
            value = value.get("value")
        if value is None:
            return None
        text = str(value)
        if _looks_like_uri(text):
            return URIRef(text)
        return Literal(text)


class Mf2Engine:
    """Default :class:`MicroformatEngine` built on ``mf2py`` and BeautifulSoup."""

    def __init__(
        self,
        registry: VocabularyRegistry = DEFAULT_REGISTRY,
        *,
        html_parser: str = "html.parser",
        strict_xhtml: bool = True,
    ) -> None:
        self.registry = registry
        self.html_parser = html_parser
        self.strict_xhtml = strict_xhtml

    def formats(self) -> Tuple[str, ...]:
        return self.registry.names()

    def canonical_profile(self, name: str) -> Optional[str]:
        vocabulary = self.registry.get(name)
        return vocabulary.canonical_profile if vocabulary else None

    def profile_uris(self, name: str) -> Sequence[str]:
        vocabulary = self.registry.get(name)
        return vocabulary.profiles if vocabulary else ()

    def build_document(self, html: str, base_uri: str, content_type: str) -> Mf2Document:
        """Parse ``html`` into a handle.

        Raises:
            ContextSynthesisError: If the media type is not HTML-family, an
                XHTML document is not well-formed, or BeautifulSoup rejects
                the markup.
        """

        media_type = media_type_of(content_type)
        if media_type not in HTML_MEDIA_TYPES:
            raise ContextSynthesisError(f"unsupported content type for microformats: {content_type}")
        if media_type == XHTML_MEDIA_TYPE and self.strict_xhtml:
            try:
                ET.fromstring(html)
            except ET.ParseError as exc:
                raise ContextSynthesisError(f"XHTML content is not well-formed: {exc}") from exc
        try:
            soup = BeautifulSoup(html, self.html_parser)
        except (FeatureNotFound, ParserRejectedMarkup) as exc:
            raise ContextSynthesisError(f"HTML content rejected: {exc}") from exc
        return Mf2Document(
            soup,
            base_uri,
            content_type,
            registry=self.registry,
            html_parser=self.html_parser,
        )
