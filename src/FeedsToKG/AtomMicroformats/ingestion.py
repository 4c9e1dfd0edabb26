# === NAVMAP v1 ===
# {
#   "module": "FeedsToKG.AtomMicroformats.ingestion",
#   "purpose": "Map Atom 1.0 documents onto an AtomOWL structural graph",
#   "sections": [
#     {
#       "id": "structuralingestor",
#       "name": "StructuralIngestor",
#       "anchor": "class-structuralingestor",
#       "kind": "class"
#     },
#     {
#       "id": "scope",
#       "name": "_Scope",
#       "anchor": "class-scope",
#       "kind": "class"
#     },
#     {
#       "id": "content-payload",
#       "name": "content_payload",
#       "anchor": "function-content-payload",
#       "kind": "function"
#     },
#     {
#       "id": "atomowlingestor",
#       "name": "AtomOwlIngestor",
#       "anchor": "class-atomowlingestor",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Structural ingestion of Atom feeds into AtomOWL graphs.

The rest of the pipeline never touches Atom XML directly. It queries the
graph produced here, so any ingestor honouring :class:`StructuralIngestor`
can be substituted (for example one that also maps DataRSS or RDFa). The
default :class:`AtomOwlIngestor` covers the Atom constructs the context
extractor depends on:

- ``awol:Entry`` nodes linked from their ``awol:Feed`` via ``awol:entry``
- ``awol:Content`` nodes with ``awol:type``, ``awol:body``, ``awol:base`` and
  ``awol:lang``
- IANA link-relation shortcuts such as ``iana:self`` and ``iana:profile``

Inline ``xml:base`` attributes are resolved against the caller supplied base
URI and ``xml:lang`` is inherited down the tree, mirroring the Atom
processing model.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union
from urllib.parse import urljoin
from xml.sax.saxutils import escape

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.term import Node

from .errors import IngestionError
from .namespaces import ATOM_NS, AWOL, IANA, RDF, XHTML_NS, XML_NS, XSD, bind_namespaces

__all__ = [
    "FeedSource",
    "StructuralIngestor",
    "AtomOwlIngestor",
    "content_payload",
    "XHTML_MEDIA_TYPE",
]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")

FeedSource = Union[str, bytes, ET.Element, ET.ElementTree]

XHTML_MEDIA_TYPE = "application/xhtml+xml"

_TEXT_CONSTRUCT_TYPES = {
    "text": "text/plain",
    "html": "text/html",
    "xhtml": XHTML_MEDIA_TYPE,
}

_DATE_ELEMENTS = ("updated", "published")


def _atom(local: str) -> str:
    return f"{{{ATOM_NS}}}{local}"


class StructuralIngestor(Protocol):
    """Protocol describing feed ingestors that produce a structural graph."""

    def ingest(self, source: FeedSource, base_uri: str) -> Graph:
        """Return a graph describing the structure of ``source``."""


@dataclass(frozen=True)
class _Scope:
    """Inherited ``xml:base`` / ``xml:lang`` state at one point in the tree."""

    base: str
    lang: Optional[str] = None
    base_declared: bool = False

    def enter(self, element: ET.Element) -> "_Scope":
        base = self.base
        declared = self.base_declared
        lang = self.lang
        xml_base = element.get(f"{{{XML_NS}}}base")
        if xml_base is not None:
            base = urljoin(base, xml_base.strip())
            declared = True
        xml_lang = element.get(f"{{{XML_NS}}}lang")
        if xml_lang is not None:
            lang = xml_lang.strip() or None
        return _Scope(base=base, lang=lang, base_declared=declared)


def _serialize_child(child: ET.Element) -> str:
    """Write ``child`` with XHTML elements unprefixed so HTML parsers see plain tags."""

    plain = copy.deepcopy(child)
    prefix = f"{{{XHTML_NS}}}"
    for node in plain.iter():
        if isinstance(node.tag, str) and node.tag.startswith(prefix):
            node.tag = node.tag[len(prefix):]
    return ET.tostring(plain, encoding="unicode")


def _inner_markup(element: ET.Element) -> str:
    """Serialise the children of ``element`` (tails included) as markup."""

    parts = [escape(element.text or "")]
    parts.extend(_serialize_child(child) for child in element)
    return "".join(parts)


def content_payload(element: ET.Element) -> Tuple[str, str]:
    """Return the ``(media_type, body)`` pair for an Atom text or content construct.

    Args:
        element: ``atom:content``, ``atom:summary`` or another text construct.

    Returns:
        Media type normalised from the Atom ``type`` attribute and the raw
        body. HTML bodies are returned unescaped; XHTML bodies are the
        serialised children of the wrapping ``xhtml:div``.

    Examples:
        >>> node = ET.fromstring('<content xmlns="http://www.w3.org/2005/Atom" type="html">&lt;b&gt;hi&lt;/b&gt;</content>')
        >>> content_payload(node)
        ('text/html', '<b>hi</b>')
    """

    declared = (element.get("type") or "text").strip()
    lowered = declared.lower()
    media_type = _TEXT_CONSTRUCT_TYPES.get(lowered, declared)

    if media_type == XHTML_MEDIA_TYPE:
        children = list(element)
        wrapper = element
        if len(children) == 1 and children[0].tag == f"{{{XHTML_NS}}}div":
            wrapper = children[0]
        return media_type, _inner_markup(wrapper)
    if lowered.endswith("+xml") or lowered.endswith("/xml"):
        return media_type, _inner_markup(element)
    return media_type, "".join(element.itertext())


class AtomOwlIngestor:
    """Translate Atom 1.0 XML into AtomOWL triples using ElementTree."""

    def ingest(self, source: FeedSource, base_uri: str) -> Graph:
        """Parse ``source`` and return its AtomOWL graph.

        Args:
            source: Atom XML as text or bytes, or an already parsed
                ``Element``/``ElementTree``.
            base_uri: URL the feed was retrieved from; relative references
                and ``xml:base`` chains resolve against it.

        Returns:
            Graph containing one ``awol:Feed`` and its entries.

        Raises:
            IngestionError: If the source is not well-formed XML or is not an
                Atom feed document.
        """

        root = self._load_root(source)
        if root.tag != _atom("feed"):
            raise IngestionError(f"expected an Atom feed document, found <{root.tag}>")

        graph = Graph()
        bind_namespaces(graph)
        scope = _Scope(base=base_uri or "").enter(root)
        feed_node = BNode()
        graph.add((feed_node, RDF.type, AWOL.Feed))
        self._add_common(graph, feed_node, root, scope)

        entry_count = 0
        for entry in root.findall(_atom("entry")):
            entry_node = BNode()
            graph.add((feed_node, AWOL.entry, entry_node))
            self._add_entry(graph, entry_node, entry, scope.enter(entry))
            entry_count += 1

        LOGGER.debug(
            "feed ingested",
            extra={
                "stage": "ingest",
                "extra_fields": {"entries": entry_count, "triples": len(graph)},
            },
        )
        return graph

    @staticmethod
    def _load_root(source: FeedSource) -> ET.Element:
        if isinstance(source, ET.ElementTree):
            root = source.getroot()
            if root is None:
                raise IngestionError("feed document is empty")
            return root
        if isinstance(source, ET.Element):
            return source
        if isinstance(source, (str, bytes)):
            try:
                return ET.fromstring(source)
            except ET.ParseError as exc:
                raise IngestionError(f"malformed Atom document: {exc}") from exc
        raise IngestionError(f"unsupported feed source type: {type(source).__name__}")

    def _add_common(self, graph: Graph, subject: Node, element: ET.Element, scope: _Scope) -> None:
        """Emit the metadata shared by feeds and entries."""

        identifier = element.find(_atom("id"))
        if identifier is not None and identifier.text and identifier.text.strip():
            graph.add((subject, AWOL.id, Literal(identifier.text.strip(), datatype=XSD.anyURI)))

        for name in ("title", "subtitle", "rights", "summary"):
            child = element.find(_atom(name))
            if child is not None:
                graph.add((subject, AWOL[name], self._text_node(graph, child, scope.enter(child))))

        for name in _DATE_ELEMENTS:
            child = element.find(_atom(name))
            if child is not None and child.text:
                graph.add((subject, AWOL[name], Literal(child.text.strip(), datatype=XSD.dateTime)))

        for name in ("author", "contributor"):
            for child in element.findall(_atom(name)):
                graph.add((subject, AWOL[name], self._person_node(graph, child, scope.enter(child))))

        for child in element.findall(_atom("category")):
            category = self._category_node(graph, child, scope.enter(child))
            if category is not None:
                graph.add((subject, AWOL.category, category))

        for child in element.findall(_atom("link")):
            self._add_link(graph, subject, child, scope.enter(child))

    def _add_entry(self, graph: Graph, entry_node: Node, entry: ET.Element, scope: _Scope) -> None:
        graph.add((entry_node, RDF.type, AWOL.Entry))
        self._add_common(graph, entry_node, entry, scope)

        content = entry.find(_atom("content"))
        if content is None:
            return
        content_scope = scope.enter(content)
        content_node = BNode()
        graph.add((entry_node, AWOL.content, content_node))
        graph.add((content_node, RDF.type, AWOL.Content))

        src = content.get("src")
        if src:
            graph.add((content_node, AWOL.src, URIRef(urljoin(content_scope.base, src.strip()))))
            if content.get("type"):
                graph.add((content_node, AWOL.type, Literal(content.get("type").strip())))
        else:
            media_type, body = content_payload(content)
            graph.add((content_node, AWOL.type, Literal(media_type)))
            graph.add((content_node, AWOL.body, Literal(body)))

        if content_scope.base_declared:
            graph.add((content_node, AWOL.base, URIRef(content_scope.base)))
        if content_scope.lang:
            graph.add((content_node, AWOL.lang, Literal(content_scope.lang)))

    @staticmethod
    def _text_node(graph: Graph, element: ET.Element, scope: _Scope) -> BNode:
        media_type, body = content_payload(element)
        node = BNode()
        graph.add((node, RDF.type, AWOL.TextContent))
        graph.add((node, AWOL.type, Literal(media_type)))
        graph.add((node, AWOL.body, Literal(body, lang=scope.lang)))
        return node

    @staticmethod
    def _person_node(graph: Graph, element: ET.Element, scope: _Scope) -> BNode:
        node = BNode()
        graph.add((node, RDF.type, AWOL.Person))
        name = element.find(_atom("name"))
        if name is not None and name.text:
            graph.add((node, AWOL.name, Literal(name.text.strip())))
        email = element.find(_atom("email"))
        if email is not None and email.text:
            graph.add((node, AWOL.email, URIRef(f"mailto:{email.text.strip()}")))
        uri = element.find(_atom("uri"))
        if uri is not None and uri.text:
            graph.add((node, AWOL.uri, URIRef(urljoin(scope.enter(uri).base, uri.text.strip()))))
        return node

    @staticmethod
    def _category_node(graph: Graph, element: ET.Element, scope: _Scope) -> Optional[BNode]:
        term = element.get("term")
        if not term:
            return None
        node = BNode()
        graph.add((node, RDF.type, AWOL.Category))
        graph.add((node, AWOL.term, Literal(term)))
        scheme = element.get("scheme")
        if scheme:
            graph.add((node, AWOL.scheme, URIRef(urljoin(scope.base, scheme.strip()))))
        label = element.get("label")
        if label:
            graph.add((node, AWOL.label, Literal(label, lang=scope.lang)))
        return node

    @staticmethod
    def _add_link(graph: Graph, subject: Node, element: ET.Element, scope: _Scope) -> None:
        href = element.get("href")
        if not href:
            return
        target = URIRef(urljoin(scope.base, href.strip()))
        rel = (element.get("rel") or "alternate").strip()
        rel_uri = URIRef(rel) if ":" in rel else IANA[rel]

        link = BNode()
        graph.add((subject, AWOL.link, link))
        graph.add((link, RDF.type, AWOL.Link))
        graph.add((link, AWOL.rel, rel_uri))

        destination = BNode()
        graph.add((link, AWOL.to, destination))
        graph.add((destination, RDF.type, AWOL.Content))
        graph.add((destination, AWOL.src, target))
        if element.get("type"):
            graph.add((destination, AWOL.type, Literal(element.get("type").strip())))
        if element.get("hreflang"):
            graph.add((destination, AWOL.lang, Literal(element.get("hreflang").strip())))
        if element.get("title"):
            graph.add((link, AWOL["title"], Literal(element.get("title"), lang=scope.lang)))

        graph.add((subject, rel_uri, target))
