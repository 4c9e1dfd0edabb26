"""RDF and XML namespaces used by the Atom microformat pipeline."""

from __future__ import annotations

from rdflib import Namespace
from rdflib.namespace import FOAF, RDF, XSD

__all__ = [
    "ATOM_NS",
    "XML_NS",
    "XHTML_NS",
    "AWOL",
    "IANA",
    "XHV",
    "XFN",
    "VCARD",
    "ICAL",
    "GEO",
    "REV",
    "SCHEMA",
    "FOAF",
    "RDF",
    "XSD",
    "bind_namespaces",
]

ATOM_NS = "http://www.w3.org/2005/Atom"
XML_NS = "http://www.w3.org/XML/1998/namespace"
XHTML_NS = "http://www.w3.org/1999/xhtml"

AWOL = Namespace("http://bblfish.net/work/atom-owl/2006-06-06/#")
IANA = Namespace("http://www.iana.org/assignments/relation/")
XHV = Namespace("http://www.w3.org/1999/xhtml/vocab#")
XFN = Namespace("http://vocab.sindice.com/xfn#")
VCARD = Namespace("http://www.w3.org/2006/vcard/ns#")
ICAL = Namespace("http://www.w3.org/2002/12/cal/icaltzd#")
GEO = Namespace("http://www.w3.org/2003/01/geo/wgs84_pos#")
REV = Namespace("http://purl.org/stuff/rev#")
SCHEMA = Namespace("https://schema.org/")

_PREFIXES = {
    "awol": AWOL,
    "iana": IANA,
    "xhv": XHV,
    "xfn": XFN,
    "vcard": VCARD,
    "ical": ICAL,
    "geo": GEO,
    "rev": REV,
    "schema": SCHEMA,
    "foaf": FOAF,
}


def bind_namespaces(graph) -> None:
    """Register the pipeline prefixes on ``graph`` for readable serialisations."""

    for prefix, namespace in _PREFIXES.items():
        graph.bind(prefix, namespace, override=False)
