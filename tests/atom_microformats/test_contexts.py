# === NAVMAP v1 ===
# {
#   "module": "tests.atom_microformats.test_contexts",
#   "purpose": "Entry context discovery and row folding.",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Entry context discovery and row folding."""

from __future__ import annotations

import pytest

pytest.importorskip("rdflib")

from rdflib import Literal

from FeedsToKG.AtomMicroformats.contexts import (
    EntryContext,
    extract_contexts,
    fold_rows,
    media_type_of,
)
from FeedsToKG.AtomMicroformats.ingestion import AtomOwlIngestor

HCARD = "http://microformats.org/profile/hcard"


# --- Test Cases ---


def test_fold_rows_keeps_first_scalar_values() -> None:
    """Later rows never overwrite a scalar field already set."""

    rows = [
        {"entryid": Literal("e1"), "contenttype": Literal("text/html"), "contentbody": Literal("A")},
        {
            "entryid": Literal("e1"),
            "contenttype": Literal("text/plain"),
            "contentbody": Literal("B"),
            "contentlang": Literal("fr"),
        },
    ]

    (context,) = fold_rows(rows)

    assert context.content_type == "text/html"
    assert context.content_body == "A"
    assert context.content_lang == "fr"


def test_fold_rows_accumulates_profiles_in_order() -> None:
    """Profiles from multiple rows append without duplicates."""

    rows = [
        {"entryid": "e1", "contenttype": "text/html", "contentbody": "x", "profile": "p2"},
        {"entryid": "e1", "contenttype": "text/html", "contentbody": "x", "profile": "p1"},
        {"entryid": "e1", "contenttype": "text/html", "contentbody": "x", "profile": "p2"},
        {"entryid": "e1", "contenttype": "text/html", "contentbody": "x", "profile": None},
    ]

    (context,) = fold_rows(rows)

    assert context.profiles == ["p2", "p1"]


def test_fold_rows_skips_rows_without_entry_id() -> None:
    """Rows with a missing or blank id cannot form a context."""

    rows = [
        {"entryid": None, "contenttype": "text/html", "contentbody": "x"},
        {"entryid": "  ", "contenttype": "text/html", "contentbody": "x"},
        {"entryid": " e2 ", "contenttype": "text/html", "contentbody": "y"},
    ]

    assert [context.entry_id for context in fold_rows(rows)] == ["e2"]


def test_fold_rows_drops_entries_without_body() -> None:
    """A context needs both a body and a content type."""

    rows = [{"entryid": "e1", "contenttype": "text/html"}]

    assert fold_rows(rows) == []


def test_fold_rows_keeps_identities_distinct() -> None:
    """A ``self`` link already claimed, or equal to another entry's id, is dropped."""

    def row(entry_id, link):
        return {
            "entryid": entry_id,
            "contenttype": "text/html",
            "contentbody": "x",
            "entrylink": link,
        }

    rows = [row("e1", "http://x"), row("e2", "http://x"), row("e3", "e1"), row("e4", "e4")]
    contexts = fold_rows(rows)

    assert [context.identity for context in contexts] == ["http://x", "e2", "e3", "e4"]
    assert contexts[1].entry_link is None


def test_identity_prefers_entry_link() -> None:
    """The ``self`` link names the entry when present, otherwise its id."""

    linked = EntryContext("urn:e1", "text/html", "x", entry_link="http://example.com/1")
    unlinked = EntryContext("urn:e2", "text/html", "x")

    assert linked.identity == "http://example.com/1"
    assert unlinked.identity == "urn:e2"


def test_effective_base_falls_back_to_feed_base() -> None:
    context = EntryContext("urn:e1", "text/html", "x")

    assert context.effective_base("http://example.com/feed") == "http://example.com/feed"
    context.content_base = "http://example.com/posts/"
    assert context.effective_base("http://example.com/feed") == "http://example.com/posts/"


def test_media_type_helpers() -> None:
    """Media type checks ignore case and parameters."""

    context = EntryContext("urn:e1", "Application/XHTML+XML; charset=utf-8", "x")

    assert media_type_of("text/html;charset=utf-8") == "text/html"
    assert context.is_html
    assert not EntryContext("urn:e2", "text/plain", "x").is_html


def test_add_profiles_returns_only_new_uris() -> None:
    context = EntryContext("urn:e1", "text/html", "x", profiles=["a"])

    assert context.add_profiles(["a", "b", "b", ""]) == ["b"]
    assert context.profiles == ["a", "b"]


def test_extract_contexts_from_basic_feed(basic_source, feed_base) -> None:
    """Every entry with content becomes a context, HTML or not."""

    graph = AtomOwlIngestor().ingest(basic_source, feed_base)
    contexts = {context.entry_id: context for context in extract_contexts(graph)}

    assert set(contexts) == {"urn:example:e1", "urn:example:e2"}
    assert contexts["urn:example:e1"].content_type == "text/html"
    assert contexts["urn:example:e1"].profiles == [HCARD]
    assert contexts["urn:example:e1"].entry_link is None
    assert contexts["urn:example:e1"].content_base is None
    assert contexts["urn:example:e2"].content_type == "text/plain"


def test_extract_contexts_inherits_feed_profiles(rich_source, feed_base) -> None:
    """Feed-level profile links apply to every entry."""

    graph = AtomOwlIngestor().ingest(rich_source, feed_base)
    contexts = {context.entry_id: context for context in extract_contexts(graph)}

    assert contexts["urn:example:e3"].profiles == [HCARD]
    assert contexts["urn:example:e4"].profiles == [HCARD]
    assert contexts["urn:example:e3"].entry_link == "http://example.com/posts/3"
    assert contexts["urn:example:e3"].content_base == "http://example.com/posts/"
    assert contexts["urn:example:e3"].content_lang == "en"


def test_extract_contexts_skips_entries_without_content(feed_base) -> None:
    """Entries with no ``<content>`` element do not produce a context."""

    source = (
        '<feed xmlns="http://www.w3.org/2005/Atom"><id>urn:f</id>'
        "<entry><id>urn:a</id><summary>only a summary</summary></entry>"
        '<entry><id>urn:b</id><content type="html">&lt;b&gt;x&lt;/b&gt;</content></entry>'
        "</feed>"
    )
    graph = AtomOwlIngestor().ingest(source, feed_base)

    assert [context.entry_id for context in extract_contexts(graph)] == ["urn:b"]
