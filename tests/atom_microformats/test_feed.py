# === NAVMAP v1 ===
# {
#   "module": "tests.atom_microformats.test_feed",
#   "purpose": "Feed facade behaviour: construction, profiles, parsing and JSON output.",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Feed facade behaviour: construction, profiles, parsing and JSON output."""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET

import pytest

pytest.importorskip("mf2py")
pytest.importorskip("pydantic")

import mf2py
from pydantic import ValidationError
from rdflib import Graph, URIRef
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID

from FeedsToKG.AtomMicroformats import (
    AtomMicroformatsSettings,
    ContextSynthesisError,
    Feed,
    IngestionError,
    Mf2Engine,
    ParseState,
    UnknownVocabularyError,
    new_feed,
)
from FeedsToKG.AtomMicroformats.logging_utils import LOGGER_NAME

HCARD = "http://microformats.org/profile/hcard"
HCALENDAR = "http://microformats.org/profile/hcalendar"


class _CarolRejectingEngine(Mf2Engine):
    """Engine that refuses documents mentioning Carol."""

    def build_document(self, html, base_uri, content_type):
        if "Carol" in html:
            raise ContextSynthesisError("refused")
        return super().build_document(html, base_uri, content_type)


class _ExplodingIngestor:
    def ingest(self, source, base_uri) -> Graph:
        raise KeyError("broken")


# --- Test Cases ---


def test_html_entry_yields_hcard_plain_entry_does_not(basic_feed) -> None:
    """The HTML entry contributes one hCard; the plain text entry none."""

    cards = basic_feed.objects("hCard")

    assert [card.get("name") for card in cards] == ["Alice"]
    assert basic_feed.objects("hCard", "urn:example:e1") == cards
    assert basic_feed.objects("hCard", "urn:example:e2") == []
    assert basic_feed.get_context("urn:example:e2").document is None


def test_contexts_are_exposed_in_feed_order(basic_feed) -> None:
    assert basic_feed.entry_ids() == ["urn:example:e1", "urn:example:e2"]
    assert isinstance(basic_feed.contexts, tuple)
    assert basic_feed.get_context("urn:missing") is None


def test_new_feed_wraps_unexpected_ingestor_errors(basic_source, feed_base) -> None:
    with pytest.raises(IngestionError, match="broken"):
        new_feed(basic_source, feed_base, ingestor=_ExplodingIngestor())


def test_new_feed_propagates_ingestion_errors(feed_base) -> None:
    with pytest.raises(IngestionError):
        new_feed("not xml", feed_base)


def test_new_feed_accepts_bytes_and_trees(basic_source, feed_base, settings) -> None:
    from_bytes = new_feed(basic_source.encode("utf-8"), feed_base, settings=settings)
    from_tree = new_feed(ET.fromstring(basic_source), feed_base, settings=settings)

    assert from_bytes.entry_ids() == from_tree.entry_ids()


def test_entry_failures_do_not_abort_construction(rich_source, feed_base, settings, caplog) -> None:
    """A rejected entry drops out while the rest of the feed stays usable."""

    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        feed = new_feed(rich_source, feed_base, engine=_CarolRejectingEngine(), settings=settings)

    assert feed.get_context("urn:example:e4").document is None
    assert [card.get("name") for card in feed.objects("hCard")] == ["Bob"]
    assert any(getattr(record, "entry_id", None) == "urn:example:e4" for record in caplog.records)


def test_parse_is_idempotent(rich_feed) -> None:
    """Parsing twice returns the very same objects."""

    first = rich_feed.parse_microformats().objects("hCard")
    second = rich_feed.parse_microformats().objects("hCard")

    assert rich_feed.state is ParseState.PARSED
    assert [id(obj) for obj in first] == [id(obj) for obj in second]


def test_profiles_added_after_parse_need_a_clear(rich_feed) -> None:
    """New profiles take effect only after clearing; results only grow."""

    before = {name: len(found) for name, found in rich_feed.all_objects().items()}
    assert before["RelTag"] == 0

    rich_feed.assume_profile("RelTag")
    assert rich_feed.objects("RelTag") == []

    rich_feed.clear_microformats()
    assert rich_feed.state is ParseState.UNPARSED
    after = {name: len(found) for name, found in rich_feed.all_objects().items()}

    assert after["RelTag"] == 1
    assert all(after[name] >= count for name, count in before.items())
    (tag,) = rich_feed.objects("RelTag")
    assert tag.get("tag") == "python"


def test_all_objects_covers_every_format(rich_feed) -> None:
    """Every known vocabulary has a key, even when nothing was found."""

    everything = rich_feed.all_objects()

    assert set(everything) == set(rich_feed.engine.formats())
    assert sorted(card.get("name") for card in everything["hCard"]) == ["Bob", "Carol"]
    assert everything["hCalendar"] == []


def test_entry_scoped_retrieval(rich_feed) -> None:
    e3 = rich_feed.entry_all_objects("urn:example:e3")

    assert [card.get("name") for card in e3["hCard"]] == ["Bob"]
    assert [card.get("url") for card in rich_feed.entry_objects("urn:example:e3", "hCard")] == [
        "http://example.com/posts/bob"
    ]
    assert rich_feed.entry_objects("urn:missing", "hCard") == []


def test_unknown_vocabulary_still_applies_known_names(rich_feed) -> None:
    with pytest.raises(UnknownVocabularyError) as excinfo:
        rich_feed.assume_profile("hCalendar", "NotAFormat")

    assert excinfo.value.names == ("NotAFormat",)
    for entry_id in ("urn:example:e3", "urn:example:e4"):
        assert HCALENDAR in rich_feed.get_context(entry_id).profiles


def test_entry_profile_methods_target_one_entry(rich_feed) -> None:
    result = rich_feed.entry_assume_profile("urn:example:e3", "hCalendar")

    assert result is rich_feed
    assert HCALENDAR in rich_feed.get_context("urn:example:e3").profiles
    assert HCALENDAR not in rich_feed.get_context("urn:example:e4").profiles

    rich_feed.entry_add_profile("urn:example:e4", "http://example.com/custom-profile")
    assert rich_feed.get_context("urn:example:e4").profiles[-1] == "http://example.com/custom-profile"


def test_profile_methods_chain(basic_feed) -> None:
    chained = basic_feed.add_profile(HCALENDAR).assume_all_profiles().assume_profile("hCard")

    assert chained is basic_feed
    assert basic_feed.get_context("urn:example:e2").profiles == []


def test_to_json_shape_and_options(basic_feed) -> None:
    """JSON output is keyed by vocabulary and honours formatting options."""

    payload = json.loads(basic_feed.to_json())
    assert set(payload) == set(basic_feed.engine.formats())
    assert payload["hCard"][0]["properties"]["name"] == ["Alice"]

    pretty = basic_feed.to_json(pretty=True, canonical=True)
    assert "\n  " in pretty
    assert list(json.loads(pretty)) == sorted(payload)

    encoded = basic_feed.entry_json("urn:example:e1", utf8=True)
    assert isinstance(encoded, bytes)
    assert json.loads(encoded.decode("utf-8"))["hCard"][0]["type"] == ["h-card"]


def test_to_json_rejects_unknown_options(basic_feed) -> None:
    with pytest.raises(ValidationError):
        basic_feed.to_json(indent=4)


def test_settings_assume_profiles_apply_on_construction(rich_source, feed_base) -> None:
    settings = AtomMicroformatsSettings(assume_profiles=("RelTag",))
    feed = new_feed(rich_source, feed_base, settings=settings)

    assert len(feed.objects("RelTag")) == 1


def test_settings_unknown_assumed_profile_raises(rich_source, feed_base) -> None:
    settings = AtomMicroformatsSettings(assume_profiles=("Nope",))

    with pytest.raises(UnknownVocabularyError):
        new_feed(rich_source, feed_base, settings=settings)


def test_repr_reports_state(basic_feed) -> None:
    assert "state=unparsed" in repr(basic_feed)
    basic_feed.parse_microformats()
    assert "state=parsed" in repr(basic_feed)
    assert isinstance(basic_feed, Feed)


def test_xhtml_entries_keep_link_and_image_values(feed_base, settings) -> None:
    """URL, photo and tag values survive inline XHTML content."""

    source = """<feed xmlns="http://www.w3.org/2005/Atom">
  <id>urn:example:xhtml</id>
  <entry xml:base="http://example.com/people/">
    <id>urn:example:me</id>
    <content type="xhtml">
      <div xmlns="http://www.w3.org/1999/xhtml"><p class="h-card"><img class="u-photo" src="me.png"/><a class="p-name u-url" href="me">Me</a></p> <a rel="tag" href="http://example.com/tags/py">py</a></div>
    </content>
  </entry>
</feed>"""
    feed = new_feed(source, feed_base, settings=settings).assume_all_profiles()

    (card,) = feed.objects("hCard")
    assert card.get("name") == "Me"
    assert card.get("url") == "http://example.com/people/me"
    assert card.get("photo") == "http://example.com/people/me.png"
    assert [tag.get("tag") for tag in feed.objects("RelTag")] == ["py"]


def test_extraction_failure_does_not_break_models(rich_feed, monkeypatch, caplog) -> None:
    """An entry whose extraction raises is skipped by parsing and by models."""

    real_parse = mf2py.parse

    def fussy_parse(doc=None, **kwargs):
        if "Carol" in doc.get_text():
            raise RuntimeError("engine blew up")
        return real_parse(doc=doc, **kwargs)

    monkeypatch.setattr(mf2py, "parse", fussy_parse)

    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        assert [card.get("name") for card in rich_feed.objects("hCard")] == ["Bob"]
        dataset = rich_feed.model()

    names = {graph.identifier for graph in dataset.graphs()} - {DATASET_DEFAULT_GRAPH_ID}
    assert names == {URIRef("http://example.com/posts/3")}
    stages = {getattr(record, "stage", None) for record in caplog.records}
    assert {"parse", "merge"} <= stages


def test_resume_vocabulary_can_be_assumed(rich_feed) -> None:
    rich_feed.assume_profile("hResume")

    profiles = rich_feed.get_context("urn:example:e4").profiles
    assert "http://microformats.org/profile/hresume" in profiles
    assert rich_feed.objects("hResume") == []
