# === NAVMAP v1 ===
# {
#   "module": "tests.atom_microformats.conftest",
#   "purpose": "Shared Atom feed fixtures for the microformat extraction suite",
#   "sections": [
#     {
#       "id": "isolate-environment",
#       "name": "_isolate_environment",
#       "anchor": "function-isolate-environment",
#       "kind": "function"
#     },
#     {
#       "id": "settings",
#       "name": "settings",
#       "anchor": "function-settings",
#       "kind": "function"
#     },
#     {
#       "id": "basic-feed",
#       "name": "basic_feed",
#       "anchor": "function-basic-feed",
#       "kind": "function"
#     },
#     {
#       "id": "rich-feed",
#       "name": "rich_feed",
#       "anchor": "function-rich-feed",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Shared fixtures for the Atom microformat tests.

Two feeds cover most scenarios:

``BASIC_FEED``
    ``urn:example:e1`` carries escaped HTML with a classic hCard and an
    entry-level hCard profile. ``urn:example:e2`` is plain text, declares no
    profile, and its body only looks like markup.

``RICH_FEED``
    Declares the hCard profile on the feed and ``xml:lang="en"`` on the root.
    ``urn:example:e3`` has ``xml:base``, a ``self`` link and inline XHTML.
    ``urn:example:e4`` has HTML with an h-card and a ``rel="tag"`` link.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from FeedsToKG.AtomMicroformats import AtomMicroformatsSettings, new_feed
from FeedsToKG.AtomMicroformats.logging_utils import LOGGER_NAME
from FeedsToKG.AtomMicroformats.settings import reset_settings

FEED_BASE = "http://example.com/feed.atom"

BASIC_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <id>urn:example:feed</id>
  <title>Example feed</title>
  <updated>2024-01-01T00:00:00Z</updated>
  <entry>
    <id>urn:example:e1</id>
    <title>Meet Alice</title>
    <updated>2024-01-01T00:00:00Z</updated>
    <link rel="profile" href="http://microformats.org/profile/hcard"/>
    <content type="html">&lt;span class="vcard"&gt;&lt;span class="fn"&gt;Alice&lt;/span&gt;&lt;/span&gt;</content>
  </entry>
  <entry>
    <id>urn:example:e2</id>
    <title>Plain</title>
    <updated>2024-01-01T00:00:00Z</updated>
    <content type="text">&lt;span class="vcard"&gt;&lt;span class="fn"&gt;Bob&lt;/span&gt;&lt;/span&gt;</content>
  </entry>
</feed>
"""

RICH_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xml:lang="en">
  <id>urn:example:rich</id>
  <title>Rich feed</title>
  <updated>2024-02-01T00:00:00Z</updated>
  <link rel="profile" href="http://microformats.org/profile/hcard"/>
  <author><name>Feed Author</name></author>
  <entry xml:base="http://example.com/posts/">
    <id>urn:example:e3</id>
    <title>Meet Bob</title>
    <updated>2024-02-01T00:00:00Z</updated>
    <link rel="self" href="3"/>
    <content type="xhtml">
      <div xmlns="http://www.w3.org/1999/xhtml"><p class="h-card"><a class="p-name u-url" href="bob">Bob</a></p></div>
    </content>
  </entry>
  <entry>
    <id>urn:example:e4</id>
    <title>Tagged</title>
    <updated>2024-02-02T00:00:00Z</updated>
    <content type="html">&lt;p&gt;&lt;span class="h-card"&gt;&lt;span class="p-name"&gt;Carol&lt;/span&gt;&lt;/span&gt; writes about &lt;a rel="tag" href="http://example.com/tags/python"&gt;Python&lt;/a&gt;&lt;/p&gt;</content>
  </entry>
</feed>
"""


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Clear ``ATOMMF_`` variables, cached settings and managed log handlers."""

    for key in list(os.environ):
        if key.upper().startswith("ATOMMF_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_atommf_managed", False):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings() -> AtomMicroformatsSettings:
    return AtomMicroformatsSettings()


@pytest.fixture
def basic_feed(settings):
    return new_feed(BASIC_FEED, FEED_BASE, settings=settings)


@pytest.fixture
def rich_feed(settings):
    return new_feed(RICH_FEED, FEED_BASE, settings=settings)


@pytest.fixture
def basic_feed_path(tmp_path: Path) -> Path:
    path = tmp_path / "basic.atom"
    path.write_text(BASIC_FEED, encoding="utf-8")
    return path


@pytest.fixture
def rich_feed_path(tmp_path: Path) -> Path:
    path = tmp_path / "rich.atom"
    path.write_text(RICH_FEED, encoding="utf-8")
    return path


@pytest.fixture
def feed_base() -> str:
    return FEED_BASE


@pytest.fixture
def basic_source() -> str:
    return BASIC_FEED


@pytest.fixture
def rich_source() -> str:
    return RICH_FEED
