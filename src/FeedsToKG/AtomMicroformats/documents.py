"""Per-entry document synthesis.

Entry content is a fragment, not a page. Before a generic microformat parser
can look at it, the fragment is wrapped in a minimal standalone XHTML
document carrying the entry language, and handed to the engine together with
the entry's effective base URI. The resulting handle is told the entry's
identity so extracted objects resolve against the entry rather than the feed.
"""

from __future__ import annotations

import html as html_lib
import logging
from typing import Iterable, List, Optional

from .contexts import EntryContext
from .engine import DocumentHandle, MicroformatEngine
from .errors import ContextSynthesisError

__all__ = ["build_fragment_document", "synthesize_document", "prepare_contexts"]

LOGGER = logging.getLogger("FeedsToKG.AtomMicroformats")

_DOCUMENT_TEMPLATE = (
    '<html xml:lang="{lang}" lang="{lang}" xmlns="http://www.w3.org/1999/xhtml">'
    "<head><title></title></head><body><div>{body}</div></body></html>"
)


def build_fragment_document(body: str, lang: Optional[str] = None) -> str:
    """Wrap ``body`` in a standalone document tagged with ``lang``.

    Examples:
        >>> build_fragment_document("<b>x</b>", "en")
        '<html xml:lang="en" lang="en" xmlns="http://www.w3.org/1999/xhtml"><head><title></title></head><body><div><b>x</b></div></body></html>'
    """

    return _DOCUMENT_TEMPLATE.format(lang=html_lib.escape(lang or "", quote=True), body=body)


def synthesize_document(
    context: EntryContext, feed_base: str, engine: MicroformatEngine
) -> Optional[DocumentHandle]:
    """Build the document handle for ``context``.

    Returns ``None`` for non-HTML content. Engine failures propagate; see
    :func:`prepare_contexts` for the recovering variant.
    """

    if not context.is_html:
        return None
    document = build_fragment_document(context.content_body, context.content_lang)
    handle = engine.build_document(document, context.effective_base(feed_base), context.content_type)
    handle.document_uri = context.identity
    if context.profiles:
        handle.add_profile(*context.profiles)
    return handle


def prepare_contexts(
    contexts: Iterable[EntryContext], feed_base: str, engine: MicroformatEngine
) -> List[EntryContext]:
    """Attach document handles to HTML contexts, isolating per-entry failures.

    Returns:
        Contexts whose content could not be synthesised. They keep
        ``document=None`` and drop out of microformat retrieval.
    """

    failed: List[EntryContext] = []
    for context in contexts:
        if not context.is_html:
            continue
        try:
            context.document = synthesize_document(context, feed_base, engine)
        except Exception as exc:  # engine failures are unpredictable
            context.document = None
            if isinstance(exc, ContextSynthesisError) and exc.entry_id is None:
                exc.entry_id = context.entry_id
            failed.append(context)
            LOGGER.warning(
                "entry content could not be processed",
                extra={"stage": "synthesize", "entry_id": context.entry_id, "error": str(exc)},
            )
    return failed
