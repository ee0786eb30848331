"""Atom feed composer."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from til.config import SiteConfig
from til.dates import to_iso
from til.entries import CompiledEntry
from til.errors import EmptyFeedError
from til.nodes import Node, h
from til.render import Dialect, render

ATOM_NS = "http://www.w3.org/2005/Atom"


def cdata(text: str) -> str:
    """Wrap text in CDATA, splitting any ``]]>`` across sections."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def feed_updated(entries: Sequence[CompiledEntry]) -> datetime:
    """Latest modification time across all entries."""
    if not entries:
        raise EmptyFeedError("Cannot compute the feed's updated time without entries")
    return max(compiled.entry.last_modified for compiled in entries)


def _author(site: SiteConfig) -> Node:
    return h("author", h("name", site.author.name), h("uri", site.author.url))


def _rights(site: SiteConfig, year: int) -> str:
    return f"© {year} {site.author.name} ⸱ licensed under {site.license_name}"


def feed_entry(compiled: CompiledEntry, site: SiteConfig) -> Node:
    entry = compiled.entry
    fm = entry.front_matter
    url = site.entry_url(fm.permalink)
    return h("entry",
        h("id", url),
        h("link", {"rel": "alternate", "type": "text/html", "href": url}),
        h("published", to_iso(fm.date)),
        h("updated", to_iso(entry.last_modified)),
        h("title", fm.title),
        _author(site),
        [h("category", {"term": tag}) for tag in fm.tags],
        h("content", {"type": "html", "inner_html": cdata(render(compiled.content))}),
        h("rights", _rights(site, fm.date.year)),
    )


def feed(entries: Sequence[CompiledEntry], site: SiteConfig | None = None) -> Node:
    """Compose the Atom feed. Entries appear in the order given.

    Raises:
        EmptyFeedError: If ``entries`` is empty.
    """
    site = site or SiteConfig()
    updated = feed_updated(entries)
    return h("feed", {"xmlns": ATOM_NS, "xml:lang": site.language},
        h("id", site.feed_url),
        h("link", {"rel": "self", "type": "application/atom+xml", "href": site.feed_url}),
        h("link", {"rel": "alternate", "type": "text/html", "href": f"{site.base_url}/"}),
        h("updated", to_iso(updated)),
        h("title", f"{site.author.name} / {site.collection}"),
        h("subtitle", f"{site.title}: {site.description}"),
        h("icon", f"{site.base_url}{site.icon}"),
        _author(site),
        h("rights", _rights(site, site.copyright_year)),
        h("generator", {"uri": f"https://github.com/{site.repository}"}, site.collection),
        [feed_entry(compiled, site) for compiled in entries],
    )


def render_feed(entries: Sequence[CompiledEntry], site: SiteConfig | None = None) -> str:
    return render(feed(entries, site), Dialect.XML, document=True)
