"""HTML page composers: one page per entry plus the index."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from til.config import SiteConfig
from til.dates import timestamp_segments, to_iso
from til.entries import CompiledEntry, FrontMatter
from til.markdown import first_paragraph, text_content
from til.nodes import Node, h
from til.render import Dialect, render
from til.site.chrome import (
    PATH,
    SITE,
    attribution,
    document,
    json_ld,
    license_block,
    open_graph,
)

DESCRIPTION_LENGTH = 200


def summarize(content: Any) -> str:
    """First paragraph text, cut at 200 characters (mid-word if need be)."""
    return text_content(first_paragraph(content))[:DESCRIPTION_LENGTH]


def _person(site: SiteConfig) -> dict[str, str]:
    return {"@type": "Person", "name": site.author.name, "url": site.author.url}


def entry_page(compiled: CompiledEntry, site: SiteConfig | None = None) -> Node:
    """Compose the page for a single entry."""
    site = site or SiteConfig()
    entry = compiled.entry
    fm = entry.front_matter
    url = site.entry_url(fm.permalink)
    title = f"{site.collection} / {fm.title} — {site.author.name}"

    return h(SITE, {"value": site},
        h(PATH, {"value": f"/{fm.permalink}/"},
            h(document,
                not fm.published and h("meta", {"name": "robots", "content": "noindex"}),
                h("title", title),
                open_graph({
                    "og:url": url,
                    "og:title": title,
                    "og:description": summarize(compiled.content),
                    "og:type": "article",
                    "article:author:first_name": site.author.first_name,
                    "article:author:last_name": site.author.last_name,
                    "article:published_time": to_iso(fm.date),
                    "article:modified_time": to_iso(entry.last_modified),
                    "twitter:card": "summary",
                    "twitter:creator": site.author.twitter,
                }),
                json_ld({
                    "@type": "LearningResource",
                    "name": fm.title,
                    "author": _person(site),
                    "url": url,
                    "datePublished": to_iso(fm.date),
                    "dateModified": to_iso(entry.last_modified),
                    "keywords": ", ".join(fm.tags) or None,
                    "isPartOf": f"{site.base_url}/",
                    "license": site.license_url,
                }),
                h("article",
                    h("h1",
                        h("a", {"href": "../"}, site.collection),
                        h("span", fm.title),
                    ),
                    compiled.content,
                ),
                h("footer",
                    h(license_block, {"year": fm.date.year},
                        h(attribution, {"filename": entry.filename, "front_matter": fm}),
                    ),
                ),
            ),
        ),
    )


def entry_log_row(fm: FrontMatter) -> Node:
    weekday, day, clock, seconds = timestamp_segments(fm.date)
    return h("div", {"class": "entrylog"},
        h("a", {"href": f"{fm.permalink}/"}, fm.title),
        h("pre", {"class": "timestamp"},
            h("span", {"class": "p2"}, weekday),
            h("span", {"class": "p0"}, day),
            h("span", {"class": "p1"}, clock),
            h("span", {"class": "p3"}, seconds),
        ),
    )


def index_page(
    front_matters: Sequence[FrontMatter],
    intro: Any = None,
    site: SiteConfig | None = None,
) -> Node:
    """Compose the index: site metadata, optional intro, and the entry log.

    Rows appear in the order given.
    """
    site = site or SiteConfig()
    home = f"{site.base_url}/"
    tagline = f"{site.title}: {site.description}"

    return h(SITE, {"value": site},
        h(PATH, {"value": "/"},
            h(document,
                h("title", f"{site.title} / {site.author.name}"),
                open_graph({
                    "og:url": home,
                    "og:title": f"{site.author.name} / {site.collection}",
                    "og:description": tagline,
                    "twitter:card": "summary",
                    "twitter:title": f"{site.author.name} / {site.collection}: {site.description}",
                    "twitter:creator": site.author.twitter,
                }),
                json_ld({
                    "@type": "Collection",
                    "name": site.title,
                    "author": _person(site),
                    "url": home,
                    "collectionSize": len(front_matters),
                    "license": site.license_url,
                }),
                h("section",
                    intro,
                    h("h2", {"id": "entry-log"},
                        h("a", {"href": "#entry-log", "data-anchor": True}, "entry log"),
                    ),
                    [entry_log_row(fm) for fm in front_matters],
                ),
                h("footer",
                    h(license_block, {"year": site.copyright_year}),
                ),
            ),
        ),
    )


def render_entry_page(compiled: CompiledEntry, site: SiteConfig | None = None) -> str:
    return render(entry_page(compiled, site), Dialect.HTML, document=True)


def render_index(
    front_matters: Sequence[FrontMatter],
    intro: Any = None,
    site: SiteConfig | None = None,
) -> str:
    return render(index_page(front_matters, intro, site), Dialect.HTML, document=True)
