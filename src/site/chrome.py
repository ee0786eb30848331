"""Site-wide chrome shared by every HTML page.

Components here read two ambient contexts: ``SITE`` (the site settings,
defaulting to ``SiteConfig()``) and ``PATH`` (the site-absolute path of the
page being rendered, e.g. ``/vim-registers/``). ``PATH`` has no default, so
reading it outside a page composer is a ``ContextMisuseError``.
"""

from __future__ import annotations

import json
import posixpath
from typing import Any

from til.config import SiteConfig
from til.context import create_context, use_context
from til.dates import format_long, to_iso
from til.entries import FrontMatter
from til.nodes import Element, Node, h

SITE = create_context(SiteConfig(), name="site")
PATH = create_context(name="path")

HEAD_ELEMENT_TYPES = frozenset({"title", "meta", "link", "script"})

CC_ICONS = (
    "https://mirrors.creativecommons.org/presskit/icons/cc.svg",
    "https://mirrors.creativecommons.org/presskit/icons/by.svg",
)


def use_site() -> SiteConfig:
    return use_context(SITE)


def use_path() -> str:
    return use_context(PATH)


def use_rel_path(to: str) -> str:
    """Path to the site-absolute ``to`` relative to the current page."""
    return posixpath.relpath(to, use_path())


def is_head_element(node: Any) -> bool:
    """True for nodes that belong in ``<head>``. Anything else is body content."""
    return isinstance(node, Element) and node.type in HEAD_ELEMENT_TYPES


def partition_children(children: tuple[Any, ...]) -> tuple[list[Any], list[Any]]:
    """Split children into head and body groups, keeping relative order."""
    head: list[Any] = []
    body: list[Any] = []
    for child in children:
        (head if is_head_element(child) else body).append(child)
    return head, body


def document(children: tuple[Any, ...] = ()) -> Node:
    """Wrap page content in ``<html>`` with the shared head and header.

    Composers may emit head and body children interleaved; head children are
    hoisted into ``<head>`` regardless of where they appear.
    """
    site = use_site()
    head, body = partition_children(children)
    return h("html",
        h("head",
            h("meta", {"charset": "UTF-8"}),
            head,
            h("meta", {"name": "viewport", "content": "width=device-width, initial-scale=1"}),
            h("link", {"rel": "canonical", "href": f"{site.base_url}{use_path()}"}),
            h("link", {"rel": "shortcut icon", "href": use_rel_path(site.icon)}),
            h("link", {"rel": "stylesheet", "href": use_rel_path("/assets/style.css")}),
            h("link", {
                "rel": "alternate",
                "type": "application/atom+xml",
                "title": "Reader Feed",
                "href": use_rel_path("/feed.xml"),
            }),
            h(analytics),
        ),
        h("body",
            h("header",
                h("a", {"href": site.author.url},
                    h("img", {"src": use_rel_path("/assets/logo.svg"), "alt": site.author.name}),
                ),
            ),
            body,
        ),
    )


def analytics() -> list[Node] | None:
    site = use_site()
    if not site.analytics_id:
        return None
    return [
        h("script", {
            "async": True,
            "src": f"https://www.googletagmanager.com/gtag/js?id={site.analytics_id}",
        }),
        h("script", {
            "inner_html": (
                "\n  window.dataLayer = window.dataLayer || [];"
                "\n  function gtag(){dataLayer.push(arguments);}"
                "\n  gtag('js', new Date());"
                f"\n  gtag('config', {json.dumps(site.analytics_id)});\n"
            ),
        }),
    ]


def open_graph(data: dict[str, Any]) -> list[Node | None]:
    """One ``<meta>`` per non-empty value. ``twitter:*`` keys use ``name``."""
    return [
        h("meta", {
            "name" if name.startswith("twitter:") else "property": name,
            "content": content,
        })
        if content
        else None
        for name, content in data.items()
    ]


def json_ld(data: dict[str, Any]) -> Node:
    """Structured data block. ``None`` values are omitted."""
    payload = {"@context": "https://schema.org/"}
    payload.update({key: value for key, value in data.items() if value is not None})
    # "</" inside a JSON string would terminate the script element.
    text = json.dumps(payload, indent=2, ensure_ascii=False).replace("</", "<\\/")
    return h("script", {"type": "application/ld+json", "inner_html": f"\n{text}\n"})


def license_block(year: int | str, children: tuple[Any, ...] = ()) -> Node:
    site = use_site()
    return h("div", {
            "class": "license",
            "xmlns:cc": "http://creativecommons.org/ns",
            "xmlns:dct": "http://purl.org/dc/terms/",
        },
        children,
        children and h("br"),
        "© ",
        h("span", {"rel": "dct:dateCopyrighted"}, year),
        " ",
        h("a", {
                "rel": "cc:attributionURL dct:creator",
                "property": "cc:attributionName",
                "href": site.author.url,
            },
            site.author.name,
        ),
        " ⸱ ",
        "licensed under ",
        h("a", {
                "href": site.license_url,
                "target": "_blank",
                "rel": "cc:license license noopener noreferrer",
            },
            site.license_name,
            [h("img", {"src": icon}) for icon in CC_ICONS],
        ),
        " ⸱ ",
        h("a", {
                "href": use_rel_path("/feed.xml"),
                "rel": "alternate feed",
                "type": "application/atom+xml",
            },
            "feed",
        ),
    )


def attribution(filename: str, front_matter: FrontMatter) -> list[Any]:
    """Creation time and source links for an entry's footer."""
    site = use_site()
    created = front_matter.date
    return [
        "This ",
        h("a", {
                "property": "dct:title",
                "rel": "cc:attributionURL",
                "href": site.entry_url(front_matter.permalink),
            },
            site.collection,
        ),
        " was created ",
        h("span", {"property": "dct:created", "content": to_iso(created)}, format_long(created)),
        " ⸱ ",
        h("a", {"href": site.raw_url(filename), "target": "__blank"}, "raw"),
        " ⸱ ",
        h("a", {"href": site.edit_url(filename), "target": "__blank"}, "edit"),
    ]
