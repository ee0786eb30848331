"""Tests for src/site/chrome.py — document shell, metadata and relative paths."""

import json

import pytest

from til.config import SiteConfig
from til.errors import ContextMisuseError
from til.nodes import Element, h
from til.render import expand, render
from til.site.chrome import (
    PATH,
    SITE,
    document,
    is_head_element,
    json_ld,
    open_graph,
    partition_children,
    use_rel_path,
)


def expand_document(*children, path="/x/", site=None):
    tree = SITE.provider(site or SiteConfig(), PATH.provider(path, h(document, *children)))
    html_el = expand(tree)
    head, body = html_el.children
    return head, body


def find(parent, type_, **props):
    return [
        child
        for child in parent.children
        if isinstance(child, Element)
        and child.type == type_
        and all(child.props.get(k) == v for k, v in props.items())
    ]


class TestPartition:
    def test_head_types(self):
        assert is_head_element(h("meta"))
        assert is_head_element(h("script"))
        assert not is_head_element(h("section"))
        assert not is_head_element("text")

    def test_relative_order_preserved(self):
        children = (
            h("title", "T"),
            h("section", "one"),
            h("meta", {"name": "a"}),
            h("section", "two"),
            h("meta", {"name": "b"}),
        )
        head, body = partition_children(children)
        assert head == [children[0], children[2], children[4]]
        assert body == [children[1], children[3]]


class TestDocument:
    def test_head_children_hoisted(self):
        head, body = expand_document(
            h("title", "T"),
            h("meta", {"name": "a", "content": "1"}),
            h("section", "content"),
            h("meta", {"name": "b", "content": "2"}),
        )
        hoisted = [c for c in head.children if c.type == "title" or c.props.get("name") in ("a", "b")]
        assert [c.type for c in hoisted] == ["title", "meta", "meta"]
        assert [c.props.get("name") for c in hoisted[1:]] == ["a", "b"]
        assert find(body, "section")
        assert not find(head, "section")

    def test_unknown_types_go_to_body(self):
        head, body = expand_document(h("custom-widget"))
        assert find(body, "custom-widget")

    def test_canonical_uses_path(self):
        head, _ = expand_document(path="/vim/")
        (canonical,) = find(head, "link", rel="canonical")
        assert canonical.props["href"] == "https://leebyron.com/til/vim/"

    def test_assets_relative_to_page(self):
        head, _ = expand_document(path="/vim/")
        (stylesheet,) = find(head, "link", rel="stylesheet")
        assert stylesheet.props["href"] == "../assets/style.css"

        head, _ = expand_document(path="/")
        (stylesheet,) = find(head, "link", rel="stylesheet")
        assert stylesheet.props["href"] == "assets/style.css"

    def test_requires_path(self):
        with pytest.raises(ContextMisuseError):
            render(h(document))

    def test_no_analytics_by_default(self):
        assert "googletagmanager" not in render(PATH.provider("/", h(document)))

    def test_analytics_when_configured(self):
        site = SiteConfig(analytics_id="G-TEST")
        out = render(SITE.provider(site, PATH.provider("/", h(document))))
        assert "https://www.googletagmanager.com/gtag/js?id=G-TEST" in out
        assert "gtag('config', \"G-TEST\");" in out


class TestRelPath:
    def test_nested(self):
        out = render(PATH.provider("/a/b/", h(lambda: use_rel_path("/feed.xml"))))
        assert out == "../../feed.xml"


class TestOpenGraph:
    def test_empty_values_dropped(self):
        tags = [t for t in open_graph({"og:title": "T", "og:description": ""}) if t]
        assert [t.props["property"] for t in tags] == ["og:title"]

    def test_twitter_uses_name(self):
        (tag,) = open_graph({"twitter:card": "summary"})
        assert tag.props == {"name": "twitter:card", "content": "summary"}


class TestJsonLd:
    def test_payload(self):
        node = json_ld({"@type": "Thing", "name": "x", "keywords": None})
        payload = json.loads(node.props["inner_html"])
        assert payload == {"@context": "https://schema.org/", "@type": "Thing", "name": "x"}

    def test_script_close_escaped(self):
        node = json_ld({"name": "</script><b>"})
        raw = node.props["inner_html"]
        assert "</script>" not in raw
        assert json.loads(raw)["name"] == "</script><b>"
