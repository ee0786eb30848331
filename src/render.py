"""Expansion and serialization of node trees.

``expand`` resolves component calls, providers and consumers in one
depth-first pass. ``render`` expands and then serializes the resolved tree to
HTML or XML text.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Iterator, Mapping
from enum import StrEnum
from typing import Any

from til.context import Bindings, render_pass
from til.nodes import ComponentCall, Consumer, Element, Fragment, Provider

logger = logging.getLogger(__name__)

# Attribute carrying trusted, pre-serialized markup for an element's content.
RAW_MARKUP_ATTR = "inner_html"

VOID_ELEMENTS = frozenset({
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "source",
    "track",
    "wbr",
})


class Dialect(StrEnum):
    """Markup dialects the serializer can emit."""

    HTML = "html"
    XML = "xml"


PROLOGS: dict[Dialect, str] = {
    Dialect.HTML: "<!DOCTYPE html>",
    Dialect.XML: '<?xml version="1.0" encoding="utf-8"?>',
}


def expand(node: Any) -> Element | Fragment:
    """Resolve every deferred node, returning a tree of elements and text.

    A fresh binding stack is installed for the pass, so expansions in other
    threads or nested inside a component keep independent bindings.
    """
    resolved: list[Any] = []
    with render_pass() as bindings:
        _expand_into(node, bindings, resolved)
    if len(resolved) == 1 and isinstance(resolved[0], Element):
        return resolved[0]
    return Fragment(children=tuple(resolved))


def _expand_into(node: Any, bindings: Bindings, out: list[Any]) -> None:
    if node is None or isinstance(node, bool):
        return
    if isinstance(node, str):
        out.append(node)
    elif isinstance(node, (int, float)):
        out.append(str(node))
    elif isinstance(node, (list, tuple, Iterator)):
        for child in node:
            _expand_into(child, bindings, out)
    elif isinstance(node, Element):
        children: list[Any] = []
        for child in node.children:
            _expand_into(child, bindings, children)
        out.append(Element(type=node.type, props=node.props, children=tuple(children)))
    elif isinstance(node, Fragment):
        for child in node.children:
            _expand_into(child, bindings, out)
    elif isinstance(node, ComponentCall):
        logger.debug("Expanding component %s", node.name)
        _expand_into(node.component(**node.props), bindings, out)
    elif isinstance(node, Provider):
        with bindings.bind(node.context, node.value):
            for child in node.children:
                _expand_into(child, bindings, out)
    elif isinstance(node, Consumer):
        _expand_into(node.render(bindings.lookup(node.context)), bindings, out)
    else:
        raise TypeError(f"Cannot render {type(node).__name__}: {node!r}")


def render(node: Any, dialect: Dialect = Dialect.HTML, *, document: bool = False) -> str:
    """Expand ``node`` and serialize it.

    Args:
        node: Any node, text or nested sequence of them.
        dialect: Target markup dialect.
        document: Prepend the dialect's prolog (doctype or XML declaration).

    Returns:
        The serialized markup.
    """
    tree = expand(node)
    parts: list[str] = []
    if document:
        parts.append(PROLOGS[dialect])
        parts.append("\n")
    _serialize(tree, dialect, parts)
    return "".join(parts)


def _serialize(node: Any, dialect: Dialect, out: list[str]) -> None:
    if isinstance(node, str):
        out.append(html.escape(node))
        return
    if isinstance(node, Fragment):
        for child in node.children:
            _serialize(child, dialect, out)
        return

    out.append(f"<{node.type}{_format_attributes(node.props, dialect)}")
    raw = node.props.get(RAW_MARKUP_ATTR)

    if dialect is Dialect.HTML and node.type in VOID_ELEMENTS:
        out.append(">")
        return
    if dialect is Dialect.XML and raw is None and not node.children:
        out.append("/>")
        return

    out.append(">")
    if raw is not None:
        out.append(str(raw))
    else:
        for child in node.children:
            _serialize(child, dialect, out)
    out.append(f"</{node.type}>")


def _format_attributes(props: Mapping[str, Any], dialect: Dialect) -> str:
    parts: list[str] = []
    for name, value in props.items():
        if name == RAW_MARKUP_ATTR or value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}" if dialect is Dialect.HTML else f' {name}="{name}"')
            continue
        if isinstance(value, Mapping):
            value = format_style(value)
        parts.append(f' {name}="{html.escape(str(value))}"')
    return "".join(parts)


def format_style(style: Mapping[str, Any]) -> str:
    """Serialize a style mapping as ``key:value`` pairs joined by ``;``."""
    return ";".join(
        f"{key}:{value}"
        for key, value in style.items()
        if value is not None and value is not False
    )
