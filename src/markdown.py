"""Markdown to node compiler.

Parses entry bodies with markdown-it-py and converts the token stream into
the same nodes ``til.nodes.h`` builds. Embedded HTML is converted too; tags
starting with an uppercase letter are custom components looked up in the
mapping passed to ``compile_markdown``::

    <YouTube v="dQw4w9WgXcQ" aspectRatio="16/9" />

becomes ``h(youtube, {"v": "dQw4w9WgXcQ", "aspect_ratio": "16/9"})``.
"""

from __future__ import annotations

import html
import inspect
import logging
import re
from collections.abc import Callable, Mapping
from html.parser import HTMLParser
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token

from til.errors import InvalidCustomTagError, UnknownCustomTagError
from til.nodes import FRAGMENT, ComponentCall, Element, Fragment, Provider, h
from til.render import VOID_ELEMENTS

logger = logging.getLogger(__name__)

Components = Mapping[str, Callable[..., Any]]

_md = MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])

_TAG_NAME_RE = re.compile(r"<\s*([A-Za-z][\w.:-]*)")
_ATTR_RE = re.compile(
    r"""([^\s"'<>/=]+)"""
    r"""(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|\{([^}]*)\}|([^\s"'=<>`]+)))?"""
)
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def compile_markdown(text: str, components: Components | None = None) -> Fragment:
    """Compile markdown text into a fragment of nodes.

    Args:
        text: Raw markdown body (front-matter already removed).
        components: Custom tag name to component mapping.

    Returns:
        A fragment whose children are the top-level blocks.

    Raises:
        UnknownCustomTagError: If the text uses a custom tag not in
            ``components``.
        InvalidCustomTagError: If a custom tag's attributes or content do
            not fit its component.
    """
    builder = _TreeBuilder(components or {})
    _walk(_md.parse(text), builder)
    return builder.finish()


def text_content(node: Any) -> str:
    """Return all text under ``node`` with markup stripped."""
    if node is None or isinstance(node, bool):
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, (int, float)):
        return str(node)
    if isinstance(node, (list, tuple)):
        return "".join(text_content(child) for child in node)
    if isinstance(node, (Element, Fragment, Provider)):
        return text_content(node.children)
    if isinstance(node, ComponentCall):
        return text_content(node.props.get("children", ()))
    return ""


def first_paragraph(node: Any) -> Element | None:
    """Return the first top-level paragraph of a compiled tree."""
    if isinstance(node, Element) and node.type == "p":
        return node
    for child in getattr(node, "children", ()):
        if isinstance(child, Element) and child.type == "p":
            return child
    return None


def is_custom_tag(name: str) -> bool:
    return name[:1].isupper()


def _prop_name(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def _walk(tokens: list[Token], builder: _TreeBuilder) -> None:
    for token in tokens:
        if token.type == "inline":
            _walk(token.children or [], builder)
        elif token.nesting == 1:
            builder.open(token.tag, dict(token.attrs), splice=token.hidden)
        elif token.nesting == -1:
            builder.close()
        else:
            _leaf(token, builder)


def _leaf(token: Token, builder: _TreeBuilder) -> None:
    kind = token.type
    if kind == "text":
        builder.append(token.content)
    elif kind == "softbreak":
        builder.append("\n")
    elif kind == "hardbreak":
        builder.append(h("br"))
    elif kind == "code_inline":
        builder.append(h("code", token.content))
    elif kind in ("fence", "code_block"):
        lang = token.info.strip().split(maxsplit=1)[0] if token.info.strip() else ""
        code_props = {"class": f"language-{lang}"} if lang else {}
        builder.append(h("pre", h("code", code_props, token.content)))
    elif kind == "hr":
        builder.append(h("hr"))
    elif kind == "image":
        attrs = dict(token.attrs)
        builder.append(
            h("img", {
                "src": attrs.get("src", ""),
                "alt": _plain_text(token.children or []),
                "title": attrs.get("title"),
            })
        )
    elif kind in ("html_block", "html_inline"):
        converter = _HtmlConverter(builder)
        converter.feed(token.content)
        converter.close()
    else:
        logger.debug("Unhandled markdown token %s", kind)
        if token.content:
            builder.append(token.content)


def _plain_text(tokens: list[Token]) -> str:
    parts: list[str] = []
    for token in tokens:
        if token.children:
            parts.append(_plain_text(token.children))
        elif token.type in ("text", "code_inline"):
            parts.append(token.content)
        elif token.type in ("softbreak", "hardbreak"):
            parts.append(" ")
    return "".join(parts)


class _Frame:
    """An open element collecting children while tokens are walked."""

    def __init__(
        self,
        tag: str,
        props: dict[str, Any],
        *,
        source: str,
        splice: bool = False,
        component: Callable[..., Any] | None = None,
    ) -> None:
        self.tag = tag
        self.props = props
        self.source = source
        self.splice = splice
        self.component = component
        self.children: list[Any] = []

    def build(self) -> Any:
        if self.splice:
            return self.children
        if self.component is not None:
            return _component_call(self.tag, self.component, self.props, self.children)
        return h(self.tag, self.props, self.children)


def _component_call(
    tag: str, component: Callable[..., Any], props: dict[str, Any], children: list[Any]
) -> ComponentCall:
    """Build a custom tag's call, checking its props against the component.

    Raises:
        InvalidCustomTagError: If the attributes or content cannot be passed
            to ``component``.
    """
    # Line breaks around block content are layout, not children.
    content = [child for child in children if not (isinstance(child, str) and not child.strip())]
    call = h(component, props, content)
    try:
        inspect.signature(component).bind(**call.props)
    except TypeError as exc:
        raise InvalidCustomTagError(tag, str(exc)) from exc
    return call


class _TreeBuilder:
    """Stack of open frames shared by markdown tokens and embedded HTML."""

    def __init__(self, components: Components) -> None:
        self._components = components
        self._stack: list[_Frame] = [_Frame(FRAGMENT, {}, source="root")]

    @property
    def in_html(self) -> bool:
        return self._stack[-1].source == "html"

    def append(self, node: Any) -> None:
        self._stack[-1].children.append(node)

    def open(self, tag: str, props: dict[str, Any], *, splice: bool = False) -> None:
        self._stack.append(_Frame(tag, props, source="markdown", splice=splice))

    def close(self) -> None:
        """Close the innermost markdown frame, closing stray HTML inside it."""
        while len(self._stack) > 1:
            frame = self._pop()
            if frame.source == "markdown":
                return

    def open_html(self, name: str, props: dict[str, Any]) -> None:
        component = self._resolve(name)
        if component is not None:
            props = {_prop_name(key): value for key, value in props.items()}
        self._stack.append(_Frame(name, props, source="html", component=component))

    def leaf_html(self, name: str, props: dict[str, Any]) -> None:
        self.open_html(name, props)
        self._pop()

    def close_html(self, name: str) -> None:
        """Close the matching open HTML frame, if one is open in this block."""
        for depth in range(len(self._stack) - 1, 0, -1):
            frame = self._stack[depth]
            if frame.source != "html":
                break
            if frame.tag.lower() == name.lower():
                while len(self._stack) > depth:
                    self._pop()
                return
        logger.debug("Ignoring unmatched closing tag </%s>", name)

    def finish(self) -> Fragment:
        while len(self._stack) > 1:
            self._pop()
        root = self._stack[0]
        return h(FRAGMENT, root.children)

    def _pop(self) -> _Frame:
        frame = self._stack.pop()
        self.append(frame.build())
        return frame

    def _resolve(self, name: str) -> Callable[..., Any] | None:
        if not is_custom_tag(name):
            return None
        component = self._components.get(name)
        if component is None:
            raise UnknownCustomTagError(name, list(self._components))
        return component


class _HtmlConverter(HTMLParser):
    """Feeds raw HTML from markdown into the shared tree builder."""

    def __init__(self, builder: _TreeBuilder) -> None:
        super().__init__(convert_charrefs=True)
        self._builder = builder

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        name, props = _parse_start_tag(self.get_starttag_text() or f"<{tag}>")
        if name.lower() in VOID_ELEMENTS and not is_custom_tag(name):
            self._builder.leaf_html(name, props)
        else:
            self._builder.open_html(name, props)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        name, props = _parse_start_tag(self.get_starttag_text() or f"<{tag}/>")
        self._builder.leaf_html(name, props)

    def handle_endtag(self, tag: str) -> None:
        self._builder.close_html(tag)

    def handle_data(self, data: str) -> None:
        # Whitespace between blocks is layout, not content.
        if not data.strip() and not self._builder.in_html:
            return
        self._builder.append(data)


def _parse_start_tag(raw: str) -> tuple[str, dict[str, Any]]:
    """Recover the tag name and attributes with their original case.

    ``HTMLParser`` lowercases both, but custom tags and their camelCase
    props need the source spelling.
    """
    match = _TAG_NAME_RE.match(raw)
    if match is None:
        return raw.strip("<>/ "), {}
    name = match.group(1)
    rest = raw[match.end():].rstrip().removesuffix(">").removesuffix("/")
    props: dict[str, Any] = {}
    for attr in _ATTR_RE.finditer(rest):
        key, double, single, expr, bare = attr.groups()
        if double is not None:
            props[key] = html.unescape(double)
        elif single is not None:
            props[key] = html.unescape(single)
        elif expr is not None:
            props[key] = _jsx_value(expr)
        elif bare is not None:
            props[key] = bare
        else:
            props[key] = True
    return name, props


def _jsx_value(expr: str) -> Any:
    expr = expr.strip()
    if len(expr) >= 2 and expr[0] == expr[-1] and expr[0] in "\"'`":
        return expr[1:-1]
    if expr in ("true", "false"):
        return expr == "true"
    for convert in (int, float):
        try:
            return convert(expr)
        except ValueError:
            continue
    return expr
