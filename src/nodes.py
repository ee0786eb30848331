"""Immutable document nodes and the ``h`` builder.

Every node is a frozen pydantic model with read-only props. Composition never
mutates a node; it only wraps it in new parents::

    h("ul", {"class": "tags"}, [h("li", tag) for tag in tags])

Children may be nested lists, tuples or generators at any depth. They are
flattened in order, and ``None``/``False`` placeholders are dropped so that
``flag and h("br")`` composes naturally. ``0`` and ``""`` are kept.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from til.context import Context

FRAGMENT = "#fragment"


class Node(BaseModel):
    """Base class for all structural nodes."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def freeze_props(props: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only copy of an attribute mapping, style mappings included."""
    return MappingProxyType({
        name: freeze_props(value) if isinstance(value, Mapping) else value
        for name, value in props.items()
    })


class Element(Node):
    """A typed element with attributes and ordered children."""

    type: str
    props: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    children: tuple[Any, ...] = ()

    @field_validator("props")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze_props(value)


class Fragment(Node):
    """A typeless group of children, spliced into its parent on expansion."""

    children: tuple[Any, ...] = ()


class ComponentCall(Node):
    """A deferred call to a composer function, expanded at render time."""

    component: Callable[..., Any]
    props: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("props")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze_props(value)

    @property
    def name(self) -> str:
        return getattr(self.component, "__name__", repr(self.component))


class Provider(Node):
    """Binds ``context`` to ``value`` while its children are expanded."""

    context: Context
    value: Any = None
    children: tuple[Any, ...] = ()


class Consumer(Node):
    """Expands ``render(value)`` with the value currently bound to ``context``."""

    context: Context
    render: Callable[[Any], Any]


def _is_props(value: Any) -> bool:
    return isinstance(value, Mapping) and not isinstance(value, Node)


def _flatten_into(items: Iterable[Any], out: list[Any]) -> None:
    for item in items:
        if item is None or item is False:
            continue
        if isinstance(item, (list, tuple, Iterator)):
            _flatten_into(item, out)
        else:
            out.append(item)


def flatten_children(children: Iterable[Any]) -> tuple[Any, ...]:
    """Flatten nested child sequences, dropping ``None`` and ``False``."""
    flat: list[Any] = []
    _flatten_into(children, flat)
    return tuple(flat)


def h(type_: Any, *args: Any) -> Node:
    """Build a node.

    Args:
        type_: An element name, ``FRAGMENT``, a ``Context`` (builds a
            provider; the bound value comes from the ``value`` attribute) or
            a callable component.
        *args: An optional attribute mapping followed by children. A first
            argument that is not a plain mapping is treated as a child.

    Returns:
        The constructed node.
    """
    props: dict[str, Any] = {}
    if args and _is_props(args[0]):
        props = dict(args[0])
        args = args[1:]
    children = flatten_children(args)

    if isinstance(type_, str):
        if type_ == FRAGMENT:
            return Fragment(children=children)
        return Element(type=type_, props=props, children=children)

    if isinstance(type_, Context):
        if "value" not in props:
            raise TypeError(f"Provider for {type_!r} requires a 'value' attribute")
        return Provider(context=type_, value=props["value"], children=children)

    if callable(type_):
        if children:
            props["children"] = children
        return ComponentCall(component=type_, props=props)

    raise TypeError(f"Cannot build a node from {type_!r}")
