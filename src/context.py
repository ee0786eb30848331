"""Ambient context for render passes.

A ``Context`` is an identity carrying an optional default. Providers bind a
value for the subtree they wrap; ``use_context`` reads the innermost binding
while that subtree is being expanded.

Each call to ``til.render.expand`` installs its own ``Bindings`` stack in a
``ContextVar``, so renders running in different threads (or a render nested
inside another component) never observe each other's bindings.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextvars import ContextVar
from typing import Any

from til.errors import ContextMisuseError

_MISSING: Any = object()


class Context:
    """An ambient value identity. Compared by identity, never by value."""

    def __init__(self, default: Any = _MISSING, name: str = "") -> None:
        self.default = default
        self.name = name

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def provider(self, value: Any, *children: Any) -> Any:
        """Build a provider node binding ``value`` around ``children``."""
        from til.nodes import h

        return h(self, {"value": value}, *children)

    def consumer(self, render: Any) -> Any:
        """Build a consumer node that expands ``render(value)``."""
        from til.nodes import Consumer

        return Consumer(context=self, render=render)

    def __repr__(self) -> str:
        return f"Context({self.name or hex(id(self))})"


def create_context(default: Any = _MISSING, name: str = "") -> Context:
    """Create a fresh context identity, optionally with a default value."""
    return Context(default, name=name)


class Bindings:
    """The binding stack for a single render pass."""

    def __init__(self) -> None:
        self._stack: list[tuple[Context, Any]] = []

    def __len__(self) -> int:
        return len(self._stack)

    @contextlib.contextmanager
    def bind(self, context: Context, value: Any) -> Iterator[None]:
        """Bind ``context`` to ``value`` until the block exits."""
        self._stack.append((context, value))
        depth = len(self._stack)
        try:
            yield
        finally:
            # Unwind anything a failing child left behind along with our own entry.
            del self._stack[depth - 1 :]

    def lookup(self, context: Context) -> Any:
        """Return the innermost bound value, falling back to the default."""
        for bound, value in reversed(self._stack):
            if bound is context:
                return value
        if context.has_default:
            return context.default
        raise ContextMisuseError(
            f"{context!r} was read outside of a provider and declares no default"
        )


_active: ContextVar[Bindings | None] = ContextVar("til_bindings", default=None)


def current_bindings() -> Bindings | None:
    """Return the stack of the render pass running in this context, if any."""
    return _active.get()


@contextlib.contextmanager
def render_pass() -> Iterator[Bindings]:
    """Install a fresh binding stack for the duration of one expansion."""
    bindings = Bindings()
    token = _active.set(bindings)
    try:
        yield bindings
    finally:
        _active.reset(token)


def use_context(context: Context) -> Any:
    """Read the value bound to ``context`` for the subtree being expanded."""
    bindings = _active.get()
    if bindings is None:
        if context.has_default:
            return context.default
        raise ContextMisuseError(
            f"{context!r} was read outside of a render and declares no default"
        )
    return bindings.lookup(context)
