"""til - render a Today I Learned log into a static site.

Builds immutable node trees with ``h``, scopes ambient values with contexts,
compiles markdown into the same nodes, and serializes pages and an Atom feed.
"""

from til.context import create_context, use_context
from til.markdown import compile_markdown, first_paragraph, text_content
from til.nodes import FRAGMENT, ComponentCall, Element, Fragment, h
from til.render import Dialect, expand, render

__version__ = "0.1.0"

__all__ = [
    "FRAGMENT",
    "ComponentCall",
    "Dialect",
    "Element",
    "Fragment",
    "__version__",
    "compile_markdown",
    "create_context",
    "expand",
    "first_paragraph",
    "h",
    "render",
    "text_content",
    "use_context",
]
