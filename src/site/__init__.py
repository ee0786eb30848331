"""Page and feed composers for the static site.

Each composer is a pure function from entry data and compiled content to a
node tree; the ``render_*`` helpers serialize those trees to documents.
"""

from til.site.chrome import PATH, SITE, document, use_path, use_rel_path
from til.site.feed import feed, render_feed
from til.site.pages import entry_page, index_page, render_entry_page, render_index
from til.site.widgets import COMPONENTS, youtube

__all__ = [
    "COMPONENTS",
    "PATH",
    "SITE",
    "document",
    "entry_page",
    "feed",
    "index_page",
    "render_entry_page",
    "render_feed",
    "render_index",
    "use_path",
    "use_rel_path",
    "youtube",
]
