"""Custom components available to entry markdown."""

from __future__ import annotations

from til.nodes import Node, h


def youtube(v: str, aspect_ratio: str | None = None) -> Node:
    """Embedded YouTube player.

    Usage in markdown: ``<YouTube v="VIDEO_ID" aspectRatio="16/9" />``.
    """
    return h("div", {"class": "yt-player", "style": {"--aspectRatio": aspect_ratio}},
        h("iframe", {
            "src": f"https://www.youtube.com/embed/{v}",
            "title": "YouTube video player",
            "frameborder": "0",
            "allow": (
                "accelerometer; autoplay; clipboard-write; encrypted-media; "
                "gyroscope; picture-in-picture"
            ),
            "allowfullscreen": True,
        }),
    )


COMPONENTS = {
    "YouTube": youtube,
}
