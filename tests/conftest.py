"""Shared fixtures for building entries and entry files."""

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from til.entries import CompiledEntry, Entry, FrontMatter
from til.markdown import compile_markdown
from til.site import COMPONENTS

PST = timezone(timedelta(hours=-8))


@pytest.fixture
def make_entry():
    """Factory for in-memory entries with sensible defaults."""

    def _make(
        title: str = "X",
        permalink: str = "x",
        markdown: str = "Hello",
        date: datetime = datetime(2023, 3, 1, 9, 30, 5, tzinfo=PST),
        last_modified: datetime = datetime(2023, 3, 2, tzinfo=UTC),
        tags: list[str] | None = None,
        published: bool = True,
        filename: str | None = None,
    ) -> Entry:
        return Entry(
            filename=filename or f"{permalink}.md",
            front_matter=FrontMatter(
                title=title,
                permalink=permalink,
                date=date,
                tags=tags or [],
                published=published,
            ),
            markdown=markdown,
            last_modified=last_modified,
        )

    return _make


@pytest.fixture
def make_compiled(make_entry):
    """Factory for entries with their markdown already compiled."""

    def _make(**kwargs) -> CompiledEntry:
        entry = make_entry(**kwargs)
        return CompiledEntry(entry=entry, content=compile_markdown(entry.markdown, COMPONENTS))

    return _make


@pytest.fixture
def write_entry():
    """Write an entry file with YAML front-matter into a directory."""

    def _write(
        directory: Path,
        filename: str,
        title: str,
        date: str = "2023-03-01T09:30:05-08:00",
        body: str = "Hello",
        permalink: str | None = None,
        extra: str = "",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        lines = ["---", f"title: {title}"]
        if permalink is not None:
            lines.append(f"permalink: {permalink}")
        lines.append(f"date: {date}")
        if extra:
            lines.append(extra)
        lines.append("---")
        path = directory / filename
        path.write_text("\n".join(lines) + "\n\n" + body + "\n", encoding="utf-8")
        return path

    return _write
