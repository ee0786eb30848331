"""Entry discovery and front-matter parsing.

An entry is a markdown file that starts with a YAML front-matter block::

    ---
    title: Vim registers
    permalink: vim-registers
    date: 2022-03-01T09:30:00-08:00
    tags: [vim]
    ---

    Body text...
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from til.dates import ensure_aware
from til.errors import BuildReport, DuplicatePermalinkError, MalformedFrontMatterError

logger = logging.getLogger(__name__)

ENTRY_GLOB = "*.md"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE)
_SLUG_SEPARATORS_RE = re.compile(r"(-|[^0-9a-z])+", re.IGNORECASE)
_PERMALINK_RE = re.compile(r"^[A-Za-z0-9._~-]+$")


def slugify(title: str) -> str:
    """Derive a permalink from a title. Case is preserved."""
    return _SLUG_SEPARATORS_RE.sub("-", title).strip("-")


class FrontMatter(BaseModel):
    """Per-entry metadata."""

    title: str
    permalink: str
    date: datetime
    tags: list[str] = Field(default_factory=list)
    published: bool = True

    @field_validator("title", "permalink", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("permalink")
    @classmethod
    def _url_safe(cls, value: str) -> str:
        if not _PERMALINK_RE.match(value):
            raise ValueError(f"permalink {value!r} is not URL-safe")
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _date_objects(cls, value: Any) -> Any:
        if isinstance(value, date):
            return ensure_aware(value)
        return value

    @field_validator("date")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(tag) for tag in value]
        return value

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class Entry(BaseModel):
    """A parsed entry file."""

    filename: str
    front_matter: FrontMatter
    markdown: str = ""
    last_modified: datetime

    @property
    def permalink(self) -> str:
        return self.front_matter.permalink


class CompiledEntry(BaseModel):
    """An entry together with its compiled content tree."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entry: Entry
    content: Any


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a document into its front-matter mapping and markdown body.

    Raises:
        ValueError: If there is no front-matter block or it is not a mapping.
        yaml.YAMLError: If the block is not valid YAML.
    """
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        raise ValueError("missing front-matter block")
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        raise ValueError("front-matter is not a mapping")
    return data, text[match.end():]


def parse_entry_text(filename: str, text: str, last_modified: datetime) -> Entry:
    """Parse entry file contents.

    Raises:
        MalformedFrontMatterError: If the front-matter is missing, invalid, or
            lacks a required field.
    """
    try:
        data, body = split_front_matter(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise MalformedFrontMatterError(filename, str(exc)) from exc

    if not data.get("permalink") and data.get("title"):
        data["permalink"] = slugify(str(data["title"]))

    try:
        front_matter = FrontMatter.model_validate(data)
    except ValidationError as exc:
        raise MalformedFrontMatterError(filename, _describe(exc)) from exc

    return Entry(
        filename=filename,
        front_matter=front_matter,
        markdown=body,
        last_modified=ensure_aware(last_modified),
    )


def read_entry(path: Path) -> Entry:
    """Read and parse a single entry file."""
    text = path.read_text(encoding="utf-8")
    last_modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    return parse_entry_text(path.name, text, last_modified)


def discover_entries(entries_dir: Path) -> list[Path]:
    """List entry files in a stable order."""
    if not entries_dir.is_dir():
        return []
    return sorted(entries_dir.glob(ENTRY_GLOB))


def load_entries(entries_dir: Path, report: BuildReport | None = None) -> list[Entry]:
    """Read every entry in ``entries_dir``.

    A file that cannot be read or parsed is logged and recorded in
    ``report``; it never prevents the other entries from loading.
    """
    entries: list[Entry] = []
    for path in discover_entries(entries_dir):
        try:
            entries.append(read_entry(path))
        except MalformedFrontMatterError as exc:
            logger.warning("Skipping %s: %s", path.name, exc.reason)
            if report is not None:
                report.add_exception("parse", exc, source=path.name)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read entry file: %s", path)
            if report is not None:
                report.add_error("parse", str(exc), source=path.name, error_type="io_error")

    logger.info("Loaded %d entries from %s", len(entries), entries_dir)
    return entries


def check_unique_permalinks(entries: list[Entry]) -> None:
    """Raise DuplicatePermalinkError if two entries share an output path."""
    owners: dict[str, list[str]] = defaultdict(list)
    for entry in entries:
        owners[entry.permalink].append(entry.filename)
    for permalink, filenames in owners.items():
        if len(filenames) > 1:
            raise DuplicatePermalinkError(permalink, filenames)


def sort_newest_first(entries: list[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda e: e.front_matter.date, reverse=True)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "front-matter"
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)
