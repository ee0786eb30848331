"""Build pipeline: entry files in, static site out.

Stages: parse → compile → render → write. Entry-level failures (bad
front-matter, unknown custom tags) are recorded in the report and the entry
is left out of the site. Build-level failures (duplicate permalinks, an empty
feed) abort before anything is written.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any

from til.config import SiteConfig, TilConfig
from til.entries import (
    CompiledEntry,
    Entry,
    check_unique_permalinks,
    load_entries,
    sort_newest_first,
    split_front_matter,
)
from til.errors import BuildReport, ContextMisuseError, TilError, save_report
from til.markdown import Components, compile_markdown
from til.site import COMPONENTS, render_entry_page, render_feed, render_index

logger = logging.getLogger(__name__)


def compile_entries(
    entries: list[Entry],
    components: Components = COMPONENTS,
    report: BuildReport | None = None,
) -> list[CompiledEntry]:
    """Compile each entry's markdown, skipping entries that fail."""
    compiled: list[CompiledEntry] = []
    for entry in entries:
        try:
            content = compile_markdown(entry.markdown, components)
        except TilError as exc:
            logger.warning("Skipping %s: %s", entry.filename, exc)
            if report is not None:
                report.add_exception("compile", exc, source=entry.filename)
            continue
        compiled.append(CompiledEntry(entry=entry, content=content))
    return compiled


def render_pages(
    compiled: list[CompiledEntry],
    site: SiteConfig,
    *,
    jobs: int = 1,
    report: BuildReport | None = None,
) -> tuple[dict[str, str], list[CompiledEntry]]:
    """Render every entry page.

    Each render pass owns its binding stack, so pages may be rendered on a
    thread pool when ``jobs > 1``.

    Returns:
        A mapping of output path (relative to the site root) to HTML, and
        the entries whose page rendered.
    """
    outputs: dict[str, str] = {}
    rendered: list[CompiledEntry] = []

    def record(item: CompiledEntry, render_call: Callable[[], str]) -> None:
        try:
            html = render_call()
        except ContextMisuseError:
            raise
        except TilError as exc:
            logger.warning("Failed to render %s: %s", item.entry.filename, exc)
            if report is not None:
                report.add_exception("render", exc, source=item.entry.filename)
            return
        outputs[f"{item.entry.permalink}/index.html"] = html
        rendered.append(item)

    if jobs > 1 and len(compiled) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(render_entry_page, item, site) for item in compiled]
            for item, future in zip(compiled, futures):
                record(item, future.result)
    else:
        for item in compiled:
            record(item, partial(render_entry_page, item, site))

    return outputs, rendered


def load_intro(path: str, components: Components = COMPONENTS) -> Any:
    """Compile the optional intro shown above the index's entry log."""
    if not path:
        return None
    intro_path = Path(path)
    if not intro_path.exists():
        logger.warning("Intro file not found: %s", intro_path)
        return None
    text = intro_path.read_text(encoding="utf-8")
    with contextlib.suppress(ValueError):
        _, text = split_front_matter(text)
    return compile_markdown(text, components)


def render_site(
    entries: list[Entry],
    config: TilConfig,
    report: BuildReport,
    components: Components = COMPONENTS,
) -> dict[str, str]:
    """Render every output document in memory.

    Raises:
        DuplicatePermalinkError: If two entries share a permalink.
        EmptyFeedError: If no entry survived to be put in the feed.
    """
    site = config.site
    check_unique_permalinks(entries)

    compiled = compile_entries(sort_newest_first(entries), components, report)
    report.items_processed["compiled"] = len(compiled)
    report.mark_stage_complete("compile")

    outputs, rendered = render_pages(compiled, site, jobs=config.build.jobs, report=report)
    intro = load_intro(config.build.intro_file, components)
    outputs["index.html"] = render_index([c.entry.front_matter for c in rendered], intro, site)
    outputs["feed.xml"] = render_feed(rendered, site)
    report.items_processed["pages"] = len(rendered)
    report.mark_stage_complete("render")
    return outputs


def write_outputs(outputs: Mapping[str, str], output_dir: Path, report: BuildReport) -> None:
    for relative, content in sorted(outputs.items()):
        target = output_dir / relative
        _atomic_write(target, content)
        report.outputs_written.append(str(target))
    logger.info("Wrote %d files to %s", len(outputs), output_dir)


def copy_assets(assets_dir: str, output_dir: Path) -> None:
    if not assets_dir:
        return
    source = Path(assets_dir)
    if not source.is_dir():
        logger.warning("Assets directory not found: %s", source)
        return
    shutil.copytree(source, output_dir / "assets", dirs_exist_ok=True)


def build_site(config: TilConfig, report: BuildReport | None = None) -> BuildReport:
    """Run the whole build and write the site.

    Raises:
        TilError: On a build-level failure. The report records it as fatal
            and nothing is written.
    """
    report = report if report is not None else BuildReport()
    output_dir = Path(config.build.output_dir)

    entries = load_entries(Path(config.build.entries_dir), report)
    report.items_processed["entries"] = len(entries)
    report.mark_stage_complete("parse")

    try:
        outputs = render_site(entries, config, report)
    except TilError as exc:
        report.add_exception("build", exc, recoverable=False)
        report.finish()
        raise

    write_outputs(outputs, output_dir, report)
    copy_assets(config.build.assets_dir, output_dir)
    report.mark_stage_complete("write")
    report.finish()
    save_report(report, output_dir)
    return report


def check_site(config: TilConfig, report: BuildReport | None = None) -> BuildReport:
    """Parse and compile every entry without rendering or writing anything."""
    report = report if report is not None else BuildReport()
    entries = load_entries(Path(config.build.entries_dir), report)
    report.items_processed["entries"] = len(entries)
    report.mark_stage_complete("parse")

    try:
        check_unique_permalinks(entries)
    except TilError as exc:
        report.add_exception("check", exc, recoverable=False)
        report.finish()
        return report

    compiled = compile_entries(entries, COMPONENTS, report)
    report.items_processed["compiled"] = len(compiled)
    report.mark_stage_complete("compile")
    report.finish()
    return report


def _atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` without leaving a partial file behind."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
