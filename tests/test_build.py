"""Tests for src/build.py — the parse, compile, render and write pipeline."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from til.build import _atomic_write, build_site, check_site, render_pages
from til.config import BuildConfig, SiteConfig, TilConfig
from til.errors import REPORT_FILENAME, BuildReport, DuplicatePermalinkError, EmptyFeedError


@pytest.fixture
def entries_dir(tmp_path) -> Path:
    return tmp_path / "entries"


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def config(entries_dir, output_dir) -> TilConfig:
    return TilConfig(
        build=BuildConfig(entries_dir=str(entries_dir), output_dir=str(output_dir))
    )


class TestBuildSite:
    def test_writes_site(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "a.md", "Alpha", permalink="alpha")
        write_entry(entries_dir, "b.md", "Beta", permalink="beta", extra="tags: [vim]")

        report = build_site(config)

        assert report.success
        assert report.items_processed["pages"] == 2
        assert report.stages_completed == ["parse", "compile", "render", "write"]
        for name in ("index.html", "feed.xml", "alpha/index.html", "beta/index.html"):
            assert (output_dir / name).is_file()
        page = (output_dir / "alpha" / "index.html").read_text(encoding="utf-8")
        assert "<p>Hello</p>" in page

    def test_report_saved(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "a.md", "Alpha")
        build_site(config)
        saved = json.loads((output_dir / REPORT_FILENAME).read_text())
        assert saved["items_processed"]["entries"] == 1

    def test_index_newest_first(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "a.md", "Older", date="2021-01-01T00:00:00Z")
        write_entry(entries_dir, "b.md", "Newer", date="2023-01-01T00:00:00Z")
        build_site(config)
        index = (output_dir / "index.html").read_text(encoding="utf-8")
        assert index.index('href="Newer/"') < index.index('href="Older/"')

    def test_duplicate_permalink_writes_nothing(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "a.md", "One", permalink="same")
        write_entry(entries_dir, "b.md", "Two", permalink="same")
        report = BuildReport()

        with pytest.raises(DuplicatePermalinkError):
            build_site(config, report)

        assert not output_dir.exists()
        assert report.success is False
        assert report.errors[-1].error_type == "duplicate_permalink"

    def test_derived_permalink_collision_writes_nothing(
        self, config, entries_dir, output_dir, write_entry
    ):
        write_entry(entries_dir, "a.md", "A b")
        write_entry(entries_dir, "b.md", "A-b")

        with pytest.raises(DuplicatePermalinkError) as exc_info:
            build_site(config)

        assert exc_info.value.permalink == "A-b"
        assert not output_dir.exists()

    def test_empty_site_fails(self, config, entries_dir, output_dir):
        entries_dir.mkdir()
        with pytest.raises(EmptyFeedError):
            build_site(config)
        assert not output_dir.exists()

    def test_malformed_entry_skipped(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        (entries_dir / "bad.md").write_text("---\ntitle: Bad\n---\nno date\n")

        report = build_site(config)

        assert report.success
        assert report.error_count == 1
        assert report.errors[0].source == "bad.md"
        assert (output_dir / "Good" / "index.html").exists()
        assert "Bad" not in (output_dir / "index.html").read_text(encoding="utf-8")

    def test_unknown_custom_tag_skipped(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        write_entry(entries_dir, "tweet.md", "Tweeted", body='<Tweet id="1" />')

        report = build_site(config)

        assert [e.error_type for e in report.errors] == ["unknown_custom_tag"]
        assert report.errors[0].stage == "compile"
        assert not (output_dir / "Tweeted").exists()
        assert "Tweeted" not in (output_dir / "feed.xml").read_text(encoding="utf-8")

    def test_invalid_custom_tag_skipped(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        write_entry(entries_dir, "bad.md", "Bad", body='<YouTube v="abc" start="10" />')

        report = build_site(config)

        assert report.success
        assert [e.error_type for e in report.errors] == ["invalid_custom_tag"]
        assert report.errors[0].stage == "compile"
        assert report.errors[0].source == "bad.md"
        assert (output_dir / "Good" / "index.html").exists()
        assert not (output_dir / "Bad").exists()

    def test_custom_tag_with_blank_content(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        write_entry(entries_dir, "video.md", "Video", body='<YouTube v="abc">\n</YouTube>')

        report = build_site(config)

        assert report.error_count == 0
        assert (output_dir / "Good" / "index.html").exists()
        page = (output_dir / "Video" / "index.html").read_text(encoding="utf-8")
        assert 'src="https://www.youtube.com/embed/abc"' in page

    def test_parallel_matches_sequential(self, tmp_path, entries_dir, write_entry):
        for i in range(6):
            write_entry(entries_dir, f"e{i}.md", f"Entry {i}", date=f"2023-0{i + 1}-01T00:00:00Z")

        def build_into(name, jobs):
            out = tmp_path / name
            cfg = TilConfig(
                build=BuildConfig(entries_dir=str(entries_dir), output_dir=str(out), jobs=jobs)
            )
            build_site(cfg)
            return out

        sequential = build_into("seq", 1)
        parallel = build_into("par", 4)
        pages = sorted(p.relative_to(sequential) for p in sequential.rglob("*.html"))
        assert len(pages) == 7
        for page in pages:
            assert (sequential / page).read_bytes() == (parallel / page).read_bytes()

    def test_intro_and_assets(self, tmp_path, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "a.md", "Alpha")
        intro = tmp_path / "intro.md"
        intro.write_text("Welcome **friends**.\n")
        assets = tmp_path / "assets"
        assets.mkdir()
        (assets / "style.css").write_text("body {}")
        config.build.intro_file = str(intro)
        config.build.assets_dir = str(assets)

        build_site(config)

        assert "<strong>friends</strong>" in (output_dir / "index.html").read_text(encoding="utf-8")
        assert (output_dir / "assets" / "style.css").read_text() == "body {}"


class TestRenderPages:
    def test_keys_are_permalink_paths(self, make_compiled):
        outputs, rendered = render_pages(
            [make_compiled(permalink="a"), make_compiled(permalink="b")], SiteConfig(), jobs=2
        )
        assert sorted(outputs) == ["a/index.html", "b/index.html"]
        assert [c.entry.permalink for c in rendered] == ["a", "b"]


class TestCheckSite:
    def test_reports_without_writing(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        (entries_dir / "bad.md").write_text("nothing\n")

        report = check_site(config)

        assert report.items_processed["entries"] == 1
        assert report.error_count == 1
        assert not output_dir.exists()

    def test_reports_invalid_custom_tag(self, config, entries_dir, output_dir, write_entry):
        write_entry(entries_dir, "good.md", "Good")
        write_entry(entries_dir, "bad.md", "Bad", body='<YouTube start="10" />')

        report = check_site(config)

        assert [e.error_type for e in report.errors] == ["invalid_custom_tag"]
        assert not output_dir.exists()

    def test_duplicates_are_fatal(self, config, entries_dir, write_entry):
        write_entry(entries_dir, "a.md", "One", permalink="same")
        write_entry(entries_dir, "b.md", "Two", permalink="same")
        report = check_site(config)
        assert report.success is False


class TestAtomicWrite:
    def test_writes_file(self, tmp_path):
        target = tmp_path / "index.html"
        _atomic_write(target, "hello world")
        assert target.read_text() == "hello world"

    def test_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "vim" / "index.html"
        _atomic_write(target, "content")
        assert target.read_text() == "content"

    def test_no_temp_file_left_on_success(self, tmp_path):
        target = tmp_path / "index.html"
        _atomic_write(target, "content")
        assert [p.name for p in tmp_path.iterdir()] == ["index.html"]

    def test_no_partial_write_on_failure(self, tmp_path):
        target = tmp_path / "index.html"
        target.write_text("original")

        with patch("til.build.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                _atomic_write(target, "new content that should not appear")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["index.html"]

    def test_encoding_utf8(self, tmp_path):
        target = tmp_path / "index.html"
        _atomic_write(target, "café ⸱ 日本語")
        assert target.read_text(encoding="utf-8") == "café ⸱ 日本語"
