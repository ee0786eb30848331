"""Site configuration loaded from .til.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".til.toml"
CONFIG_CANDIDATES = [
    Path(CONFIG_FILENAME),
    Path.home() / ".config" / "til" / "config.toml",
]


class AuthorConfig(BaseModel):
    """[site.author] section."""

    name: str = "Lee Byron"
    first_name: str = "Lee"
    last_name: str = "Byron"
    url: str = "https://leebyron.com"
    twitter: str = "@leeb"


class SiteConfig(BaseModel):
    """[site] section. Everything the page composers need to know."""

    url: str = "https://leebyron.com"
    collection: str = "til"
    title: str = "Today I Learned"
    description: str = "A bunch of brief blurbs on miscellaneous matter."
    language: str = "en-us"
    icon: str = "/assets/favicon.png"
    copyright_year: int = 2022
    license_url: str = "https://creativecommons.org/licenses/by/4.0/"
    license_name: str = "CC BY 4.0"
    repository: str = "leebyron/til"
    branch: str = "main"
    entries_path: str = "entries"
    analytics_id: str = ""
    author: AuthorConfig = Field(default_factory=AuthorConfig)

    @property
    def base_url(self) -> str:
        """Absolute URL of the collection root, without a trailing slash."""
        return f"{self.url.rstrip('/')}/{self.collection.strip('/')}"

    @property
    def feed_url(self) -> str:
        return f"{self.base_url}/feed.xml"

    def entry_url(self, permalink: str) -> str:
        return f"{self.base_url}/{permalink}/"

    def raw_url(self, filename: str) -> str:
        """Link to the unrendered source of an entry."""
        return (
            f"https://raw.githubusercontent.com/{self.repository}/{self.branch}/"
            f"{self.entries_path}/{quote(filename, safe='')}"
        )

    def edit_url(self, filename: str) -> str:
        """Link to edit an entry, positioned just past its front-matter."""
        return (
            f"https://github.com/{self.repository}/edit/{self.branch}/"
            f"{self.entries_path}/{quote(filename, safe='')}#L8"
        )


class BuildConfig(BaseModel):
    """[build] section."""

    entries_dir: str = "./entries"
    output_dir: str = "./build"
    intro_file: str = ""
    assets_dir: str = ""
    jobs: int = 1


class TilConfig(BaseModel):
    """Top-level configuration model."""

    site: SiteConfig = Field(default_factory=SiteConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)


def load_config(path: str | Path | None = None) -> TilConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .til.toml in CWD
    3. ~/.config/til/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged TilConfig.
    """
    toml_path = Path(path) if path is not None else find_config_file()
    data: dict[str, object] = {}
    if toml_path is None:
        logger.debug("No config file found, using defaults")
    elif toml_path.exists():
        data = _load_toml(toml_path)
        logger.info("Loaded config from %s", toml_path)
    else:
        logger.warning("Config file not found: %s", toml_path)

    config = TilConfig.model_validate(data) if data else TilConfig()
    return _apply_env_vars(config)


def find_config_file() -> Path | None:
    """First existing file among ``CONFIG_CANDIDATES``, if any."""
    return next((candidate for candidate in CONFIG_CANDIDATES if candidate.is_file()), None)


def merge_cli_overrides(config: TilConfig, **cli_kwargs: object) -> TilConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "entries_dir": ("build", "entries_dir"),
        "output_dir": ("build", "output_dir"),
        "intro_file": ("build", "intro_file"),
        "assets_dir": ("build", "assets_dir"),
        "jobs": ("build", "jobs"),
        "site_url": ("site", "url"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = str(value) if isinstance(value, Path) else value

    return TilConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: TilConfig) -> TilConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "TIL_SITE_URL": ("site", "url"),
        "TIL_ANALYTICS_ID": ("site", "analytics_id"),
        "TIL_ENTRIES_DIR": ("build", "entries_dir"),
        "TIL_OUTPUT_DIR": ("build", "output_dir"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    jobs_raw = os.environ.get("TIL_JOBS")
    if jobs_raw is not None:
        try:
            data["build"]["jobs"] = int(jobs_raw)
        except ValueError:
            logger.warning("Ignoring non-numeric TIL_JOBS=%r", jobs_raw)

    return TilConfig.model_validate(data)
