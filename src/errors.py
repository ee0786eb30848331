"""Error types and structured reporting for site builds."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

REPORT_FILENAME = ".til-last-build.json"


class TilError(Exception):
    """Base class for every error raised while building the site."""

    error_type = "til_error"


class MalformedFrontMatterError(TilError):
    """An entry's front-matter is missing, incomplete or unparsable."""

    error_type = "malformed_front_matter"

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class DuplicatePermalinkError(TilError):
    """Two or more entries resolve to the same output path."""

    error_type = "duplicate_permalink"

    def __init__(self, permalink: str, filenames: list[str]) -> None:
        super().__init__(
            f"Permalink {permalink!r} is used by: {', '.join(filenames)}"
        )
        self.permalink = permalink
        self.filenames = filenames


class UnknownCustomTagError(TilError):
    """Markdown references a component that was not supplied."""

    error_type = "unknown_custom_tag"

    def __init__(self, tag: str, known: list[str] | None = None) -> None:
        hint = f" (known: {', '.join(sorted(known))})" if known else ""
        super().__init__(f"Unknown custom tag <{tag}>{hint}")
        self.tag = tag


class InvalidCustomTagError(TilError):
    """A custom tag's attributes or content do not fit its component."""

    error_type = "invalid_custom_tag"

    def __init__(self, tag: str, reason: str) -> None:
        super().__init__(f"Invalid <{tag}>: {reason}")
        self.tag = tag
        self.reason = reason


class ContextMisuseError(TilError):
    """A context was read with no provider bound and no default declared."""

    error_type = "context_misuse"


class EmptyFeedError(TilError):
    """The feed cannot be built without at least one entry."""

    error_type = "empty_feed"


class BuildError(BaseModel):
    """A single error captured during a build."""

    stage: str
    source: str = ""
    error_type: str = "unknown"
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)
    recoverable: bool = True


class BuildReport(BaseModel):
    """Summary report of a build."""

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    stages_completed: list[str] = Field(default_factory=list)
    errors: list[BuildError] = Field(default_factory=list)
    items_processed: dict[str, int] = Field(default_factory=dict)
    outputs_written: list[str] = Field(default_factory=list)

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        source: str = "",
        error_type: str = "unknown",
        recoverable: bool = True,
    ) -> None:
        """Record an error during the build."""
        self.errors.append(
            BuildError(
                stage=stage,
                source=source,
                error_type=error_type,
                message=message,
                recoverable=recoverable,
            )
        )

    def add_exception(
        self, stage: str, exc: TilError, *, source: str = "", recoverable: bool = True
    ) -> None:
        """Record a TilError, keeping its type name for the report."""
        self.add_error(
            stage,
            str(exc),
            source=source,
            error_type=exc.error_type,
            recoverable=recoverable,
        )

    def mark_stage_complete(self, stage: str) -> None:
        """Record that a build stage completed."""
        if stage not in self.stages_completed:
            self.stages_completed.append(stage)

    def finish(self) -> None:
        """Mark the report as finished."""
        self.finished_at = datetime.now()

    @property
    def success(self) -> bool:
        """True if no unrecoverable errors occurred."""
        return not any(not e.recoverable for e in self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def skipped_sources(self) -> list[str]:
        """Entry files left out of the site, in the order they failed."""
        return list(dict.fromkeys(e.source for e in self.errors if e.source and e.recoverable))

    def summary_text(self) -> str:
        """Human-readable summary of the build."""
        duration = ""
        if self.finished_at and self.started_at:
            secs = (self.finished_at - self.started_at).total_seconds()
            duration = f" in {secs:.1f}s"

        status = "completed" if self.success else "failed"
        lines = [f"Build {status}{duration}"]

        if self.stages_completed:
            lines.append(f"Stages: {', '.join(self.stages_completed)}")

        if self.items_processed:
            parts = [f"{k}: {v}" for k, v in self.items_processed.items()]
            lines.append(f"Processed: {', '.join(parts)}")

        if self.outputs_written:
            lines.append(f"Outputs: {len(self.outputs_written)} files")

        if self.skipped_sources:
            lines.append(f"Skipped: {', '.join(self.skipped_sources)}")

        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                prefix = "[recoverable]" if err.recoverable else "[FATAL]"
                where = f" ({err.source})" if err.source else ""
                lines.append(f"  {prefix} {err.stage}{where}: {err.message}")
            if len(self.errors) > 5:
                lines.append(f"  ... and {len(self.errors) - 5} more")

        return "\n".join(lines)


def save_report(report: BuildReport, output_dir: Path) -> Path:
    """Save the build report to disk."""
    report_path = output_dir / REPORT_FILENAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return report_path

