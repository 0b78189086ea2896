"""Structured run reports: the audit trail of what one curator run did.

A report records every spec disposition, run-level errors and warnings,
and per-run counters. Reports serialise to YAML and are written one file
per run, with ``latest.yaml`` kept as a symlink to the newest one.
Finished reports can be fanned out to external sinks.
"""

from __future__ import annotations

import dataclasses
import os
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

_LATEST = "latest.yaml"


class SpecStatus(StrEnum):
    """The disposition of one spec in one run."""

    RENDERED = "rendered"
    SKIPPED = "skipped"  # cache hit, no source changes
    FAILED = "failed"


class EditAction(StrEnum):
    """What the reconciler decided to do with a human edit."""

    OVERWRITTEN = "overwritten"
    PRESERVED = "preserved"
    FLAGGED = "flagged"


@dataclass
class HumanEditEvent:
    """A detected human modification of a curator-owned block."""

    block_id: str
    action: EditAction
    diff: str = ""
    explanation: str = ""
    suggestion: str = ""

    def _to_yaml_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"block": self.block_id, "action": str(self.action)}
        for key, value in (
            ("diff", self.diff),
            ("explanation", self.explanation),
            ("suggestion", self.suggestion),
        ):
            if value:
                out[key] = value
        return out


@dataclass
class SpecResult:
    """What happened to one spec during the run."""

    id: str
    status: SpecStatus
    reason: str = ""  # populated for skipped and failed specs
    new_revision_id: str = ""
    blocks_regenerated: int = 0
    human_edits: list[HumanEditEvent] = field(default_factory=list)

    def _to_yaml_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "status": str(self.status)}
        if self.reason:
            out["reason"] = self.reason
        if self.new_revision_id:
            out["new_revision"] = self.new_revision_id
        if self.blocks_regenerated:
            out["blocks_regenerated"] = self.blocks_regenerated
        if self.human_edits:
            out["human_edits_detected"] = [e._to_yaml_dict() for e in self.human_edits]
        return out


@dataclass
class Metrics:
    """Per-run counters."""

    llm_calls: int = 0
    llm_tokens_in: int = 0
    llm_tokens_out: int = 0
    wiki_pages_changed: int = 0
    wiki_pages_skipped: int = 0

    def _to_yaml_dict(self) -> dict[str, int]:
        return {
            name: value
            for name, value in dataclasses.asdict(self).items()
            if value
        }


@dataclass
class Report:
    """The structured record of one curator run."""

    run_id: str = ""
    wiki: str = ""
    started_at: datetime | None = None
    ended_at: datetime | None = None
    kb_commit: str = ""
    specs: list[SpecResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)

    def summary(self) -> str:
        """Return a one-line human-readable summary of the report."""
        return (
            f"wiki={self.wiki} kb={self.kb_commit} specs={len(self.specs)} "
            f"changed={self.metrics.wiki_pages_changed} "
            f"skipped={self.metrics.wiki_pages_skipped} "
            f"errors={len(self.errors)} warnings={len(self.warnings)}"
        )

    def _to_yaml_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "run_id": self.run_id,
            "wiki": self.wiki,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }
        if self.kb_commit:
            out["kb_commit"] = self.kb_commit
        if self.specs:
            out["specs"] = [s._to_yaml_dict() for s in self.specs]
        if self.errors:
            out["errors"] = list(self.errors)
        if self.warnings:
            out["warnings"] = list(self.warnings)
        metrics = self.metrics._to_yaml_dict()
        if metrics:
            out["metrics"] = metrics
        return out

    def to_yaml(self) -> str:
        """Return the report serialised as YAML."""
        return yaml.safe_dump(
            self._to_yaml_dict(),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    def write_to_dir(self, directory: str | os.PathLike[str]) -> Path:
        """Write the report as ``<run-id>.yaml`` and point ``latest.yaml`` at it.

        Returns the path of the written file. A failure to update the
        symlink does not lose the report; it is reported as a warning.
        """
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        name = f"{self.run_id}.yaml"
        path = target_dir / name
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(self.to_yaml())
        try:
            _update_latest_symlink(target_dir, name)
        except OSError as exc:
            warnings.warn(
                f"reporter: update latest symlink: {exc}", RuntimeWarning, stacklevel=2
            )
        return path


def _update_latest_symlink(directory: Path, target: str) -> None:
    """Atomically replace directory/latest.yaml so it points at target."""
    latest = directory / _LATEST
    tmp = directory / (_LATEST + ".tmp")
    try:
        tmp.unlink(missing_ok=True)
    except OSError:
        pass
    os.symlink(target, tmp)
    os.replace(tmp, latest)


class ReportBuilder:
    """Accumulates events during a run and produces a Report."""

    def __init__(self, wiki: str, run_id: str) -> None:
        self._report = Report(
            run_id=run_id,
            wiki=wiki,
            started_at=datetime.now(timezone.utc),
        )

    def set_kb_commit(self, commit: str) -> None:
        """Record the kb commit the run is operating against."""
        self._report.kb_commit = commit

    def add_spec_result(self, result: SpecResult) -> None:
        """Append one spec disposition to the report."""
        self._report.specs.append(result)

    def add_error(self, error: BaseException | str | None) -> None:
        """Record a run-level error; None is ignored."""
        if error is not None:
            self._report.errors.append(str(error))

    def add_warning(self, message: str) -> None:
        """Record a non-fatal observation."""
        self._report.warnings.append(message)

    def build(self) -> Report:
        """Finalise and return the report."""
        self._report.ended_at = datetime.now(timezone.utc)
        return dataclasses.replace(self._report)


@runtime_checkable
class Sink(Protocol):
    """Publishes a finalised run report to an external destination.

    Publishing is observational: a sink failure must never fail a run.
    """

    name: str

    def publish(self, report: Report) -> None:
        """Send the report; raise on failure."""
        ...


class MultiSink:
    """Fans a report out to several sinks, best effort.

    Every sink is attempted even if an earlier one fails; all failures
    are raised together as one ExceptionGroup.
    """

    name = "multi"

    def __init__(self, *args: Sink) -> None:
        self._sinks: tuple[Sink, ...] = args

    def publish(self, report: Report) -> None:
        """Send report to every sink, raising the collected failures if any."""
        failures: list[Exception] = []
        failed_names: list[str] = []
        for sink in self._sinks:
            try:
                sink.publish(report)
            except Exception as exc:  # noqa: BLE001 - sinks are best effort
                exc.add_note(f"sink {sink.name!r}")
                failures.append(exc)
                failed_names.append(sink.name)
        if failures:
            raise ExceptionGroup(
                f"{len(failures)} sink(s) failed: {', '.join(failed_names)}", failures
            )