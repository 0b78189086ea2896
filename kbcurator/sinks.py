"""Concrete report sinks: Slack webhook, e-mail and a kb journal entry.

Each sink takes its external boundary (HTTP poster, mail sender,
command runner) as an injected object, so sinks are deterministic and
testable without a network.
"""

from __future__ import annotations

import json
import subprocess
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from kbcurator.reporter import Report


class SinkError(Exception):
    """Raised when a sink fails to publish a report."""


def report_text(report: Report) -> str:
    """Return the human-readable body every sink sends."""
    lines = [f"run={report.run_id} {report.summary()}"]
    lines.extend(
        f"  spec={s.id} status={s.status} blocks={s.blocks_regenerated} {s.reason}"
        for s in report.specs
    )
    return "\n".join(lines)


class HttpPoster(Protocol):
    """Minimal HTTP boundary: POST a body and return (status, response body)."""

    def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> tuple[int, bytes]:
        ...


@dataclass
class UrllibPoster:
    """HttpPoster backed by urllib."""

    timeout: float = 30.0

    def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> tuple[int, bytes]:
        """POST body to url; HTTP error statuses are returned, not raised."""
        request = urllib.request.Request(url, data=body, headers=dict(headers), method="POST")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as exc:
            return exc.code, exc.read()


class Sender(Protocol):
    """Mail boundary."""

    def send(self, from_addr: str, to_addrs: Sequence[str], subject: str, body: bytes) -> None:
        ...


class Runner(Protocol):
    """Command boundary."""

    def run(self, name: str, *args: str) -> None:
        ...


class SubprocessRunner:
    """Runner that executes the command as a subprocess."""

    def run(self, name: str, *args: str) -> None:
        """Run the command; raise CalledProcessError on a non-zero exit."""
        subprocess.run([name, *args], check=True, capture_output=True, text=True)


class SlackSink:
    """Posts the run summary to an incoming-webhook URL."""

    name = "slack"

    def __init__(self, webhook_url: str, poster: HttpPoster) -> None:
        self.webhook_url = webhook_url
        self.poster = poster

    def publish(self, report: Report) -> None:
        """POST a ``{"text": ...}`` payload to the webhook."""
        payload = json.dumps({"text": "kb-curator run\n" + report_text(report)}).encode("utf-8")
        try:
            status, body = self.poster.post(
                self.webhook_url, payload, {"Content-Type": "application/json"}
            )
        except Exception as exc:
            raise SinkError(f"slack: post: {exc}") from exc
        if not 200 <= status < 300:
            text = body.decode("utf-8", errors="replace")
            raise SinkError(f"slack: webhook returned {status}: {text}")


class EmailSink:
    """Sends the run summary as a plain-text message."""

    name = "email"

    def __init__(self, sender: Sender, from_addr: str, to_addrs: Sequence[str]) -> None:
        self.sender = sender
        self.from_addr = from_addr
        self.to_addrs = list(to_addrs)

    def publish(self, report: Report) -> None:
        """Send the report body to the configured recipients."""
        subject = f"[kb-curator] {report.wiki} run {report.run_id}"
        try:
            self.sender.send(
                self.from_addr, self.to_addrs, subject, report_text(report).encode("utf-8")
            )
        except Exception as exc:
            raise SinkError(f"email: send: {exc}") from exc


class KBJournalSink:
    """Appends the run summary to the active kb workspace journal."""

    name = "kb-journal"

    def __init__(self, runner: Runner) -> None:
        self.runner = runner

    def publish(self, report: Report) -> None:
        """Run ``kb work journal "<summary>"``."""
        text = f"kb-curator run {report.run_id}: {report.summary()}"
        try:
            self.runner.run("kb", "work", "journal", text)
        except Exception as exc:
            raise SinkError(f"kb-journal: {exc}") from exc