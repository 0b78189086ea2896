"""Decide what to do at the wiki boundary for a rendered page.

Humans may edit curator-owned pages. The reconciler detects those
edits and reports them, and the default policy is to overwrite. It has
no side effects: it reads from the wiki and returns a Decision, and
the caller acts on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from kbcurator.merge import merge_blocks


class ReconcileError(RuntimeError):
    """Raised when the wiki cannot be read while reconciling."""


class Action(StrEnum):
    """The disposition computed for one (title, content) pair."""

    CREATE = "create"  # page does not exist yet
    UPSERT = "upsert"  # page exists and its content differs
    NOOP = "noop"  # page exists and already matches


@dataclass(frozen=True)
class Revision:
    """One revision of a wiki page."""

    id: str
    user: str = ""
    is_bot: bool = False
    comment: str = ""


@dataclass(frozen=True)
class Page:
    """The current state of a wiki page."""

    title: str
    content: str
    latest_revision: Revision


class WikiTarget(Protocol):
    """The read side of a wiki the reconciler needs."""

    def get_page(self, title: str) -> Page | None:
        """Return the page, or None if it does not exist."""
        ...

    def history(self, title: str, since: str) -> list[Revision]:
        """Return the page's revisions, newest first."""
        ...


@dataclass(frozen=True)
class HumanEditDetection:
    """One detected human edit, ready to inline in the run report."""

    revision: Revision
    diff: str


@dataclass
class Decision:
    """The reconciler's output for one reconcile call.

    ``merged_content`` is what to push to the wiki: the new render for
    a create, the block-level merge otherwise.
    """

    action: Action
    current_revision_id: str = ""
    merged_content: str = ""
    human_edits: list[HumanEditDetection] = field(default_factory=list)
    pre_existing_content: bool = False


class Reconciler:
    """Compares the wiki's state with the curator's render."""

    def __init__(self, target: WikiTarget) -> None:
        self.target = target

    def reconcile(
        self, title: str, rendered: bytes | str, last_bot_rev_id: str = ""
    ) -> Decision:
        """Compute the Decision for a rendered page.

        ``last_bot_rev_id`` is the revision the curator wrote on its
        previous run; an empty string means first render or unknown.
        """
        text = rendered.decode("utf-8") if isinstance(rendered, bytes) else rendered
        try:
            current = self.target.get_page(title)
        except Exception as exc:
            raise ReconcileError(f"reconciler: get page {title!r}: {exc}") from exc

        if current is None:
            return Decision(action=Action.CREATE, merged_content=text)

        merged = merge_blocks(current.content, text)
        decision = Decision(
            action=Action.NOOP,
            current_revision_id=current.latest_revision.id,
            merged_content=merged,
        )
        if merged == current.content:
            return decision

        humans, pre_existing = self._detect_human_edits(title, last_bot_rev_id)
        decision.action = Action.UPSERT
        decision.human_edits = humans
        decision.pre_existing_content = pre_existing
        return decision

    def _detect_human_edits(
        self, title: str, last_bot_rev_id: str
    ) -> tuple[list[HumanEditDetection], bool]:
        try:
            revisions = self.target.history(title, "")
        except Exception as exc:
            raise ReconcileError(f"reconciler: history {title!r}: {exc}") from exc

        if not last_bot_rev_id:
            return [], any(not rev.is_bot for rev in revisions)

        found = []
        for rev in revisions:
            if rev.id == last_bot_rev_id:
                break
            if not rev.is_bot:
                found.append(
                    HumanEditDetection(
                        revision=rev,
                        diff=f"revision {rev.id} by {rev.user}: {rev.comment}",
                    )
                )
        return found, False