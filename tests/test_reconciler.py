import pytest

from kbcurator.reconciler import (
    Action,
    Page,
    ReconcileError,
    Reconciler,
    Revision,
)


class MemoryWiki:
    """In-memory wiki with bot writes and simulated human edits."""

    def __init__(self, bot_user):
        self.bot_user = bot_user
        self._pages = {}
        self._revisions = {}
        self._next = 1

    def _record(self, title, content, user, is_bot, comment):
        rev = Revision(id=str(self._next), user=user, is_bot=is_bot, comment=comment)
        self._next += 1
        self._pages[title] = content
        self._revisions.setdefault(title, []).append(rev)
        return rev

    def upsert_page(self, title, content, summary):
        return self._record(title, content, self.bot_user, True, summary)

    def simulate_human_edit(self, title, user, content, comment):
        return self._record(title, content, user, False, comment)

    def get_page(self, title):
        if title not in self._pages:
            return None
        return Page(
            title=title,
            content=self._pages[title],
            latest_revision=self._revisions[title][-1],
        )

    def history(self, title, since):
        return list(reversed(self._revisions.get(title, [])))


class FailingWiki:
    def __init__(self, fail_get=False, fail_history=False, page=None):
        self.fail_get = fail_get
        self.fail_history = fail_history
        self.page = page

    def get_page(self, title):
        if self.fail_get:
            raise OSError("simulated wiki failure")
        return self.page

    def history(self, title, since):
        if self.fail_history:
            raise OSError("simulated history failure")
        return []


def test_page_does_not_exist_pushes_as_create():
    tgt = MemoryWiki("User:Bot")
    dec = Reconciler(tgt).reconcile("NewPage", b"new content", "")
    assert dec.action == Action.CREATE
    assert dec.human_edits == []
    assert dec.merged_content == "new content"
    assert dec.current_revision_id == ""


def test_no_changes_is_noop():
    tgt = MemoryWiki("User:Bot")
    rev = tgt.upsert_page("P", "content", "first")
    dec = Reconciler(tgt).reconcile("P", b"content", rev.id)
    assert dec.action == Action.NOOP
    assert dec.current_revision_id == rev.id


def test_bot_only_history_upserts_without_flagging_humans():
    tgt = MemoryWiki("User:Bot")
    rev = tgt.upsert_page("P", "old", "first")
    dec = Reconciler(tgt).reconcile("P", b"new", rev.id)
    assert dec.action == Action.UPSERT
    assert dec.human_edits == []
    assert dec.merged_content == "new"


def test_human_edit_detected_flagged_and_still_upserts():
    tgt = MemoryWiki("User:Bot")
    rev = tgt.upsert_page("P", "v1-bot", "first")
    tgt.simulate_human_edit("P", "User:Alice", "v1-human", "drive-by fix")
    dec = Reconciler(tgt).reconcile("P", b"v2-bot", rev.id)
    assert dec.action == Action.UPSERT
    assert len(dec.human_edits) == 1
    assert dec.human_edits[0].revision.user == "User:Alice"
    assert dec.pre_existing_content is False


def test_no_bot_rev_yet_flags_pre_existing_content():
    tgt = MemoryWiki("User:Bot")
    tgt.simulate_human_edit("P", "User:Alice", "human-authored content", "wrote this page")
    dec = Reconciler(tgt).reconcile("P", b"curator content", "")
    assert dec.action == Action.UPSERT
    assert dec.pre_existing_content is True
    assert dec.human_edits == []


def test_no_bot_rev_yet_bot_only_history_not_pre_existing():
    tgt = MemoryWiki("User:Bot")
    tgt.upsert_page("P", "old", "first")
    dec = Reconciler(tgt).reconcile("P", "new", "")
    assert dec.action == Action.UPSERT
    assert dec.pre_existing_content is False


def test_human_edit_events_include_revision_metadata():
    tgt = MemoryWiki("User:Bot")
    rev = tgt.upsert_page("P", "original", "first")
    tgt.simulate_human_edit("P", "User:Alice", "edited by human", "drive-by tweak")
    dec = Reconciler(tgt).reconcile("P", b"new content", rev.id)
    assert dec.human_edits
    diff = dec.human_edits[0].diff
    assert "User:Alice" in diff
    assert "drive-by tweak" in diff


def test_only_edits_since_last_bot_revision_are_reported():
    tgt = MemoryWiki("User:Bot")
    tgt.simulate_human_edit("P", "User:Old", "ancient", "before curator")
    rev = tgt.upsert_page("P", "bot", "first")
    tgt.simulate_human_edit("P", "User:Alice", "a", "one")
    tgt.simulate_human_edit("P", "User:Bob", "b", "two")
    dec = Reconciler(tgt).reconcile("P", b"next", rev.id)
    assert [e.revision.user for e in dec.human_edits] == ["User:Bob", "User:Alice"]


def test_editorial_block_preserved_in_merged_content():
    tgt = MemoryWiki("User:Bot")
    existing = (
        "<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->\n"
        "human-polished body\n"
        "<!-- CURATOR:END block=a -->\n"
    )
    rev = tgt.upsert_page("P", existing, "first")
    rendered = (
        "Title\n"
        "<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->\n"
        "fresh body\n"
        "<!-- CURATOR:END block=a -->\n"
    )
    dec = Reconciler(tgt).reconcile("P", rendered.encode(), rev.id)
    assert dec.action == Action.UPSERT
    assert "human-polished body" in dec.merged_content
    assert "fresh body" not in dec.merged_content
    assert dec.merged_content.startswith("Title\n")


def test_wiki_get_fails_propagates_error():
    with pytest.raises(ReconcileError, match="get page"):
        Reconciler(FailingWiki(fail_get=True)).reconcile("P", b"x", "")


def test_wiki_history_fails_propagates_error():
    page = Page(title="P", content="old", latest_revision=Revision(id="1", is_bot=True))
    target = FailingWiki(fail_history=True, page=page)
    with pytest.raises(ReconcileError, match="history"):
        Reconciler(target).reconcile("P", b"new", "1")