"""Read-only ``git:`` source resolution against local clones.

Grammar of the source spec (the part after ``git:``)::

    <repo>[ ref=<rev>][ file=<subpath>]

``repo`` is required and resolves to a local clone directory through,
in order: an exact key in the configured repos map, the path itself
when it is absolute, or ``<root>/<repo>``. ``ref`` defaults to HEAD.
``file`` selects single-file mode.

Only non-mutating git subcommands are run (rev-parse, ls-tree, show):
no fetch, pull, checkout or working-tree writes.
"""

from __future__ import annotations

import posixpath
import subprocess
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from kbcurator.docspec import Source

MAX_FILE_BYTES = 4000  # per-file excerpt cap fed to the LLM
MAX_FILES = 6  # curated files read in repo-digest mode
MAX_TREE_PATHS = 80  # tracked-path listing cap

_CURATED_EXACT = frozenset({"dockerfile", "makefile"})


class GitSourceError(RuntimeError):
    """Raised when a located git source cannot be resolved."""


@dataclass
class Resolved:
    """Grounded content produced for one source."""

    digest: str = ""
    rows: list[list[str]] = field(default_factory=list)
    refs: list[str] = field(default_factory=list)


class Resolver(Protocol):
    """Turns a declared source into grounded content, read-only.

    ``resolve`` returns None when the source is declared but cannot be
    resolved here, and raises on hard failures.
    """

    scheme: str

    def resolve(self, source: Source) -> Resolved | None:
        ...


def parse_spec(spec: str) -> tuple[str, str, str]:
    """Split ``"<repo> ref=x file=y"`` into (repo, ref, file)."""
    repo, ref, file = "", "HEAD", ""
    for token in spec.split():
        if token.startswith("ref="):
            ref = token.removeprefix("ref=")
        elif token.startswith("file="):
            file = token.removeprefix("file=")
        elif not repo:
            repo = token
    return repo, ref, file


def is_curated(base: str) -> bool:
    """Return True if a base filename is worth surfacing in a repo digest."""
    name = base.lower()
    if name in _CURATED_EXACT:
        return True
    if name.startswith(("readme", "docker-compose")):
        return True
    dot = name.rfind(".")
    return dot >= 0 and name[dot:] in (".tf", ".hcl")


def pick_curated(paths: list[str]) -> list[str]:
    """Select up to MAX_FILES curated paths, shallowest first."""
    candidates = sorted(
        (p for p in paths if is_curated(posixpath.basename(p))),
        key=lambda p: (p.count("/"), p),
    )
    return candidates[:MAX_FILES]


def _truncate_bytes(text: str, limit: int) -> tuple[str, bool]:
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text, False
    return data[:limit].decode("utf-8", errors="ignore"), True


def _summarise(text: str) -> str:
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped:
            return _truncate_bytes(stripped, 120)[0]
    return ""


def _fenced(content: str) -> str:
    excerpt, truncated = _truncate_bytes(content, MAX_FILE_BYTES)
    parts = ["```\n", excerpt]
    if not excerpt.endswith("\n"):
        parts.append("\n")
    if truncated:
        parts.append(f"... [truncated at {MAX_FILE_BYTES} bytes]\n")
    parts.append("```\n")
    return "".join(parts)


class GitResolver:
    """Resolves ``git:`` sources against local clones."""

    scheme = "git"

    def __init__(self, root: str = "", repos: Mapping[str, str] | None = None) -> None:
        self.root = root or ""
        self.repos = dict(repos or {})

    def resolve(self, source: Source) -> Resolved | None:
        """Resolve a git source; None means it cannot be located here."""
        if source.scheme != "git":
            return None
        repo, ref, file = parse_spec(source.spec)
        if not repo:
            raise GitSourceError(f"git: source {source.raw!r} has no repo")
        directory = self._repo_dir(repo)
        if directory is None:
            return None
        try:
            self._git(directory, "rev-parse", "--is-inside-work-tree")
        except GitSourceError as exc:
            raise GitSourceError(f"git: {directory} is not a git work tree: {exc}") from exc
        try:
            commit = self._git(directory, "rev-parse", "--short", ref).strip()
        except GitSourceError as exc:
            raise GitSourceError(f"git: rev-parse {ref}: {exc}") from exc

        if file:
            return self._resolve_file(directory, repo, ref, commit, file)
        return self._resolve_repo(directory, repo, ref, commit)

    def _resolve_file(self, directory: str, repo: str, ref: str, commit: str, file: str) -> Resolved:
        clean = posixpath.normpath(file)
        if clean == ".." or clean.startswith(("../", "/")):
            raise GitSourceError(f"git: file {file!r} escapes the repo")
        try:
            content = self._git(directory, "show", f"{ref}:{clean}")
        except GitSourceError as exc:
            raise GitSourceError(f"git: show {ref}:{clean}: {exc}") from exc
        ref0 = f"git:{repo}@{commit}:{clean}"
        digest = f"### git: {repo} @ {commit} — {clean}\n" + _fenced(content)
        return Resolved(digest=digest, rows=[["file", ref0, _summarise(content)]], refs=[ref0])

    def _resolve_repo(self, directory: str, repo: str, ref: str, commit: str) -> Resolved:
        try:
            tree_out = self._git(directory, "ls-tree", "-r", "--name-only", ref)
        except GitSourceError as exc:
            raise GitSourceError(f"git: ls-tree {ref}: {exc}") from exc
        all_paths = sorted(line.strip() for line in tree_out.split("\n") if line.strip())
        tree = all_paths[:MAX_TREE_PATHS]
        ref0 = f"git:{repo}@{commit}"

        parts = [
            f"### git: {repo} @ {commit} ({len(all_paths)} tracked files)\n",
            "Tracked paths:\n",
        ]
        parts.extend(f"- {p}\n" for p in tree)
        if len(all_paths) > MAX_TREE_PATHS:
            parts.append(f"- ... ({len(all_paths) - MAX_TREE_PATHS} more)\n")

        rows = [["repo", ref0, f"{len(all_paths)} tracked files at {commit}"]]
        for path in pick_curated(all_paths):
            try:
                content = self._git(directory, "show", f"{ref}:{path}")
            except GitSourceError:
                continue
            parts.append(f"\n#### {path}\n")
            parts.append(_fenced(content))
            rows.append(["file", f"git:{repo}@{commit}:{path}", _summarise(content)])
        return Resolved(digest="".join(parts), rows=rows, refs=[ref0])

    def _repo_dir(self, repo: str) -> str | None:
        mapped = self.repos.get(repo)
        if mapped:
            return mapped
        if repo.startswith("/"):
            return repo
        if self.root:
            return posixpath.normpath(posixpath.join(self.root, repo))
        return None

    @staticmethod
    def _git(directory: str, *args: str) -> str:
        """Run a read-only git subcommand in directory and return stdout."""
        try:
            result = subprocess.run(
                ["git", "-C", directory, *args],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise GitSourceError(str(exc)) from exc
        if result.returncode != 0:
            raise GitSourceError(f"exit status {result.returncode}: {result.stderr.strip()}")
        return result.stdout