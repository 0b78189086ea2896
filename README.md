# kbcurator

This package helps keep curated wiki pages in step with a knowledge base.
Where the inputs behind a piece of human polish have not changed, that
polish stays on the page.

## Modules

- `kbcurator.docspec` reads doc-spec YAML. A doc-spec describes a topic
  cluster: a parent page, its child pages, their sections, and the
  `scheme:spec` sources each section draws on. The known schemes are kb,
  git, cmd, ssh and file.
  - `parse(data)` takes bytes or str and returns a `DocSpec`. The
    `DocSpec` holds `DocPage`, `DocSection` and `Source` values.
  - Bad YAML raises `DocSpecError`. So do a missing topic or page, a
    duplicate page, and an unknown kind, audience, render mode or source
    scheme.
- `kbcurator.parser` reads spec files: a YAML frontmatter block between
  `---` lines, followed by a markdown body.
  - `parse_spec(spec_id, content)` returns a `Spec`. The `Spec` carries
    the body, an `IncludeFilter`, an optional `HubSpec`, and the SHA-256
    hex digest of the content.
  - `wiki`, `page` and `kind` are required. `kind` must be projection,
    editorial, hub or runbook.
  - A hub spec needs non-empty `hub.sections`. Every section needs links,
    and every link needs a page.
  - `include.workspaces` may be a single string or a list.
  - Failures raise `SpecParseError`.
  - `split_frontmatter(content)` returns the `(frontmatter, body)` pair on
    its own.
- `kbcurator.wikiparse` finds the marked regions in page text. A region
  starts with `<!-- CURATOR:BEGIN block=ID [zone=Z] [provenance=H] -->`
  and ends with `<!-- CURATOR:END block=ID -->`.
  - `parse(content)` returns a `ParsedDoc`. A `ParsedDoc` has a
    `prologue`, a list of `Block`s and an `epilogue`.
  - `ParsedDoc.block_by_id` looks up a block by its id.
  - Malformed input never raises. An unclosed BEGIN marker is kept as
    plain text.
- `kbcurator.merge` provides `merge_blocks(existing, new_content)`.
  - The prologue and the epilogue come from the new render.
  - An editorial block keeps its existing wiki body when the provenance
    is the same and is not empty.
  - Every other block takes the body from the new render.
  - Blocks that appear only on the wiki are dropped.
- `kbcurator.reconciler` compares a page with a render.
  - `Reconciler(target).reconcile(title, rendered, last_bot_rev_id)` reads
    a `WikiTarget` and returns a `Decision`. You supply the target: any
    object with `get_page(title)` and `history(title, since)`.
  - The decision's `Action` is `CREATE`, `UPSERT` or `NOOP`.
  - The decision holds the merged content. It also holds the human edits
    made since the last bot revision, as `HumanEditDetection` values.
  - On a first render, a pre-existing-content flag is set if the page
    already has edits that were not made by a bot.
  - Failures to read the wiki raise `ReconcileError`.
- `kbcurator.reporter` records runs as structured reports.
  - `ReportBuilder(wiki, run_id)` collects `SpecResult`s, errors and
    warnings. `build()` returns a `Report`.
  - `Report.summary()` gives a one-line summary.
  - `Report.to_yaml()` serialises the report.
  - `Report.write_to_dir(directory)` writes `<run-id>.yaml` and points a
    `latest.yaml` symlink at it. If the symlink cannot be updated, you
    get a `RuntimeWarning`.
  - `MultiSink(*sinks).publish(report)` tries every sink. It raises one
    `ExceptionGroup` with all the failures.
- `kbcurator.sinks` holds ready-made sinks. Each one raises `SinkError`
  on failure.
  - `SlackSink(webhook_url, poster)` POSTs a `{"text": ...}` JSON
    payload. `UrllibPoster` is a poster built on urllib.
  - `EmailSink(sender, from_addr, to_addrs)` hands the message to a
    sender that you provide.
  - `KBJournalSink(runner)` runs `kb work journal "<summary>"`.
    `SubprocessRunner` runs it as a subprocess.
  - `report_text(report)` returns the message body that the sinks send.
- `kbcurator.gitsource` handles `git:` sources. The spec has the form
  `<repo>[ ref=<rev>][ file=<path>]`.
  - `GitResolver(root, repos).resolve(source)` turns the source into a
    `Resolved` digest, table rows and provenance refs.
  - It reads a whole repository, or a single file when `file=` is given.
  - It returns `None` when the repository cannot be located. It raises
    `GitSourceError` on hard failures, such as a directory that is not a
    git work tree or a file path that escapes the repository.
  - It only runs `git rev-parse`, `ls-tree` and `show`, so the `git`
    executable must be installed.

## Install

```
pip install kbcurator
```

## Example

```python
from kbcurator.merge import merge_blocks
from kbcurator.reporter import ReportBuilder, SpecResult, SpecStatus

wiki_text = (
    "<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->\n"
    "polished by a human\n"
    "<!-- CURATOR:END block=a -->\n"
)
fresh_render = (
    "<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->\n"
    "freshly generated\n"
    "<!-- CURATOR:END block=a -->\n"
)
merged = merge_blocks(wiki_text, fresh_render)  # keeps "polished by a human"

builder = ReportBuilder("acme", "run-1")
builder.set_kb_commit("abc123")
builder.add_spec_result(SpecResult(id="page.spec.md", status=SpecStatus.RENDERED))
report = builder.build()
print(report.summary())
report.write_to_dir("reports")
```

## What it does not do

These are library building blocks, and the package stops at them:

- There is no command-line program.
- There is no client for any particular wiki. `WikiTarget`, the mail
  `Sender` and the HTTP poster are interfaces for you to provide.
- Nothing renders pages from a knowledge base. Nothing runs the whole
  render-and-publish cycle.
- Only `git:` sources can be resolved. kb, cmd, ssh and file sources are
  parsed, but nothing here resolves them.