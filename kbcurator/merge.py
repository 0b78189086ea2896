"""Block-level reconciliation of existing wiki content with a new render.

Prologue and epilogue always come from the new render. For each block
in the new render, an editorial block whose existing counterpart has
the same non-empty provenance keeps the existing body; every other
block takes the new body. Blocks only present on the wiki are dropped.
"""

from __future__ import annotations

from io import StringIO

from kbcurator.wikiparse import Block, ParsedDoc, parse


def _choose_body(new_block: Block, existing: ParsedDoc) -> str:
    if new_block.zone != "editorial":
        return new_block.body
    matching = existing.block_by_id(new_block.id)
    if matching is None:
        return new_block.body
    if not matching.provenance or matching.provenance != new_block.provenance:
        return new_block.body
    return matching.body


def _write_block(out: StringIO, block: Block, body: str) -> None:
    header = f"<!-- CURATOR:BEGIN block={block.id}"
    if block.zone:
        header += f" zone={block.zone}"
    if block.provenance:
        header += f" provenance={block.provenance}"
    out.write(header + " -->\n")
    out.write(body)
    out.write(f"\n<!-- CURATOR:END block={block.id} -->\n")


def merge_blocks(existing: bytes | str | None, new_content: bytes | str | None) -> str:
    """Merge existing wiki content with a fresh render and return the result."""
    new_doc = parse(new_content)
    existing_doc = parse(existing)

    out = StringIO()
    out.write(new_doc.prologue)
    for block in new_doc.blocks:
        _write_block(out, block, _choose_body(block, existing_doc))
        out.write(block.following_text)
    out.write(new_doc.epilogue)
    return out.getvalue()