"""Extract CURATOR:BEGIN/END marked blocks from page content.

Text before the first BEGIN is the prologue, text after the last END
is the epilogue, and text between an END and the next BEGIN belongs to
the preceding block as its following text. Malformed input yields
fewer blocks but never raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_BEGIN_RE = re.compile(
    r"<!--\s*CURATOR:BEGIN\s+block=([^\s]+)((?:\s+\w+=[^\s]+)*)\s*-->", re.ASCII
)
_ATTR_RE = re.compile(r"(\w+)=([^\s]+)", re.ASCII)


def _end_re_for(block_id: str) -> re.Pattern[str]:
    return re.compile(
        r"<!--\s*CURATOR:END\s+block=" + re.escape(block_id) + r"\s*-->", re.ASCII
    )


@dataclass
class Block:
    """One CURATOR-marked region recovered from page content."""

    id: str
    zone: str = ""
    provenance: str = ""
    body: str = ""
    following_text: str = ""


@dataclass
class ParsedDoc:
    """The full parse result."""

    prologue: str = ""
    blocks: list[Block] = field(default_factory=list)
    epilogue: str = ""

    def block_by_id(self, block_id: str) -> Block | None:
        """Return the first block with the given id, or None."""
        return next((b for b in self.blocks if b.id == block_id), None)


def _append_interstitial(doc: ParsedDoc, text: str) -> None:
    if doc.blocks:
        doc.blocks[-1].following_text += text
    else:
        doc.prologue += text


def parse(content: bytes | str | None) -> ParsedDoc:
    """Extract CURATOR blocks from content."""
    doc = ParsedDoc()
    if not content:
        return doc
    text = content.decode("utf-8") if isinstance(content, bytes) else content
    pos = 0

    while True:
        begin = _BEGIN_RE.search(text, pos)
        if begin is None:
            if doc.blocks:
                doc.epilogue = text[pos:]
                doc.blocks[-1].following_text = ""
            else:
                doc.prologue = text[pos:]
            return doc

        block_id = begin.group(1)
        zone = provenance = ""
        for key, value in _ATTR_RE.findall(begin.group(2) or ""):
            if key == "provenance":
                provenance = value
            elif key == "zone":
                zone = value

        _append_interstitial(doc, text[pos : begin.start()])

        end = _end_re_for(block_id).search(text, begin.end())
        if end is None:
            # Unclosed BEGIN: the marker and everything after is plain text.
            _append_interstitial(doc, text[begin.start() :])
            return doc

        body = text[begin.end() : end.start()]
        body = body.removeprefix("\n").removesuffix("\n")
        doc.blocks.append(Block(id=block_id, zone=zone, provenance=provenance, body=body))
        pos = end.end()