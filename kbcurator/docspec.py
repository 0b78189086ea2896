"""Parse and validate doc-spec documents.

A doc-spec describes a topic cluster: a parent page plus cross-linked
child pages. Each page declares its kind, audience, an intent and
ordered sections; each section declares its own intent and provenance
sources. This module only parses and validates.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import yaml

KNOWN_KINDS = frozenset({"architecture", "runbook", "reference", "integration", "index"})
KNOWN_AUDIENCES = frozenset({"", "human-operator", "newcomer", "llm-reference"})
KNOWN_RENDERS = frozenset({"", "table", "child-index"})
KNOWN_SCHEMES = frozenset({"kb", "git", "cmd", "ssh", "file"})


class DocSpecError(ValueError):
    """Raised when a doc-spec cannot be decoded or fails validation."""


@dataclass(frozen=True)
class Source:
    """A declared provenance: ``scheme:spec``."""

    scheme: str
    spec: str
    raw: str


@dataclass
class DocSection:
    """One ordered section of a page."""

    title: str = ""
    intent: str = ""
    render: str = ""
    sources: list[Source] = field(default_factory=list)


@dataclass
class DocPage:
    """A single rendered wiki page within the cluster."""

    page: str = ""
    kind: str = ""
    audience: str = ""
    intent: str = ""
    sections: list[DocSection] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)


@dataclass
class DocSpec:
    """One topic cluster."""

    topic: str = ""
    parent: DocPage = field(default_factory=DocPage)
    children: list[DocPage] = field(default_factory=list)


def _q(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DocSpecError(f"docspec: yaml: {where}: expected a mapping")
    return value


def _string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise DocSpecError(f"docspec: yaml: {where}: expected a string")


def _strings(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocSpecError(f"docspec: yaml: {where}: expected a list of strings")
    return [_string(item, f"{where}[{i}]") for i, item in enumerate(value)]


def _list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocSpecError(f"docspec: yaml: {where}: expected a list")
    return value


def _parse_sources(raw: list[str], where: str) -> list[Source]:
    out = []
    for entry in raw:
        entry = entry.strip()
        if not entry:
            continue
        i = entry.find(":")
        if i <= 0:
            raise DocSpecError(
                f"docspec: {where}: source {_q(entry)} missing scheme (want scheme:spec)"
            )
        scheme = entry[:i]
        if scheme not in KNOWN_SCHEMES:
            raise DocSpecError(
                f"docspec: {where}: unknown source scheme {_q(scheme)} "
                "(known: kb, git, cmd, ssh, file)"
            )
        out.append(Source(scheme=scheme, spec=entry[i + 1 :].strip(), raw=entry))
    return out


def _to_page(value: Any, where: str) -> DocPage:
    raw = _mapping(value, where)
    page = DocPage(
        page=_string(raw.get("page"), f"{where}.page").strip(),
        kind=_string(raw.get("kind"), f"{where}.kind"),
        audience=_string(raw.get("audience"), f"{where}.audience"),
        intent=_string(raw.get("intent"), f"{where}.intent").strip(),
        related=_strings(raw.get("related"), f"{where}.related"),
        categories=_strings(raw.get("categories"), f"{where}.categories"),
    )
    page.sources = _parse_sources(_strings(raw.get("sources"), f"{where}.sources"), where)
    for i, item in enumerate(_list(raw.get("sections"), f"{where}.sections")):
        swhere = f"{where}.sections[{i}]"
        section = _mapping(item, swhere)
        page.sections.append(
            DocSection(
                title=_string(section.get("title"), f"{swhere}.title").strip(),
                intent=_string(section.get("intent"), f"{swhere}.intent").strip(),
                render=_string(section.get("render"), f"{swhere}.render"),
                sources=_parse_sources(
                    _strings(section.get("sources"), f"{swhere}.sources"), swhere
                ),
            )
        )
    return page


def _check_page(page: DocPage, where: str, seen: set[str]) -> None:
    if not page.page:
        raise DocSpecError(f"docspec: {where}.page: required")
    if page.page in seen:
        raise DocSpecError(f"docspec: duplicate page {_q(page.page)}")
    seen.add(page.page)
    if page.kind not in KNOWN_KINDS:
        raise DocSpecError(
            f"docspec: {where}.kind: {_q(page.kind)} invalid "
            "(architecture|runbook|reference|integration|index)"
        )
    if page.audience not in KNOWN_AUDIENCES:
        raise DocSpecError(
            f"docspec: {where}.audience: {_q(page.audience)} invalid "
            "(human-operator|newcomer|llm-reference)"
        )
    for i, section in enumerate(page.sections):
        if not section.title:
            raise DocSpecError(f"docspec: {where}.sections[{i}]: title required")
        if section.render not in KNOWN_RENDERS:
            raise DocSpecError(
                f"docspec: {where}.sections[{i}] ({_q(section.title)}): "
                f"render {_q(section.render)} invalid (table|child-index)"
            )


def _validate(doc: DocSpec) -> None:
    if not doc.topic:
        raise DocSpecError("docspec: topic: required")
    seen: set[str] = set()
    _check_page(doc.parent, "parent", seen)
    for i, child in enumerate(doc.children):
        _check_page(child, f"children[{i}]", seen)


def parse(data: bytes | str) -> DocSpec:
    """Decode and validate a doc-spec document."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        loaded = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise DocSpecError(f"docspec: yaml: {exc}") from exc
    raw = _mapping(loaded, "document")

    doc = DocSpec(topic=_string(raw.get("topic"), "topic").strip())
    doc.parent = _to_page(raw.get("parent"), "parent")
    doc.children = [
        _to_page(child, f"children[{i}]")
        for i, child in enumerate(_list(raw.get("children"), "children"))
    ]
    _validate(doc)
    return doc