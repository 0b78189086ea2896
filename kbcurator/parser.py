"""Parse spec files: markdown with a YAML frontmatter block.

The frontmatter requires ``wiki``, ``page`` and ``kind``; ``kind`` must
be one of the known frontend kinds, and a ``hub`` spec must carry a
non-empty ``hub.sections`` whose sections each have linked pages.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any

import yaml

KNOWN_KINDS = frozenset({"projection", "editorial", "hub", "runbook"})

_DELIM = b"---"


class SpecParseError(ValueError):
    """Raised when a spec file cannot be parsed or fails validation."""


@dataclass
class IncludeFilter:
    """Which kb areas, workspaces and zones a spec draws from."""

    areas: list[str] = field(default_factory=list)
    workspaces: list[str] = field(default_factory=list)
    exclude_zones: list[str] = field(default_factory=list)


@dataclass
class HubLink:
    """One link on a hub page."""

    page: str = ""
    label: str = ""
    desc: str = ""
    area: str = ""


@dataclass
class HubSection:
    """One titled group of links on a hub page."""

    title: str = ""
    desc: str = ""
    links: list[HubLink] = field(default_factory=list)


@dataclass
class HubSpec:
    """The structure of a hub page."""

    sections: list[HubSection] = field(default_factory=list)


@dataclass
class Spec:
    """One parsed spec."""

    id: str
    wiki: str
    page: str
    kind: str
    include: IncludeFilter = field(default_factory=IncludeFilter)
    fact_check: dict[str, str] = field(default_factory=dict)
    hub: HubSpec | None = None
    body: str = ""
    hash: str = ""


def _trim_leading_newline(data: bytes) -> bytes:
    if data.startswith(b"\n"):
        return data[1:]
    if data.startswith(b"\r\n"):
        return data[2:]
    return data


def split_frontmatter(content: bytes | str) -> tuple[str, str]:
    """Split ``---\\n<frontmatter>\\n---\\n<body>`` into (frontmatter, body)."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    trimmed = data.lstrip(b" \t\r\n")
    if not trimmed.startswith(_DELIM):
        raise SpecParseError("missing frontmatter (expected leading '---')")
    rest = _trim_leading_newline(trimmed[len(_DELIM):])
    close = rest.find(b"\n" + _DELIM)
    if close < 0:
        raise SpecParseError("missing closing frontmatter delimiter ('---')")
    front = rest[:close]
    body = _trim_leading_newline(rest[close + len(_DELIM) + 1:])
    return front.decode("utf-8"), body.decode("utf-8")


def _string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise SpecParseError(f"{where}: expected a string")


def _strings(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SpecParseError(f"{where}: expected a list of strings")
    return [_string(item, f"{where}[{i}]") for i, item in enumerate(value)]


def _string_or_list(value: Any, where: str) -> list[str]:
    if isinstance(value, list) or value is None:
        return _strings(value, where)
    if isinstance(value, dict):
        raise SpecParseError(f"{where}: expected string or list of strings")
    return [_string(value, where)]


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SpecParseError(f"{where}: expected a mapping")
    return value


def _list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SpecParseError(f"{where}: expected a list")
    return value


def _to_hub(value: Any) -> HubSpec | None:
    if value is None:
        return None
    raw = _mapping(value, "hub")
    hub = HubSpec()
    for i, sec in enumerate(_list(raw.get("sections"), "hub.sections")):
        swhere = f"hub.sections[{i}]"
        sec = _mapping(sec, swhere)
        section = HubSection(
            title=_string(sec.get("title"), f"{swhere}.title"),
            desc=_string(sec.get("desc"), f"{swhere}.desc"),
        )
        for j, link in enumerate(_list(sec.get("links"), f"{swhere}.links")):
            lwhere = f"{swhere}.links[{j}]"
            link = _mapping(link, lwhere)
            section.links.append(
                HubLink(
                    page=_string(link.get("page"), f"{lwhere}.page"),
                    label=_string(link.get("label"), f"{lwhere}.label"),
                    desc=_string(link.get("desc"), f"{lwhere}.desc"),
                    area=_string(link.get("area"), f"{lwhere}.area"),
                )
            )
        hub.sections.append(section)
    return hub


def _validate(wiki: str, page: str, kind: str, hub: HubSpec | None) -> None:
    if not wiki:
        raise SpecParseError("wiki: required")
    if not page:
        raise SpecParseError("page: required")
    if not kind:
        raise SpecParseError("kind: required")
    if kind not in KNOWN_KINDS:
        raise SpecParseError(
            f"kind: {kind!r} unknown (known: projection, editorial, hub, runbook)"
        )
    if kind != "hub":
        return
    if hub is None or not hub.sections:
        raise SpecParseError("hub: kind=hub requires a non-empty hub.sections")
    for i, section in enumerate(hub.sections):
        if not section.links:
            raise SpecParseError(f"hub.sections[{i}] ({section.title!r}): has no links")
        for j, link in enumerate(section.links):
            if not link.page:
                raise SpecParseError(f"hub.sections[{i}].links[{j}]: page is required")


def parse_spec(spec_id: str, content: bytes | str) -> Spec:
    """Parse one spec file; spec_id is its stable identifier."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        front, body = split_frontmatter(data)
    except SpecParseError as exc:
        raise SpecParseError(f"spec {spec_id}: {exc}") from exc

    try:
        loaded = yaml.safe_load(front)
    except yaml.YAMLError as exc:
        raise SpecParseError(f"spec {spec_id}: frontmatter yaml: {exc}") from exc

    try:
        raw = _mapping(loaded, "frontmatter")
        wiki = _string(raw.get("wiki"), "wiki")
        page = _string(raw.get("page"), "page")
        kind = _string(raw.get("kind"), "kind")
        include = _mapping(raw.get("include"), "include")
        include_filter = IncludeFilter(
            areas=_strings(include.get("areas"), "include.areas"),
            workspaces=_string_or_list(include.get("workspaces"), "include.workspaces"),
            exclude_zones=_strings(include.get("exclude_zones"), "include.exclude_zones"),
        )
        fact_check = {
            _string(k, "fact_check"): _string(v, f"fact_check.{k}")
            for k, v in _mapping(raw.get("fact_check"), "fact_check").items()
        }
        hub = _to_hub(raw.get("hub"))
        _validate(wiki, page, kind, hub)
    except SpecParseError as exc:
        raise SpecParseError(f"spec {spec_id}: {exc}") from exc

    return Spec(
        id=spec_id,
        wiki=wiki,
        page=page,
        kind=kind,
        include=include_filter,
        fact_check=fact_check,
        hub=hub,
        body=body,
        hash=hashlib.sha256(data).hexdigest(),
    )