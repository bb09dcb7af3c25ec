# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""``Link`` header parsing (RFC 8288)."""

from __future__ import annotations

import re

from ..errors import LinkHeaderError
from .models import LinkEntry
from .url import resolve_uri

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_TARGET_RE = re.compile(r"\s*<([^>]*)>\s*")
_PARAM_RE = re.compile(rf'\s*;\s*({_TOKEN}\*?)\s*(?:=\s*("(?:[^"\\]|\\.)*"|[^";,\s]+))?\s*')
_QUOTED_PAIR_RE = re.compile(r"\\(.)")


def parse_link_header(value: str, base: str | None = None) -> list[LinkEntry]:
    """
    Parse a (possibly comma-joined) Link header value into entries.

    Targets are resolved against ``base`` when given. Only the first occurrence of each
    parameter is kept, as RFC 8288 requires for ``rel``.
    """
    entries: list[LinkEntry] = []
    text = str(value or "")
    pos = 0
    while pos < len(text):
        if text[pos] in " \t,":
            pos += 1
            continue
        match = _TARGET_RE.match(text, pos)
        if not match:
            raise LinkHeaderError(f"Malformed Link header near offset {pos}: {text!r}")
        target = match.group(1).strip()
        pos = match.end()
        params: dict[str, str] = {}
        while True:
            param = _PARAM_RE.match(text, pos)
            if not param:
                break
            name = param.group(1).lower()
            raw = param.group(2) or ""
            if raw.startswith('"'):
                raw = _QUOTED_PAIR_RE.sub(r"\1", raw[1:-1])
            params.setdefault(name, raw)
            pos = param.end()
        if pos < len(text) and text[pos] != ",":
            raise LinkHeaderError(f"Malformed Link header near offset {pos}: {text!r}")
        entries.append(LinkEntry(target=resolve_uri(target, base) if base else target, params=params))
    return entries


def find_link(entries: list[LinkEntry], rel: str) -> LinkEntry | None:
    """Return the first entry carrying relation type ``rel``."""
    for entry in entries:
        if entry.has_rel(rel):
            return entry
    return None


def next_page_link(value: str, base: str | None = None) -> str | None:
    """Target of the first ``rel="next"`` entry, if any."""
    entry = find_link(parse_link_header(value, base), "next")
    return entry.target if entry is not None else None


__all__ = ["find_link", "next_page_link", "parse_link_header"]
