# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header parsing and merging.

HTTP header field names are case-insensitive (RFC 9110), so every key is lower-cased. A field
may be repeated in a response only when its value is a comma-separated list; such fields are
*separable* and repeated occurrences combine into one value joined with ``", "`` in arrival
order (RFC 7230 section 3.2.2). Any other repeated field keeps its first value.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import HeaderParseError

if TYPE_CHECKING:
    from ..fetch.diagnostics import DiagnosticsSink

_FIELD_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

DEFAULT_SEPARABLE_HEADERS = frozenset(
    {
        "accept",
        "accept-charset",
        "accept-encoding",
        "accept-language",
        "accept-patch",
        "accept-post",
        "accept-ranges",
        "access-control-allow-headers",
        "access-control-allow-methods",
        "access-control-expose-headers",
        "allow",
        "alt-svc",
        "cache-control",
        "connection",
        "content-encoding",
        "content-language",
        "expect",
        "forwarded",
        "if-match",
        "if-none-match",
        "link",
        "pragma",
        "prefer",
        "preference-applied",
        "proxy-authenticate",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "vary",
        "via",
        "warning",
        "www-authenticate",
        "x-forwarded-for",
    }
)


@dataclass(frozen=True)
class SeparableHeaderRegistry:
    """Read-only set of header names whose repeated values may be comma-joined."""

    names: frozenset[str] = DEFAULT_SEPARABLE_HEADERS

    def is_separable(self, name: str) -> bool:
        return name.strip().lower() in self.names

    def extend(self, *names: str) -> SeparableHeaderRegistry:
        extra = {name.strip().lower() for name in names if name and name.strip()}
        if not extra:
            return self
        return SeparableHeaderRegistry(self.names | extra)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_separable(name)


DEFAULT_REGISTRY = SeparableHeaderRegistry()


def parse_header_line(line: str | bytes) -> tuple[str, str]:
    """Split one raw ``Name: value`` line into a lower-cased key and its value."""
    if isinstance(line, bytes):
        line = line.decode("latin-1")
    text = line.rstrip("\r\n")
    name, sep, value = text.partition(":")
    if not sep or not _FIELD_NAME_RE.match(name):
        raise HeaderParseError(f"Malformed header line: {text!r}")
    return name.lower(), value.strip(" \t")


def header_pairs(raw_headers: Iterable[Any]) -> list[tuple[str, str]]:
    """Normalize raw header lines and/or ``(name, value)`` pairs, preserving order."""
    pairs: list[tuple[str, str]] = []
    for item in raw_headers or ():
        if isinstance(item, (str, bytes)):
            pairs.append(parse_header_line(item))
            continue
        name, value = item
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        key = str(name).strip().lower()
        if not key:
            continue
        pairs.append((key, "" if value is None else str(value).strip(" \t")))
    return pairs


def merge_headers(
    raw_headers: Iterable[Any],
    registry: SeparableHeaderRegistry | None = None,
    sink: DiagnosticsSink | None = None,
    *,
    uri: str | None = None,
) -> dict[str, str]:
    """
    Merge possibly repeated header fields into one ordered mapping.

    Keys keep their first-seen order. Separable keys join all values with ``", "``;
    non-separable keys keep the first value and the discarded values are reported.
    """
    registry = registry or DEFAULT_REGISTRY
    grouped: dict[str, list[str]] = {}
    for key, value in header_pairs(raw_headers):
        grouped.setdefault(key, []).append(value)

    merged: dict[str, str] = {}
    for key, values in grouped.items():
        if len(values) == 1:
            merged[key] = values[0]
        elif registry.is_separable(key):
            merged[key] = ", ".join(values)
        else:
            merged[key] = values[0]
            if sink is not None:
                from ..fetch.diagnostics import DiagnosticKind

                sink.emit(
                    DiagnosticKind.NON_SEPARABLE_HEADER,
                    f"Non-separable header {pretty_header_key(key)!r} occurs {len(values)} times; "
                    f"keeping {values[0]!r}, discarding {values[1:]!r}.",
                    uri=uri,
                    header=key,
                    kept=values[0],
                    discarded=list(values[1:]),
                )
    return merged


def pretty_header_key(key: str) -> str:
    """``content-type`` -> ``Content-Type``."""
    return "-".join(part.capitalize() for part in str(key).split("-"))


def _coerce_headers_mapping(headers: Any) -> Mapping[object, object] | None:
    """
    Best-effort coercion of "dict-like" header containers into a Mapping.

    Accepts plain dicts, httpx.Headers, objects with ``.items()`` and iterables of pairs.
    """
    if not headers:
        return None
    if isinstance(headers, Mapping):
        return headers

    items = getattr(headers, "items", None)
    if callable(items):
        try:
            return dict(items())
        except (TypeError, ValueError):
            pass

    try:
        return dict(headers)
    except (TypeError, ValueError):
        return None


def header_value(headers: Mapping[object, object] | None, name: str, default: str = "") -> str:
    """
    Return a header value using case-insensitive key matching.

    Fast-paths common key casings before falling back to a full scan.
    """
    if not headers or not name:
        return default

    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return default

    lower = str(name).lower()
    for key in (lower, name, pretty_header_key(lower)):
        if key in coerced:
            value = coerced.get(key)
            return default if value is None else str(value).strip()

    for key, value in coerced.items():
        if key is None:
            continue
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()

    return default


__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_SEPARABLE_HEADERS",
    "SeparableHeaderRegistry",
    "header_pairs",
    "header_value",
    "merge_headers",
    "parse_header_line",
    "pretty_header_key",
]
