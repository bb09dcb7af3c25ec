# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Media type parsing and body encoding resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import MediaTypeError
from .models import MediaType

if TYPE_CHECKING:
    from ..fetch.diagnostics import DiagnosticsSink

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_MEDIA_RANGE_RE = re.compile(rf"^\s*({_TOKEN})/({_TOKEN})\s*")
_PARAM_RE = re.compile(rf'\s*;\s*({_TOKEN})\s*=\s*("(?:[^"\\]|\\.)*"|{_TOKEN})')
_QUOTED_PAIR_RE = re.compile(r"\\(.)")


@dataclass(frozen=True)
class Encoding:
    """Encoding tag for a body: ``utf8``, ``ascii``, ``octet`` or another charset name."""

    name: str

    UTF8_NAME = "utf8"
    ASCII_NAME = "ascii"
    OCTET_NAME = "octet"

    @classmethod
    def other(cls, charset: str) -> Encoding:
        return cls(charset.strip().lower())

    @property
    def is_binary(self) -> bool:
        return self.name == self.OCTET_NAME

    @property
    def is_other(self) -> bool:
        return self.name not in (self.UTF8_NAME, self.ASCII_NAME, self.OCTET_NAME)

    @property
    def codec(self) -> str | None:
        """Python codec name for decoding, or None for binary bodies."""
        if self.name == self.UTF8_NAME:
            return "utf-8"
        if self.name == self.ASCII_NAME:
            return "ascii"
        if self.name == self.OCTET_NAME:
            return None
        return self.name

    def __str__(self) -> str:
        return self.name


UTF8 = Encoding(Encoding.UTF8_NAME)
ASCII = Encoding(Encoding.ASCII_NAME)
OCTET = Encoding(Encoding.OCTET_NAME)

KNOWN_MEDIA_TYPE_ENCODINGS: dict[str, Encoding] = {
    "application/json": UTF8,
    "application/n-quads": UTF8,
    "application/n-triples": UTF8,
    "application/sparql-query": UTF8,
    "application/x-prolog": UTF8,
    "image/jpeg": OCTET,
    "image/png": OCTET,
    "text/turtle": UTF8,
}

CHARSET_ALIASES: dict[str, Encoding] = {
    "us-ascii": ASCII,
    "ascii": ASCII,
    "utf-8": UTF8,
    "utf8": UTF8,
}


def parse_media_type(value: str) -> MediaType:
    """Parse a Content-Type value such as ``text/html; charset="UTF-8"``."""
    text = str(value or "")
    match = _MEDIA_RANGE_RE.match(text)
    if not match:
        raise MediaTypeError(f"Malformed media type: {value!r}")
    params: dict[str, str] = {}
    pos = match.end()
    while pos < len(text):
        param = _PARAM_RE.match(text, pos)
        if not param:
            rest = text[pos:].strip()
            # Tolerate a trailing ";" and empty parameters.
            if rest.strip(";").strip():
                raise MediaTypeError(f"Malformed media type parameters: {value!r}")
            break
        name, raw = param.group(1).lower(), param.group(2)
        if raw.startswith('"'):
            raw = _QUOTED_PAIR_RE.sub(r"\1", raw[1:-1])
        params.setdefault(name, raw)
        pos = param.end()
    return MediaType(type=match.group(1).lower(), subtype=match.group(2).lower(), params=params)


def resolve_encoding(media_type: MediaType | str, sink: DiagnosticsSink | None = None, *, uri: str | None = None) -> Encoding:
    """
    Map a media type to the encoding its body should be read with.

    Known application/content types take precedence over any ``charset`` parameter. When
    neither applies the body is treated as binary and a diagnostic is emitted.
    """
    if isinstance(media_type, str):
        media_type = parse_media_type(media_type)

    known = KNOWN_MEDIA_TYPE_ENCODINGS.get(media_type.essence)
    if known is not None:
        return known

    charset = media_type.charset
    if charset:
        lowered = charset.strip().lower()
        return CHARSET_ALIASES.get(lowered) or Encoding.other(lowered)

    if sink is not None:
        from ..fetch.diagnostics import DiagnosticKind

        sink.emit(
            DiagnosticKind.UNKNOWN_ENCODING,
            f"Cannot determine encoding for media type {media_type} (assuming octet).",
            uri=uri,
            media_type=str(media_type),
        )
    return OCTET


__all__ = [
    "ASCII",
    "CHARSET_ALIASES",
    "Encoding",
    "KNOWN_MEDIA_TYPE_ENCODINGS",
    "OCTET",
    "UTF8",
    "parse_media_type",
    "resolve_encoding",
]
