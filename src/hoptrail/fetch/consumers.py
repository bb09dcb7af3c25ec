# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Ready-made page consumers."""

from __future__ import annotations

import codecs

from ..http.media import Encoding
from .hashing import HashingStream


def read_bytes(_encoding: Encoding | None, stream: HashingStream) -> bytes:
    """Return the raw body."""
    return stream.read()


def read_text(encoding: Encoding | None, stream: HashingStream) -> str:
    """
    Decode the body using the resolved encoding.

    Binary bodies and unknown charsets fall back to UTF-8 with replacement characters.
    """
    data = stream.read()
    codec = encoding.codec if encoding is not None else None
    if codec is None:
        codec = "utf-8"
    try:
        codecs.lookup(codec)
    except LookupError:
        codec = "utf-8"
    return data.decode(codec, errors="replace")


def read_lines(encoding: Encoding | None, stream: HashingStream) -> list[str]:
    return read_text(encoding, stream).splitlines()


__all__ = ["read_bytes", "read_lines", "read_text"]
