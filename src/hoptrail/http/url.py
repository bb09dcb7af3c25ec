# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared across the fetch layer."""

from __future__ import annotations

from urllib.parse import urldefrag, urljoin, urlparse

from .status import default_port


def resolve_uri(reference: str, base: str | None) -> str:
    """Resolve a (possibly relative) URI reference such as a ``Location`` value against ``base``."""
    ref = str(reference or "").strip()
    if not base:
        return ref
    return urljoin(str(base), ref)


def base_uri(uri: str) -> str:
    """The URI that is read from, sans the fragment component."""
    return urldefrag(str(uri or "")).url


def same_origin(a: str, b: str) -> bool:
    """Return True when both URLs share scheme, host and (effective) port."""
    pa = urlparse(str(a or ""))
    pb = urlparse(str(b or ""))
    return (pa.scheme, pa.hostname, _port(pa)) == (pb.scheme, pb.hostname, _port(pb))


def _port(parsed) -> int | None:  # noqa: ANN001
    try:
        explicit = parsed.port
    except ValueError:
        return None
    if explicit is not None:
        return explicit
    return default_port(parsed.scheme)


def is_absolute_http_uri(uri: str) -> bool:
    parsed = urlparse(str(uri or ""))
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


__all__ = ["base_uri", "is_absolute_http_uri", "resolve_uri", "same_origin"]
