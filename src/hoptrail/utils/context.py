# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Per-fetch ambient context.

This module provides a ContextVar-backed FetchContext that carries common fetch
plumbing (transport, settings, separable-header registry). Helpers can read from
this context when explicit arguments are omitted.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Any

from ..config import FetchSettings, load_fetch_settings
from ..http.client import Transport
from ..http.headers import DEFAULT_REGISTRY, SeparableHeaderRegistry


@dataclass(frozen=True)
class FetchContext:
    transport: Transport | None = None
    settings: FetchSettings | None = None
    registry: SeparableHeaderRegistry | None = None


_current_fetch_context: ContextVar[FetchContext | None] = ContextVar("hoptrail_fetch_context", default=None)


def get_fetch_context() -> FetchContext:
    """Return the current ambient fetch context."""
    return _current_fetch_context.get() or FetchContext()


def get_fetch_settings() -> FetchSettings:
    """Return FetchSettings from context, falling back to loading defaults."""
    context = get_fetch_context()
    if context.settings is not None:
        return context.settings
    return load_fetch_settings()


def get_transport() -> Transport:
    """Return the ambient Transport from FetchContext."""
    context = get_fetch_context()
    if context.transport is None:
        raise RuntimeError("No Transport configured; wrap the fetch in fetch_context(transport=...)")
    return context.transport


def get_registry() -> SeparableHeaderRegistry:
    """Return the ambient separable-header registry, extended with configured names."""
    context = get_fetch_context()
    if context.registry is not None:
        return context.registry
    return DEFAULT_REGISTRY.extend(*get_fetch_settings().extra_separable_headers)


@contextmanager
def fetch_context(**overrides: Any) -> Iterator[FetchContext]:
    """
    Context manager that layers overrides onto the ambient FetchContext.

    None-valued overrides are ignored to preserve outer context values.
    """
    current = get_fetch_context()
    filtered = {key: value for key, value in overrides.items() if value is not None}
    new_context = replace(current, **filtered) if filtered else current
    token = _current_fetch_context.set(new_context)
    try:
        yield new_context
    finally:
        _current_fetch_context.reset(token)


__all__ = [
    "FetchContext",
    "fetch_context",
    "get_fetch_context",
    "get_fetch_settings",
    "get_registry",
    "get_transport",
]
