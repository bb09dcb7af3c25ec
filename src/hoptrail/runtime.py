# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level hoptrail facade for fetch workflows."""

from __future__ import annotations

from contextlib import suppress
from dataclasses import replace
from typing import Any

from .config import FetchSettings, load_fetch_settings
from .fetch.consumers import read_bytes
from .fetch.diagnostics import DiagnosticsSink
from .fetch.executor import RequestExecutor
from .fetch.orchestrator import RedirectRetryOrchestrator
from .fetch.pagination import PageConsumer, PaginationFollower
from .http.client import Transport, create_default_transport
from .http.headers import DEFAULT_REGISTRY, SeparableHeaderRegistry
from .http.models import FetchOptions, FetchResult
from .utils.context import fetch_context, get_fetch_settings, get_registry, get_transport


class HopTrail:
    """
    Convenience wrapper that wires one transport, settings and header registry across fetches.

    Each ``fetch()`` builds its own executor/orchestrator/follower chain and diagnostics sink,
    so concurrent fetches share nothing mutable.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        settings: FetchSettings | None = None,
        registry: SeparableHeaderRegistry | None = None,
    ):
        self.settings = settings or load_fetch_settings()
        self.transport = transport or create_default_transport(self.settings)
        self.registry = registry or DEFAULT_REGISTRY.extend(*self.settings.extra_separable_headers)

    def options(self, **overrides: Any) -> FetchOptions:
        return FetchOptions.from_settings(self.settings, **overrides)

    def fetch(
        self,
        uri: str,
        consumer: PageConsumer = read_bytes,
        *,
        options: FetchOptions | None = None,
        paginate: bool = True,
        **overrides: Any,
    ) -> FetchResult:
        if options is None:
            options = self.options(**overrides)
        else:
            options = replace(options, **{key: value for key, value in overrides.items() if value is not None})
        with fetch_context(transport=self.transport, settings=self.settings, registry=self.registry):
            return run_fetch(uri, consumer, options, transport=self.transport, registry=self.registry, paginate=paginate)

    def close(self) -> None:
        with suppress(Exception):
            if hasattr(self.transport, "close"):
                self.transport.close()

    def __enter__(self) -> HopTrail:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


def run_fetch(
    uri: str,
    consumer: PageConsumer,
    options: FetchOptions,
    *,
    transport: Transport,
    registry: SeparableHeaderRegistry | None = None,
    sink: DiagnosticsSink | None = None,
    paginate: bool = True,
) -> FetchResult:
    """Wire a fresh executor/orchestrator/follower chain for one fetch and run it."""
    sink = sink if sink is not None else DiagnosticsSink()
    executor = RequestExecutor(transport, registry or DEFAULT_REGISTRY, sink)
    follower = PaginationFollower(RedirectRetryOrchestrator(executor, sink), sink)
    return follower.follow(uri, consumer, options, paginate=paginate)


def fetch(uri: str, consumer: PageConsumer = read_bytes, *, paginate: bool = True, **overrides: Any) -> FetchResult:
    """Fetch ``uri`` with the ambient FetchContext transport and settings."""
    options = FetchOptions.from_settings(get_fetch_settings(), **overrides)
    return run_fetch(uri, consumer, options, transport=get_transport(), registry=get_registry(), paginate=paginate)


__all__ = ["HopTrail", "fetch", "run_fetch"]
