# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction and factory."""

from typing import Protocol

from ..config import FetchSettings, load_fetch_settings
from .models import HttpRequest, RawExchange


class Transport(Protocol):
    """
    Minimal protocol for performing exactly one HTTP exchange.

    Implementations never follow redirects, never interpret status codes and leave the
    returned body stream open. Connection-level failures raise ``TransportFault``.
    """

    def send(self, request: HttpRequest) -> RawExchange: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_transport(settings: FetchSettings | None = None) -> Transport:
    """Factory for the default httpx-backed transport."""
    from .httpx_client import HttpxTransport

    return HttpxTransport(settings or load_fetch_settings())
