# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
hoptrail package entrypoint.

This package retrieves HTTP resources hop by hop: it follows redirects with bounded
hop/repeat limits, retries error statuses, continues paginated resources through
``Link: rel="next"`` headers and records one metadata entry per exchange. Transport is
abstracted behind an injectable interface; protocol-level failures are returned as
soft failures on the result rather than raised.
"""

from .config import FetchSettings, load_fetch_settings
from .errors import AbortReason, ErrorCategory, FaultKind, HopTrailError, TransportFault
from .fetch import DiagnosticKind, DiagnosticsSink, FetchState, read_bytes, read_text
from .http import (
    Encoding,
    FetchOptions,
    FetchResult,
    HopRecord,
    HttpxTransport,
    SeparableHeaderRegistry,
    StubTransport,
    Transport,
    create_default_transport,
)
from .log import setup_logging
from .runtime import HopTrail, fetch
from .version import __version__

__all__ = [
    "AbortReason",
    "DiagnosticKind",
    "DiagnosticsSink",
    "Encoding",
    "ErrorCategory",
    "FaultKind",
    "FetchOptions",
    "FetchResult",
    "FetchSettings",
    "FetchState",
    "HopRecord",
    "HopTrail",
    "HopTrailError",
    "HttpxTransport",
    "SeparableHeaderRegistry",
    "StubTransport",
    "Transport",
    "TransportFault",
    "create_default_transport",
    "fetch",
    "load_fetch_settings",
    "read_bytes",
    "read_text",
    "setup_logging",
    "__version__",
]
