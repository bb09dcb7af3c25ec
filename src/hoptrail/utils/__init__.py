# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Utility exports."""

from .context import (
    FetchContext,
    fetch_context,
    get_fetch_context,
    get_fetch_settings,
    get_registry,
    get_transport,
)

__all__ = [
    "FetchContext",
    "fetch_context",
    "get_fetch_context",
    "get_fetch_settings",
    "get_registry",
    "get_transport",
]
