# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP status labels and scheme defaults."""

from __future__ import annotations

from http import HTTPStatus

_DEFAULT_PORTS = {"http": 80, "https": 443}


def status_label(code: int) -> str:
    """Reason phrase for a status code, e.g. ``404 -> "Not Found"``."""
    try:
        return HTTPStatus(int(code)).phrase
    except ValueError:
        return "Unknown"


def status_message(code: int) -> str:
    return f"HTTP error code {code} ({status_label(code)})."


def default_port(scheme: str) -> int | None:
    return _DEFAULT_PORTS.get(str(scheme or "").lower())


__all__ = ["default_port", "status_label", "status_message"]
