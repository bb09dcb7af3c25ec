# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Structured warning channel for fetches.

Non-fatal conditions (duplicate non-separable headers, undeterminable encodings, pagination
loops) and soft failures are recorded here in emission order and mirrored to logging.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger("hoptrail")


class DiagnosticKind(str, Enum):
    NON_SEPARABLE_HEADER = "NON_SEPARABLE_HEADER"
    UNKNOWN_ENCODING = "UNKNOWN_ENCODING"
    EMPTY_BODY_EXPECTED = "EMPTY_BODY_EXPECTED"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    HTTP_ERROR = "HTTP_ERROR"
    ERROR_BODY = "ERROR_BODY"
    REDIRECT_HOP_LIMIT = "REDIRECT_HOP_LIMIT"
    REDIRECT_LOOP = "REDIRECT_LOOP"
    MISSING_LOCATION = "MISSING_LOCATION"
    UNEXPECTED_STATUS = "UNEXPECTED_STATUS"
    PAGINATION_LOOP = "PAGINATION_LOOP"
    PAGINATION_LIMIT = "PAGINATION_LIMIT"
    MALFORMED_HEADER = "MALFORMED_HEADER"


# Kinds that carry response body content rather than a warning.
_DEBUG_KINDS = frozenset({DiagnosticKind.ERROR_BODY})


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    uri: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "uri": self.uri,
            "details": dict(self.details),
        }


class DiagnosticsSink:
    """Ordered collector of diagnostics, owned by one fetch."""

    def __init__(self, *, log: logging.Logger | None = None):
        self.records: list[Diagnostic] = []
        self._logger = log or logger

    def emit(self, kind: DiagnosticKind, message: str, *, uri: str | None = None, **details: Any) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, uri=uri, details=details)
        self.records.append(diagnostic)
        level = logging.DEBUG if kind in _DEBUG_KINDS else logging.WARNING
        self._logger.log(level, "%s%s", message, f" <{uri}>" if uri else "")
        return diagnostic

    def kinds(self) -> list[DiagnosticKind]:
        return [record.kind for record in self.records]

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [record for record in self.records if record.kind == kind]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.records)


__all__ = ["Diagnostic", "DiagnosticKind", "DiagnosticsSink"]
