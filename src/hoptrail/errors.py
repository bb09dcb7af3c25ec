# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers.

Only :class:`TransportFault` is raised across the fetch API. Protocol-level outcomes
(authentication required, exhausted retries, redirect loops) are soft failures and are
reported through :class:`AbortReason` on the returned result.
"""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from .http.models import HopRecord


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    INVALID_URL = "INVALID_URL"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class FaultKind(str, Enum):
    """Protocol fault families."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    SERVER_OR_CLIENT_ERROR = "SERVER_OR_CLIENT_ERROR"
    REDIRECT_LOOP = "REDIRECT_LOOP"


class AbortReason(str, Enum):
    """Why an orchestration stopped without a 2xx response."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"
    HOP_LIMIT = "HOP_LIMIT"
    REDIRECT_LOOP = "REDIRECT_LOOP"
    MISSING_LOCATION = "MISSING_LOCATION"
    UNEXPECTED_STATUS = "UNEXPECTED_STATUS"

    @property
    def fault_kind(self) -> FaultKind:
        if self is AbortReason.AUTH_REQUIRED:
            return FaultKind.AUTH_REQUIRED
        if self in (AbortReason.RETRIES_EXHAUSTED, AbortReason.UNEXPECTED_STATUS):
            return FaultKind.SERVER_OR_CLIENT_ERROR
        return FaultKind.REDIRECT_LOOP


class HopTrailError(Exception):
    """Base class for hoptrail exceptions."""


class TransportFault(HopTrailError):
    """Connection, TLS, DNS or timeout failure while performing one exchange."""

    def __init__(
        self,
        message: str,
        *,
        uri: str | None = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.uri = uri
        self.category = category
        self.cause = cause
        # Hops completed before the fault; filled in by the orchestrator.
        self.trail: tuple[HopRecord, ...] = ()

    @classmethod
    def from_exception(cls, exc: BaseException, *, uri: str | None = None) -> TransportFault:
        category = categorize_exception(exc)
        return cls(str(exc) or type(exc).__name__, uri=uri, category=category, cause=exc)

    @property
    def reason(self) -> str:
        return error_category_to_reason(self.category)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self.cause).__name__ if self.cause is not None else type(self).__name__,
            "error_message": str(self),
            "category": self.category.value,
            "uri": self.uri,
        }


class HeaderParseError(HopTrailError, ValueError):
    """A raw header line is not of the form ``field-name ":" OWS field-value``."""


class MediaTypeError(HopTrailError, ValueError):
    """A Content-Type value cannot be parsed as ``type/subtype *(; parameter)``."""


class LinkHeaderError(HopTrailError, ValueError):
    """A Link header value does not follow RFC 8288 syntax."""


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return ErrorCategory.INVALID_URL

    # httpx wraps the underlying socket/ssl errors (possibly via httpcore).
    if isinstance(exc, httpx.HTTPError):
        inner = exc.__cause__ or exc.__context__
        depth = 0
        while inner is not None and depth < 4:
            if isinstance(inner, (ssl_module.SSLError, ssl_module.CertificateError)):
                return ErrorCategory.SSL_ERROR
            if isinstance(inner, (socket.gaierror, socket.herror)):
                return ErrorCategory.DNS_ERROR
            inner = inner.__cause__ or inner.__context__
            depth += 1

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
        return ErrorCategory.PROTOCOL_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Network timeout during request",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.PROTOCOL_ERROR: "Malformed HTTP exchange",
        ErrorCategory.INVALID_URL: "Invalid or unsupported URL",
        ErrorCategory.UNKNOWN_ERROR: "Network error during request",
        ErrorCategory.NONE: "",
        None: "",
    }
    return mapping.get(category, "Request failed due to network error")


__all__ = [
    "AbortReason",
    "ErrorCategory",
    "FaultKind",
    "HeaderParseError",
    "HopTrailError",
    "LinkHeaderError",
    "MediaTypeError",
    "TransportFault",
    "categorize_exception",
    "error_category_to_reason",
]
