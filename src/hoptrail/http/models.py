# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across hoptrail."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import TYPE_CHECKING, Any, Union

from ..config import FetchSettings, load_fetch_settings
from .stream import BodyStream

if TYPE_CHECKING:
    from ..errors import AbortReason
    from ..fetch.diagnostics import Diagnostic
    from .media import Encoding

Headers = dict[str, str]
HeaderMultimap = dict[str, str]
RawHeader = Union[str, bytes, tuple[str, str]]


@dataclass
class HttpRequest:
    """Normalized request representation consumed by Transport implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: bytes | str | None = None
    timeout: float | None = None


@dataclass
class RawExchange:
    """One uninterpreted response as produced by a transport."""

    status_code: int
    raw_headers: list[RawHeader] = field(default_factory=list)
    stream: BodyStream = field(default_factory=BodyStream.from_bytes)
    http_version: tuple[int, int] = (1, 1)
    reason: str = ""
    url: str | None = None


@dataclass
class Exchange:
    """A completed request/response exchange with timing and merged headers."""

    uri: str
    request: HttpRequest
    status_code: int
    headers: HeaderMultimap
    stream: BodyStream
    http_version: tuple[int, int]
    walltime: float
    reason: str = ""


@dataclass(frozen=True)
class HopRecord:
    """Immutable metadata for one exchange in a fetch trail."""

    uri: str
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    http_version: tuple[int, int] = (1, 1)
    walltime: float = 0.0
    reason: str = ""
    method: str = "GET"
    digest: str | None = None
    byte_count: int | None = None
    hash_algorithm: str | None = None

    def __post_init__(self) -> None:
        if not 100 <= self.status_code <= 599:
            raise ValueError(f"HTTP status code out of range: {self.status_code}")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code <= 299

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code <= 399

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def with_digest(self, digest: str, byte_count: int, algorithm: str) -> HopRecord:
        return replace(self, digest=digest, byte_count=byte_count, hash_algorithm=algorithm)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["headers"] = dict(self.headers)
        data["http_version"] = f"{self.http_version[0]}.{self.http_version[1]}"
        return data


@dataclass(frozen=True)
class MediaType:
    """Parsed ``type/subtype`` plus lower-cased parameter names."""

    type: str
    subtype: str
    params: Mapping[str, str] = field(default_factory=dict)

    @property
    def essence(self) -> str:
        return f"{self.type}/{self.subtype}"

    @property
    def charset(self) -> str | None:
        return self.params.get("charset")

    def __str__(self) -> str:
        rendered = "".join(f"; {key}={value}" for key, value in self.params.items())
        return f"{self.essence}{rendered}"


@dataclass(frozen=True)
class LinkEntry:
    """One link-value from a ``Link`` header (RFC 8288)."""

    target: str
    params: Mapping[str, str] = field(default_factory=dict)

    @property
    def rels(self) -> tuple[str, ...]:
        return tuple(self.params.get("rel", "").lower().split())

    def has_rel(self, rel: str) -> bool:
        return rel.lower() in self.rels


@dataclass
class FetchOptions:
    """Per-fetch limits and transport passthrough options."""

    number_of_hops: int = 5
    number_of_repeats: int = 2
    number_of_retries: int = 1
    method: str = "GET"
    body: bytes | str | None = None
    content_type: str | None = None
    headers: Headers | None = None
    timeout: float = 60.0
    max_pages: int | None = None
    hash_algorithm: str = "sha256"
    user_agent: str | None = None

    def __post_init__(self) -> None:
        self.number_of_hops = max(1, int(self.number_of_hops))
        self.number_of_repeats = max(1, int(self.number_of_repeats))
        self.number_of_retries = max(1, int(self.number_of_retries))
        self.method = str(self.method or "GET").upper()
        if self.max_pages is not None and self.max_pages <= 0:
            self.max_pages = None

    @classmethod
    def from_settings(cls, settings: FetchSettings | None = None, **overrides: Any) -> FetchOptions:
        """Build options from FetchSettings; None-valued overrides are ignored."""
        settings = settings or load_fetch_settings()
        values: dict[str, Any] = {
            "number_of_hops": settings.number_of_hops,
            "number_of_repeats": settings.number_of_repeats,
            "number_of_retries": settings.number_of_retries,
            "timeout": settings.timeout,
            "max_pages": settings.max_pages,
            "hash_algorithm": settings.hash_algorithm,
            "user_agent": settings.user_agent,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@dataclass
class PageResult:
    """Outcome of consuming one page of a resource."""

    uri: str
    hop: HopRecord
    media_type: MediaType | None
    encoding: Encoding | None
    value: Any = None


@dataclass
class FetchResult:
    """Trail, consumed pages and soft-failure status of one fetch."""

    trail: tuple[HopRecord, ...]
    pages: list[PageResult] = field(default_factory=list)
    abort: AbortReason | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.abort is None

    @property
    def final_hop(self) -> HopRecord:
        return self.trail[-1]

    @property
    def values(self) -> list[Any]:
        return [page.value for page in self.pages]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "abort": self.abort.value if self.abort is not None else None,
            "trail": [hop.to_dict() for hop in self.trail],
            "pages": [
                {
                    "uri": page.uri,
                    "media_type": str(page.media_type) if page.media_type is not None else None,
                    "encoding": str(page.encoding) if page.encoding is not None else None,
                }
                for page in self.pages
            ],
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }
