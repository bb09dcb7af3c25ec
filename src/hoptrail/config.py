# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for hoptrail."""

import os
from dataclasses import dataclass, field

from .version import __version__

DEFAULT_USER_AGENT = f"hoptrail/{__version__} (+https://pypi.org/project/hoptrail/)"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_int_env(name: str, default: int | None) -> int | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = int(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


def _list_env(name: str) -> tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return ()
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


@dataclass
class FetchSettings:
    """Fetch defaults: per-hop transport settings plus redirect/retry limits."""

    timeout: float = 60.0
    number_of_hops: int = 5
    number_of_repeats: int = 2
    number_of_retries: int = 1
    user_agent: str = DEFAULT_USER_AGENT
    # Certificates are accepted as-is unless explicitly enabled.
    verify_ssl: bool = False
    max_pages: int | None = None
    hash_algorithm: str = "sha256"
    extra_separable_headers: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls) -> "FetchSettings":
        """Create settings from environment variables (evaluated at call time)."""
        timeout = _float_env("HOPTRAIL_HTTP_TIMEOUT", cls.timeout)
        if timeout <= 0:
            timeout = cls.timeout
        return cls(
            timeout=timeout,
            number_of_hops=_int_env("HOPTRAIL_HOPS", cls.number_of_hops),
            number_of_repeats=_int_env("HOPTRAIL_REPEATS", cls.number_of_repeats),
            number_of_retries=_int_env("HOPTRAIL_RETRIES", cls.number_of_retries),
            user_agent=os.getenv("HOPTRAIL_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("HOPTRAIL_HTTP_VERIFY_SSL", cls.verify_ssl),
            max_pages=_optional_int_env("HOPTRAIL_MAX_PAGES", cls.max_pages),
            hash_algorithm=os.getenv("HOPTRAIL_HASH_ALGORITHM", cls.hash_algorithm).strip().lower() or cls.hash_algorithm,
            extra_separable_headers=_list_env("HOPTRAIL_SEPARABLE_HEADERS"),
        )


def load_fetch_settings() -> FetchSettings:
    """Load fetch settings from environment with sensible defaults."""
    return FetchSettings.from_env()
