# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Ordered per-hop metadata for a fetch."""

from __future__ import annotations

from collections.abc import Iterator

from ..http.models import HopRecord


class MetadataTrail:
    """Append-only, oldest-first record of every exchange in one fetch."""

    def __init__(self) -> None:
        self._records: list[HopRecord] = []

    def append(self, hop: HopRecord) -> HopRecord:
        self._records.append(hop)
        return hop

    def replace_last(self, hop: HopRecord) -> None:
        """Swap the newest record for an augmented copy of the same exchange."""
        if not self._records:
            raise IndexError("replace_last() on an empty trail")
        if self._records[-1].uri != hop.uri or self._records[-1].status_code != hop.status_code:
            raise ValueError("replacement must describe the same exchange")
        self._records[-1] = hop

    @property
    def last(self) -> HopRecord | None:
        return self._records[-1] if self._records else None

    def records(self) -> tuple[HopRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HopRecord]:
        return iter(tuple(self._records))

    def __bool__(self) -> bool:
        return bool(self._records)


__all__ = ["MetadataTrail"]
