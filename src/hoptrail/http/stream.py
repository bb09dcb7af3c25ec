# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Readable response body stream.

Transports hand the body over as a lazy iterator of byte chunks. ``BodyStream`` turns that
into a small file-like object that consumers can ``read()``/``readline()`` from, and that the
fetch layer can check for emptiness without consuming data.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator


class BodyStream:
    """File-like, read-only view over an iterator of body chunks."""

    def __init__(self, chunks: Iterable[bytes], close_callback: Callable[[], None] | None = None):
        self._chunks: Iterator[bytes] = iter(chunks)
        self._close_callback = close_callback
        self._buffer = bytearray()
        self._exhausted = False
        self._closed = False

    @classmethod
    def from_bytes(
        cls,
        data: bytes | str = b"",
        *,
        chunk_size: int = 8192,
        close_callback: Callable[[], None] | None = None,
    ) -> BodyStream:
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        size = max(1, chunk_size)
        return cls((payload[i : i + size] for i in range(0, len(payload), size)), close_callback)

    @property
    def closed(self) -> bool:
        return self._closed

    def _fill(self) -> bool:
        """Pull the next non-empty chunk into the buffer. Returns False at end of stream."""
        if self._closed:
            raise ValueError("I/O operation on closed body stream")
        while not self._exhausted:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                break
            if chunk:
                self._buffer.extend(chunk)
                return True
        return False

    def at_eof(self) -> bool:
        """Return True when no body bytes remain. Reads ahead at most one chunk."""
        if self._buffer:
            return False
        return not self._fill()

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            while self._fill():
                pass
            data = bytes(self._buffer)
            self._buffer.clear()
            return data
        while len(self._buffer) < size and self._fill():
            pass
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def readline(self) -> bytes:
        while b"\n" not in self._buffer and self._fill():
            pass
        index = self._buffer.find(b"\n")
        end = len(self._buffer) if index < 0 else index + 1
        line = bytes(self._buffer[:end])
        del self._buffer[:end]
        return line

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        if self._close_callback is not None:
            self._close_callback()

    def __enter__(self) -> BodyStream:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


__all__ = ["BodyStream"]
