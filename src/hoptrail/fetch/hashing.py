# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Content digests for consumed response bodies."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator

from ..http.models import HopRecord
from ..http.stream import BodyStream

logger = logging.getLogger(__name__)

DRAIN_CHUNK_SIZE = 64 * 1024


class HashingStream:
    """
    Read-through wrapper that hashes every byte handed to the consumer.

    Exposes the same reading surface as BodyStream. ``finish()`` hashes whatever the consumer
    left unread so the digest always covers the complete body. A stream closed before its end
    was reached yields no digest.
    """

    def __init__(self, stream: BodyStream, algorithm: str = "sha256"):
        self._stream = stream
        self.algorithm = algorithm
        self._hash = hashlib.new(algorithm)
        self.byte_count = 0
        self.complete = False

    def _update(self, data: bytes) -> bytes:
        if data:
            self._hash.update(data)
            self.byte_count += len(data)
        return data

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def at_eof(self) -> bool:
        if self._stream.at_eof():
            self.complete = True
        return self.complete

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        if size is None or size < 0 or len(data) < size:
            self.complete = True
        return self._update(data)

    def readline(self) -> bytes:
        data = self._stream.readline()
        if not data.endswith(b"\n"):
            self.complete = True
        return self._update(data)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def finish(self) -> tuple[str | None, int]:
        """
        Drain the remaining body and return ``(hexdigest, byte_count)``.

        The digest is None when the stream was closed before the end of the body.
        """
        if not self._stream.closed:
            while self.read(DRAIN_CHUNK_SIZE):
                pass
        if not self.complete:
            return None, self.byte_count
        return self._hash.hexdigest(), self.byte_count

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> HashingStream:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


class StreamHasher:
    """Builds hashing wrappers and folds their digests into hop metadata."""

    def __init__(self, algorithm: str = "sha256"):
        hashlib.new(algorithm)  # fail fast on unknown algorithms
        self.algorithm = algorithm

    def wrap(self, stream: BodyStream) -> HashingStream:
        return HashingStream(stream, self.algorithm)

    def augment(self, hop: HopRecord, stream: HashingStream) -> HopRecord:
        digest, byte_count = stream.finish()
        if digest is None:
            logger.debug("Body of %s closed before end of stream; no digest recorded", hop.uri)
            return hop
        return hop.with_digest(digest, byte_count, stream.algorithm)


__all__ = ["HashingStream", "StreamHasher"]
