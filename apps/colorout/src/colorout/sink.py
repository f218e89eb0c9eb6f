from __future__ import annotations

import threading
from typing import BinaryIO, Protocol


class ByteWriter(Protocol):
    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...


class SynchronizedSink:
    """Serializes writes from many threads onto one binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        with self._lock:
            written = self._stream.write(data)
            self._stream.flush()
        return written

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()

    def close(self) -> None:
        # the console stream is borrowed, only flush it
        self.flush()
