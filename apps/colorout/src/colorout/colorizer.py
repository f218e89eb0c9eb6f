from __future__ import annotations

from colorout.palette import Palette
from colorout.sink import ByteWriter

_NEWLINE = b"\n"
_CARRIAGE_RETURN = b"\r"


class LineColorizer:
    """Buffers raw output and writes one colored, index-prefixed line per newline."""

    def __init__(self, sink: ByteWriter, index: int, palette: Palette) -> None:
        color = palette.color_for(index)
        self._sink = sink
        self._prefix = f"{color}{index}> ".encode()
        self._suffix = f"{palette.reset}\n".encode()
        self._carry = b""
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bytes:
        return self._carry

    def write(self, chunk: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed colorizer")
        if not chunk:
            return 0

        data = self._carry + bytes(chunk)
        start = 0
        while True:
            newline = data.find(_NEWLINE, start)
            if newline < 0:
                break
            end = newline
            if end > start and data[end - 1 : end] == _CARRIAGE_RETURN:
                end -= 1
            try:
                self._emit(data[start:end])
            except Exception:
                self._carry = data[start:]
                raise
            start = newline + 1
        self._carry = data[start:]
        return len(chunk)

    def write_line(self, text: str) -> int:
        return self._emit(text.encode("utf-8", errors="replace"))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        carry, self._carry = self._carry, b""
        if carry:
            self._emit(carry)

    def _emit(self, text: bytes) -> int:
        return self._sink.write(self._prefix + text + self._suffix)
