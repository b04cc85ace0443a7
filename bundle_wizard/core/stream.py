"""Line buffering for incrementally delivered response bodies."""
from __future__ import annotations

import codecs


class LineSplitter:
    """Turn arbitrary text chunks into complete lines.

    Chunks are not expected to align with line boundaries.  Whatever follows
    the last newline is held back until the next ``feed`` or ``flush``.
    Bytes are decoded as UTF-8 incrementally so a character split across two
    chunks survives.
    """

    def __init__(self) -> None:
        self._pending = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: str | bytes) -> list[str]:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        if not chunk:
            return []

        data = self._pending + chunk
        parts = data.split("\n")
        self._pending = parts.pop()
        return [self._strip_cr(part) for part in parts]

    def flush(self) -> list[str]:
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if not tail:
            return []
        # a lone trailing "\r" is a terminator that lost its "\n"
        tail = self._strip_cr(tail)
        return [tail] if tail else []

    @staticmethod
    def _strip_cr(line: str) -> str:
        return line[:-1] if line.endswith("\r") else line
