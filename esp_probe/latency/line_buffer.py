"""Receive buffer that turns arbitrary byte chunks into newline-delimited lines."""
from __future__ import annotations

import codecs
from typing import List


class LineBuffer:
    """Accumulates decoded text and hands back complete ``\\n``-terminated lines.

    Decoding is incremental so a multi-byte UTF-8 sequence split across two
    chunks is reassembled instead of being replaced.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes | str) -> List[str]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._pending += chunk
        lines: List[str] = []
        while True:
            idx = self._pending.find("\n")
            if idx == -1:
                break
            lines.append(self._pending[:idx])
            self._pending = self._pending[idx + 1:]
        return lines

    def clear(self) -> None:
        self._decoder.reset()
        self._pending = ""
