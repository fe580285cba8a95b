from __future__ import annotations

from typing import Iterator

__all__ = ["ResponseStream"]


class ResponseStream:
    """
    Adapted from `obskyr's ResponseStream demo code
    <https://gist.github.com/obskyr/b9d4b4223e7eaf4eedcd9defabb34f13>`_,
    this class hands out the bytes of a streamed response body in pieces of at
    most the requested size.

    Unlike a buffered stream, bytes are not kept once read: only the unread
    remainder of the most recently received chunk is held. Going back to earlier
    bytes is done by sending a new range request, not by rewinding a buffer.
    """

    def __init__(self, iterator: Iterator[bytes]):
        self._iterator = iterator
        self._pending = b""
        self.exhausted = False

    def __repr__(self):
        state = "exhausted" if self.exhausted else f"{len(self._pending)} bytes pending"
        return f"{self.__class__.__name__} ⠶ {state}"

    def _load_chunk(self) -> bool:
        """
        Pull chunks from the iterator until a non-empty one arrives, returning
        ``False`` if the iterator runs out first.
        """
        while not self._pending:
            try:
                self._pending = next(self._iterator)
            except StopIteration:
                self.exhausted = True
                return False
        return True

    def read(self, size: int = -1) -> bytes:
        """
        Return up to ``size`` bytes (or the rest of the current chunk if ``size``
        is negative). An empty result means the body is exhausted. Any error the
        iterator raises is left to propagate.
        """
        if size == 0 or (not self._pending and self.exhausted):
            return b""
        if not self._load_chunk():
            return b""
        if size < 0 or size >= len(self._pending):
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data
