r""":mod:`seekable_streams.retry` wraps a :class:`~seekable_streams.seeker.Seeker`
so that reads which fail part-way through a response body are resumed by sending
a new range request from the last byte received.

Whether (and when) to resume is up to an ``error_handler``: a callable given each
error, which returns ``None`` to retry or an exception to raise instead. Without a
handler, no retries are made.

    >>> from seekable_streams import RetryingReader, Seeker, stop_after
    >>> s = Seeker.from_url("https://example.com/big.bin") # doctest: +SKIP
    >>> r = RetryingReader(s, error_handler=stop_after(5, backoff=0.5)) # doctest: +SKIP
    >>> data = r.read() # doctest: +SKIP

Only I/O errors are offered to the handler: errors in the range protocol itself
(:class:`~seekable_streams.http_utils.RangeProtocolError`) would only recur, so
they are always raised at once.
"""

from __future__ import annotations

import io
import itertools
import time
from io import SEEK_SET

import httpx

from .http_utils import RangeProtocolError
from .log_utils import log
from .seeker import Seeker
from .types import CountingErrorHandler, ErrorHandler

__all__ = ["RETRYABLE_ERRORS", "RetryingReader", "count_retries", "stop_after"]

RETRYABLE_ERRORS = (httpx.TransportError, OSError)


class RetryingReader(io.RawIOBase):
    """
    A read-only stream over a :class:`~seekable_streams.seeker.Seeker` which, on
    a failed read, asks its ``error_handler`` whether to continue and if so seeks
    the :class:`~seekable_streams.seeker.Seeker` back to its offset and reads again.

    There is no limit on the number of retries other than what the handler
    imposes. The position is always that of the underlying
    :class:`~seekable_streams.seeker.Seeker`.
    """

    def __init__(
        self,
        seeker: Seeker,
        error_handler: ErrorHandler | None = None,
        max_seek_failures: int | None = None,
    ):
        """
        Args:
          seeker            : The stream to read from
          error_handler     : Decides whether to retry after each error (if ``None``,
                              errors are raised without retrying)
          max_seek_failures : If given, the most consecutive failed attempts to
                              re-send the request before the last error is raised
                              regardless of the handler
        """
        super().__init__()
        self.seeker = seeker
        self.error_handler = error_handler
        self.max_seek_failures = max_seek_failures

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} ⠶ {self.seeker!r}"

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self.seeker.tell()

    def readinto(self, b) -> int:
        while True:
            try:
                return self.seeker.readinto(b)
            except RangeProtocolError:
                raise
            except RETRYABLE_ERRORS as exc:
                self.raise_unless_recoverable(exc)
            self.reposition(self.seeker.offset)

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Seek the underlying :class:`~seekable_streams.seeker.Seeker`, retrying the
        request it sends as for a failed read.
        """
        position = self.seeker.resolve(offset, whence)
        self.reposition(position)
        return position

    def reposition(self, offset: int) -> None:
        """
        Seek the :class:`~seekable_streams.seeker.Seeker` to the absolute
        ``offset``, consulting the handler after each failed attempt.
        """
        failures = 0
        while True:
            try:
                self.seeker.seek(offset)
                return
            except RangeProtocolError:
                raise
            except RETRYABLE_ERRORS as exc:
                failures += 1
                if self.max_seek_failures is not None and failures > self.max_seek_failures:
                    log.warning(f"Giving up after {failures} failed requests: {exc!r}")
                    raise
                self.raise_unless_recoverable(exc)

    def raise_unless_recoverable(self, exc: Exception) -> None:
        """
        Raise ``exc`` (or the error the handler substitutes for it) unless the
        handler returns ``None``.
        """
        if self.error_handler is None:
            raise exc
        verdict = self.error_handler(exc)
        if verdict is None:
            log.debug(f"Retrying from byte {self.seeker.offset} after {exc!r}")
            return
        if verdict is exc:
            raise exc
        raise verdict from exc

    def close(self) -> None:
        """
        Close the underlying :class:`~seekable_streams.seeker.Seeker` along with
        this stream.
        """
        self.seeker.close()
        super().close()


def count_retries(handler: CountingErrorHandler) -> ErrorHandler:
    """
    Adapt a handler which takes the number of errors it has already been given
    (starting at ``0``) as well as the error, into a plain ``error_handler``.

    The count covers every error passed to the returned handler, so use a fresh
    one for each transfer whose retries should be counted separately.
    """
    counter = itertools.count()

    def error_handler(exc: Exception) -> Exception | None:
        return handler(next(counter), exc)

    return error_handler


def stop_after(max_retries: int, backoff: float = 0.0) -> ErrorHandler:
    """
    An ``error_handler`` allowing at most ``max_retries`` retries, sleeping for
    ``backoff * 2 ** n`` seconds before the ``n``-th retry (counting from ``0``).
    """

    def decide(retries: int, exc: Exception) -> Exception | None:
        if retries >= max_retries:
            return exc
        if backoff > 0:
            time.sleep(backoff * 2**retries)
        return None

    return count_retries(decide)
