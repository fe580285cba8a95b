r""":mod:`seekable_streams.transport` provides
:class:`~seekable_streams.transport.RetryingTransport`, which can be given to an
:class:`httpx.Client` in place of its usual transport so that the bodies of GET
responses resume (by range request) when a read fails part-way through:

    >>> import httpx
    >>> from seekable_streams import RetryingTransport, stop_after
    >>> transport = RetryingTransport(
    ...     httpx.HTTPTransport(), error_handler_factory=lambda: stop_after(3)
    ... )
    >>> client = httpx.Client(transport=transport)
    >>> client.get("https://example.com/big.bin").content # doctest: +SKIP
"""

from __future__ import annotations

from typing import Iterator

import httpx

from .retry import RetryingReader
from .seeker import Seeker
from .types import ErrorHandlerFactory

__all__ = ["DEFAULT_CHUNK_SIZE", "RetryingByteStream", "RetryingTransport"]

DEFAULT_CHUNK_SIZE = 64 * 1024


class RetryingByteStream(httpx.SyncByteStream):
    """
    A response body read from a :class:`~seekable_streams.retry.RetryingReader`
    in chunks of at most ``chunk_size`` bytes.
    """

    def __init__(self, reader: RetryingReader, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.reader = reader
        self.chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.reader.read(self.chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        self.reader.close()


class RetryingTransport(httpx.BaseTransport):
    """
    A transport which sends GET requests through a
    :class:`~seekable_streams.seeker.Seeker` on the base transport, and returns
    responses whose body is a :class:`~seekable_streams.retry.RetryingReader` on it.
    Requests with any other method are passed straight to the base transport.

    Each GET gets its own handler from ``error_handler_factory``, so a retry budget
    such as :func:`~seekable_streams.retry.stop_after` applies to one transfer at a
    time rather than to everything the transport sends. Failures to get the first
    response are retried (as far as that handler allows) just like failures while
    reading the body.
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        error_handler_factory: ErrorHandlerFactory | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_seek_failures: int | None = None,
    ):
        """
        Args:
          transport             : The base transport (if ``None``, a fresh
                                  :class:`httpx.HTTPTransport`)
          error_handler_factory : Called once per GET for the handler deciding
                                  whether to retry after each error (if ``None``,
                                  errors are raised without retrying)
          chunk_size            : The most bytes the response stream yields at a time
          max_seek_failures     : Passed to each
                                  :class:`~seekable_streams.retry.RetryingReader`
        """
        self.transport = httpx.HTTPTransport() if transport is None else transport
        self.error_handler_factory = error_handler_factory
        self.chunk_size = chunk_size
        self.max_seek_failures = max_seek_failures

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            return self.transport.handle_request(request)
        seeker = Seeker(request=request, transport=self.transport)
        factory = self.error_handler_factory
        reader = RetryingReader(
            seeker,
            error_handler=None if factory is None else factory(),
            max_seek_failures=self.max_seek_failures,
        )
        try:
            reader.reposition(0)
        except Exception:
            reader.close()
            raise
        first_response = seeker.response()
        extensions = {
            k: v
            for k, v in first_response.extensions.items()
            if k in ("http_version", "reason_phrase")
        }
        return httpx.Response(
            status_code=first_response.status_code,
            headers=first_response.headers,
            stream=RetryingByteStream(reader, chunk_size=self.chunk_size),
            extensions=extensions,
        )

    def close(self) -> None:
        self.transport.close()
