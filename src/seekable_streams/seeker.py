r""":mod:`seekable_streams.seeker` exposes a class
:class:`~seekable_streams.seeker.Seeker`, a read-only, seekable file-like object
onto a remote resource.

No request is sent when a :class:`~seekable_streams.seeker.Seeker` is created:
the first :meth:`~seekable_streams.seeker.Seeker.read` (or an explicit
:meth:`~seekable_streams.seeker.Seeker.seek`) sends a GET request for the bytes
from the current offset, and every later seek replaces it with a new request.

    >>> from seekable_streams import Seeker
    >>> s = Seeker.from_url("https://example.com/hello.txt") # doctest: +SKIP
    >>> s.seek(6) # doctest: +SKIP
    6
    >>> s.read() # doctest: +SKIP
    b'World!'
    >>> s.tell() # doctest: +SKIP
    12
"""

from __future__ import annotations

import io
from io import SEEK_CUR, SEEK_END, SEEK_SET
from pathlib import Path
from urllib.parse import urlparse

import httpx

from .http_utils import (
    MAX_REDIRECTS,
    NegativeSeekError,
    SizeUnknownError,
    TruncatedStreamError,
)
from .log_utils import log
from .range_utils import UNKNOWN_SIZE
from .request import SeekRequest

__all__ = ["Seeker"]


class Seeker(io.RawIOBase):
    """
    A class representing a remote resource read through a GET request, which
    is re-sent with an open-ended ``range`` header whenever the stream is
    repositioned.

    The :attr:`~seekable_streams.seeker.Seeker.size` is ``-1`` until a 200 or 206
    response reports it. Once known it may not change: a server reporting a
    different size for a later range raises
    :class:`~seekable_streams.http_utils.ContentSizeChangedError`.

    A :class:`~seekable_streams.seeker.Seeker` never retries anything itself
    (see :class:`~seekable_streams.retry.RetryingReader`), and is not safe to
    share between threads.
    """

    offset: int = 0
    "The position the next byte read will come from"

    size: int = UNKNOWN_SIZE
    "The total size of the resource, or ``-1`` if not known yet"

    def __init__(
        self,
        request: httpx.Request,
        transport: httpx.BaseTransport | None = None,
        timeout: httpx.Timeout | float | None = None,
        max_redirects: int = MAX_REDIRECTS,
    ):
        """
        By default (if ``transport`` is left as ``None``) a fresh
        :class:`httpx.HTTPTransport` will be created for the stream, and closed
        along with it. A transport that is passed in is not closed (you must handle
        this yourself).

        Args:
          request       : (:class:`httpx.Request`) The request to send (a clone of
                          it is sent each time the stream is repositioned)
          transport     : (:class:`httpx.BaseTransport` | ``None``) The transport
                          to send requests with
          timeout       : (:class:`httpx.Timeout` | :class:`float` | ``None``) If
                          given, overrides the timeout set on ``request``
          max_redirects : (:class:`int`) The most redirects to follow per request
        """
        super().__init__()
        self._active: SeekRequest | None = None
        self._first_response: httpx.Response | None = None
        self._owns_transport = transport is None
        self.request = request
        self.transport = httpx.HTTPTransport() if transport is None else transport
        if timeout is not None and not isinstance(timeout, httpx.Timeout):
            timeout = httpx.Timeout(timeout)
        self.timeout = timeout
        self.max_redirects = max_redirects

    @classmethod
    def from_url(
        cls,
        url: str,
        transport: httpx.BaseTransport | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> Seeker:
        """
        Set up a stream for the resource at ``url`` (any other keyword arguments are
        passed to the constructor).
        """
        request = httpx.Request(method="GET", url=url, headers=headers)
        return cls(request=request, transport=transport, **kwargs)

    def __repr__(self) -> str:
        size = "?" if self.size < 0 else self.size
        return (
            f"{self.__class__.__name__} ⠶ [{self.offset}/{size}] @ "
            f"'{self.name}' from {self.domain}"
        )

    @property
    def url(self) -> str:
        return str(self.request.url)

    @property
    def name(self) -> str:
        return Path(urlparse(self.url).path).name

    @property
    def domain(self) -> str:
        return urlparse(self.url).netloc

    @property
    def at_end(self) -> bool:
        "Whether the offset is at (or past) the confirmed end of the resource"
        return self.size >= 0 and self.offset >= self.size

    @property
    def active_response(self) -> httpx.Response | None:
        """
        The response whose body is currently being read, or ``None`` if no request
        is open.
        """
        return None if self._active is None else self._active.response

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self.offset

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError(f"I/O operation on closed {self.__class__.__name__}")

    def readinto(self, b) -> int:
        """
        Read up to ``len(b)`` bytes into ``b``, sending a request from the current
        offset first if none is open. Returns ``0`` only at the end of the resource.

        Raises:
          :class:`~seekable_streams.http_utils.TruncatedStreamError` if the response
          body ends before the confirmed size is reached (the request is closed, so
          reading again will send a new one from where it left off).
        """
        self._check_open()
        if len(b) == 0:
            return 0
        if self._active is None:
            self._seek(self.offset)
            if self._active is None:
                return 0
        try:
            data = self._active.read(len(b))
        except Exception:
            self.reset()
            raise
        if data:
            n = len(data)
            b[:n] = data
            self.offset += n
            return n
        if self._active.is_seekable and self.size >= 0 and not self.at_end:
            self.reset()
            raise TruncatedStreamError(offset=self.offset, size=self.size)
        return 0

    def resolve(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Compute the absolute position that
        :meth:`~seekable_streams.seeker.Seeker.seek` would move to, without moving.

        Raises:
          :class:`~seekable_streams.http_utils.SizeUnknownError` if seeking relative to
          the end before the size is known;
          :class:`~seekable_streams.http_utils.NegativeSeekError` if the position
          would be negative.
        """
        if whence == SEEK_SET:
            position = offset
        elif whence == SEEK_CUR:
            position = self.offset + offset
        elif whence == SEEK_END:
            if self.size < 0:
                raise SizeUnknownError()
            position = self.size + offset
        else:
            raise ValueError(f"Invalid whence ({whence}, should be 0, 1 or 2)")
        if position < 0:
            raise NegativeSeekError(position)
        return position

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        File-like seeking: close any open request and send a new one for the bytes
        from the new position (unless it is at or past the confirmed end, in which
        case reads will simply return no bytes). Returns the new absolute position.
        """
        self._check_open()
        self._seek(self.resolve(offset, whence))
        return self.offset

    def _seek(self, offset: int) -> None:
        if self.size >= 0 and offset >= self.size:
            self.reset()
            self.offset = offset
            return
        log.debug(f"Requesting {self.url} from byte {offset}")
        seek_request = self.send_request(offset)
        self.reset()
        if offset == 0:
            self._first_response = seek_request.response
        if seek_request.size >= 0:
            self.size = seek_request.size
        self.offset = offset
        self._active = seek_request

    def send_request(self, offset: int) -> SeekRequest:
        return SeekRequest(
            template=self.request,
            transport=self.transport,
            offset=offset,
            size=self.size,
            timeout=self.timeout,
            max_redirects=self.max_redirects,
        )

    def response(self) -> httpx.Response:
        """
        The response to the request from offset ``0`` (for its status and headers).
        If no such request has been sent yet, send one: when the stream is
        positioned elsewhere this request's body is closed unread, and the position
        is left as it was.
        """
        self._check_open()
        if self._first_response is None:
            if self.offset == 0 and self._active is None and not self.at_end:
                self._seek(0)
            else:
                seek_request = self.send_request(0)
                seek_request.close()
                self._first_response = seek_request.response
                if seek_request.size >= 0:
                    self.size = seek_request.size
        return self._first_response

    def reset(self) -> None:
        """
        Close the open request (if any), so that the next read sends a new one.
        """
        if self._active is None:
            return
        self._active.close()
        self._active = None

    def close(self) -> None:
        """
        Close the open request and the stream. Closing more than once is allowed.
        """
        if self.closed:
            return
        self.reset()
        if self._owns_transport:
            self.transport.close()
        super().close()
