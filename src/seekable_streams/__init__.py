r"""
:mod:`seekable_streams` provides file-like object handling of remote resources
through an API familiar to users of the standard library :mod:`io` module,
using `HTTP range requests
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_
to reposition the stream and to resume it when a read fails.

A :class:`~seekable_streams.seeker.Seeker` is initialised by providing:

- a request (:class:`httpx.Request`) for the resource, or just its URL
  (via :meth:`~seekable_streams.seeker.Seeker.from_url`)
- (optionally) a transport (:class:`httpx.BaseTransport`), or else a fresh
  :class:`httpx.HTTPTransport` is created

No request is sent until the stream is first read or seeked. Each seek sends a new
GET request with an open-ended ``range`` header (``bytes=<offset>-``), and the
``content-range`` of each partial content response is checked against the
position requested and the total size reported previously.

    >>> from seekable_streams import Seeker
    >>> s = Seeker.from_url("https://example.com/hello.txt") # doctest: +SKIP
    >>> s.read() # doctest: +SKIP
    b'Hello World!'
    >>> s.seek(6) # doctest: +SKIP
    6
    >>> s.read() # doctest: +SKIP
    b'World!'
    >>> s.size # doctest: +SKIP
    12

A :class:`~seekable_streams.retry.RetryingReader` wraps a
:class:`~seekable_streams.seeker.Seeker` to resume it when a read fails (as far as
its ``error_handler`` allows), and a
:class:`~seekable_streams.transport.RetryingTransport` does the same for every GET
response body of an :class:`httpx.Client` (each GET getting a fresh handler from
its ``error_handler_factory``):

    >>> import httpx
    >>> from seekable_streams import RetryingTransport, stop_after
    >>> transport = RetryingTransport(error_handler_factory=lambda: stop_after(3))
    >>> client = httpx.Client(transport=transport)
    >>> client.get("https://example.com/hello.txt").content # doctest: +SKIP
    b'Hello World!'
"""

# Get classes into package namespace but exclude from __all__ so Sphinx can access types

from . import http_utils, range_utils
from .http_utils import (
    ContentRangeError,
    ContentSizeChangedError,
    InvalidSeekError,
    NegativeSeekError,
    RangeNotHonouredError,
    RangeProtocolError,
    SeekableStreamError,
    SizeUnknownError,
    TruncatedStreamError,
)
from .retry import RetryingReader, count_retries, stop_after
from .seeker import Seeker
from .transport import RetryingTransport

__all__ = [
    "seeker",
    "request",
    "response",
    "retry",
    "transport",
    "http_utils",
    "range_utils",
]

__author__ = "Louis Maddox"
__license__ = "MIT"
__description__ = "Seekable, resumable streams via HTTP range requests."
__url__ = "https://github.com/lmmx/seekable-streams"
__uri__ = __url__
__email__ = "louismmx@gmail.com"
