r"""When repositioning a stream, the HTTP `range request
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_
header is provided as a :class:`dict`, for example:

.. code-block:: python

    {"range": "bytes=6-"}

would request every byte from position ``6`` to the end of the resource (an
open-ended range). Only open-ended ranges are ever requested: a
:class:`~seekable_streams.seeker.Seeker` reads on from its offset until it is
told to seek elsewhere.

This module also holds the exceptions raised when a server's reply to such a
request cannot be trusted.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    import httpx

__all__ = [
    "MAX_REDIRECTS",
    "REDIRECT_STATUS_CODES",
    "range_header",
    "is_redirect",
    "SeekableStreamError",
    "RangeProtocolError",
    "ContentRangeError",
    "ContentSizeChangedError",
    "RangeNotHonouredError",
    "InvalidSeekError",
    "NegativeSeekError",
    "SizeUnknownError",
    "TruncatedStreamError",
]

MAX_REDIRECTS = 10
REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})


def range_header(offset: int) -> dict[str, str]:
    """
    Prepare a :class:`dict` to pass as a ``httpx`` request header
    with a single key ``range`` whose value is the open-ended byte range
    starting at ``offset``.

    For example:

      >>> from seekable_streams.http_utils import range_header
      >>> range_header(6)
      {'range': 'bytes=6-'}

    Args:
      offset : position of the first byte to be requested (0-based)
    """
    if offset < 0:
        raise ValueError(f"Cannot request a range from a negative offset ({offset})")
    return {"range": f"bytes={offset}-"}


def is_redirect(response: httpx.Response) -> bool:
    return response.status_code in REDIRECT_STATUS_CODES


class SeekableStreamError(Exception):
    """
    Base class for errors raised by this package (transport errors from
    ``httpx`` are passed through untouched and do not derive from it).
    """


class RangeProtocolError(SeekableStreamError):
    """
    A 'hard' error: the server's reply (or the caller's seek) is inconsistent,
    and repeating the same request unchanged would fail again. Retry layers
    never retry these.
    """


class ContentRangeError(RangeProtocolError):
    """
    The ``content-range`` header of a 206 (Partial Content) response was
    missing, malformed, or did not describe the range that was requested.
    """


class ContentSizeChangedError(RangeProtocolError):
    """
    The total size reported by the server differs from the size it reported
    earlier for the same resource (so the resource has changed mid-read).
    """

    def __init__(self, *, expected: int, reported: int):
        super().__init__(
            f"Resource size changed between requests (was {expected}, "
            f"server now reports {reported})"
        )
        self.expected = expected
        self.reported = reported


class RangeNotHonouredError(RangeProtocolError):
    """
    The response to a range request had a 200 (OK) or 204 (No Content) status
    rather than 206 (Partial Content), i.e. the server ignored the ``range``
    header and sent the resource from the start.

    Raised by :meth:`~seekable_streams.request.SeekRequest.dispatch`.
    """

    def __init__(self, *, request, response):
        super().__init__(
            f"Got HTTP {response.status_code} not 206 (Partial Content) "
            f"for {request.headers.get('range')!r}"
        )
        self.request = request
        self.response = response


class InvalidSeekError(RangeProtocolError, ValueError):
    """
    The seek requested cannot be carried out (no request is sent).
    """


class NegativeSeekError(InvalidSeekError):
    def __init__(self, offset: int):
        super().__init__(f"Cannot seek to a negative offset ({offset})")
        self.offset = offset


class SizeUnknownError(InvalidSeekError):
    """
    Seeking relative to the end of the stream requires the total size, which
    is only known once a 200 or 206 response has reported it.
    """

    def __init__(self):
        super().__init__("Cannot seek relative to the end: content length not known")


class TruncatedStreamError(SeekableStreamError, OSError):
    """
    The response body ended before the size the server confirmed was reached.
    Unlike a normal end of stream this can be recovered from by seeking to
    :attr:`offset` again.
    """

    def __init__(self, *, offset: int, size: int):
        super().__init__(f"Response body ended at byte {offset} of {size}")
        self.offset = offset
        self.size = size
