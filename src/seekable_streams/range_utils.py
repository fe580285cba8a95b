r"""A 206 (Partial Content) response states which bytes it carries in its
`Content-Range
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Content-Range>`_
header, for example::

    Content-Range: bytes 6-11/12

meaning the inclusive interval ``[6,11]`` of a 12 byte resource, or with an
asterisk in place of the total when the server does not know it::

    Content-Range: bytes 6-11/*

The span is kept as a half-open :class:`~ranges.Range` (``Range[6, 12)`` for both of
the above) in keeping with the usual Python convention.
"""
from __future__ import annotations

import re

from ranges import Range

from .http_utils import ContentRangeError, ContentSizeChangedError

__all__ = [
    "ContentRange",
    "parse_content_range",
    "validate_content_range",
    "range_termini",
    "range_len",
]

CONTENT_RANGE_RE = re.compile(r"^\s*bytes\s+(\d+)-(\d+)/(\d+|\*)\s*$", re.IGNORECASE)

UNKNOWN_SIZE = -1


class ContentRange:
    """
    A parsed ``content-range`` header value: the :class:`~ranges.Range` of bytes
    the response carries and the total size of the resource (``None`` if the
    server gave ``*``).
    """

    def __init__(self, byte_range: Range, total: int | None):
        self.range = byte_range
        self.total = total

    def __repr__(self):
        total = "*" if self.total is None else self.total
        return f"{self.__class__.__name__} ⠶ {self.range} / {total}"

    def __eq__(self, other):
        if not isinstance(other, ContentRange):
            return NotImplemented
        return self.range == other.range and self.total == other.total

    @property
    def start(self) -> int:
        return range_termini(self.range)[0]

    @property
    def end(self) -> int:
        "The last byte position in the range (inclusive)"
        return range_termini(self.range)[1]

    @property
    def length(self) -> int:
        "The number of bytes carried by the response"
        return range_len(self.range)

    @property
    def size(self) -> int:
        "The total size, or ``-1`` if unknown"
        return UNKNOWN_SIZE if self.total is None else self.total


def parse_content_range(value: str) -> ContentRange:
    """Parse a ``content-range`` header of the form ``bytes <start>-<end>/<total>``
    (where the total may be ``*``).

      >>> from seekable_streams.range_utils import parse_content_range
      >>> parse_content_range("bytes 6-11/12")
      ContentRange ⠶ Range[6, 12) / 12

    Args:
      value : The header value

    Raises:
      :class:`~seekable_streams.http_utils.ContentRangeError` if the value does not
      match the expected format, or its end precedes its start.
    """
    match = CONTENT_RANGE_RE.match(value)
    if match is None:
        raise ContentRangeError(f"Could not parse Content-Range header: {value!r}")
    start, end = int(match.group(1)), int(match.group(2))
    if end < start:
        raise ContentRangeError(f"Content-Range ends before it starts: {value!r}")
    total = None if match.group(3) == "*" else int(match.group(3))
    return ContentRange(byte_range=Range(start, end + 1), total=total)


def validate_content_range(value: str, offset: int, size: int = UNKNOWN_SIZE) -> int:
    """Check that a ``content-range`` header describes the range requested from
    ``offset`` to the end of the resource, and return the total size it reports.

    Args:
      value  : The ``content-range`` header value
      offset : The position the range was requested from
      size   : The total size confirmed by an earlier response (``-1`` if not yet
               known)

    Returns:
      The total size of the resource, or ``-1`` if the server gave ``*``.

    Raises:
      :class:`~seekable_streams.http_utils.ContentRangeError` if the header
      cannot be parsed, starts anywhere but ``offset``, or stops short of the total;
      :class:`~seekable_streams.http_utils.ContentSizeChangedError` if the total
      contradicts ``size``.
    """
    content_range = parse_content_range(value)
    if content_range.start != offset:
        raise ContentRangeError(
            f"Received Content-Range starting at {content_range.start} "
            f"instead of requested {offset}: {value!r}"
        )
    if content_range.total is None:
        return UNKNOWN_SIZE
    if content_range.end + 1 != content_range.total:
        raise ContentRangeError(
            f"Range in Content-Range stops before the end of the content: {value!r}"
        )
    if size >= 0 and content_range.total != size:
        raise ContentSizeChangedError(expected=size, reported=content_range.total)
    return content_range.total


def range_termini(rng: Range) -> tuple[int, int]:
    """Get the inclusive start and end positions ``[start,end]``
    from a :class:`ranges.Range`. These are referred to as the
    'termini'. Ranges are always ascending.

    Args:
      rng : A :class:`~ranges.Range` (which by default will be
            half-closed, i.e. not inclusive of the end position).
    """
    if rng.isempty():
        raise ValueError("Empty range has no termini")
    start = rng.start if rng.include_start else rng.start + 1
    end = rng.end if rng.include_end else rng.end - 1
    return start, end


def range_len(rng: Range) -> int:
    """Get the number of positions in a :class:`~ranges.Range` (``0`` if empty)."""
    if rng.isempty():
        return 0
    rmin, rmax = range_termini(rng)
    return rmax - rmin + 1
