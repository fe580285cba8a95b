from __future__ import annotations

from typing import Iterator

import httpx

from .http_utils import (
    MAX_REDIRECTS,
    ContentRangeError,
    ContentSizeChangedError,
    RangeNotHonouredError,
    is_redirect,
    range_header,
)
from .log_utils import log
from .range_utils import UNKNOWN_SIZE, validate_content_range
from .response import ResponseStream

__all__ = ["SeekRequest"]


class SeekRequest:
    """
    Send a GET request for the bytes of a resource from a given offset onwards
    (a clone of a template request, given an open-ended ``range`` header unless
    the offset is ``0``), follow any redirects, and check the response is one
    that a :class:`~seekable_streams.seeker.Seeker` can continue from.

    The response body is left unread: it is exposed through
    :meth:`~seekable_streams.request.SeekRequest.read` and must be closed with
    :meth:`~seekable_streams.request.SeekRequest.close`.
    """

    is_seekable: bool = False
    """
    Whether the response was accepted as the content from the requested offset
    (a 200, 204, or 206 response), as opposed to a 'terminal' response (any other
    status) whose body is passed through as-is.
    """

    def __init__(
        self,
        template: httpx.Request,
        transport: httpx.BaseTransport,
        offset: int = 0,
        size: int = UNKNOWN_SIZE,
        timeout: httpx.Timeout | None = None,
        max_redirects: int = MAX_REDIRECTS,
    ):
        """
        Send the request immediately, raising if the response cannot be trusted
        (in which case the response is closed before raising).

        Args:
          template      : The request to clone (never modified)
          transport     : The transport to send the request (and any redirects) with
          offset        : The position of the first byte to request
          size          : The total size of the resource confirmed by an earlier
                          response, or ``-1`` if not yet known
          timeout       : If given, overrides the timeout of the template request
          max_redirects : The most redirects to follow before accepting a redirect
                          response as the final response
        """
        self.template = template
        self.transport = transport
        self.offset = offset
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.request = self.build_request()
        self.response = self.send(self.request)
        try:
            self.size = self.dispatch(known_size=size)
        except Exception:
            self.close()
            raise
        self.body = ResponseStream(self.iter_raw())

    def __repr__(self):
        return (
            f"{self.__class__.__name__} ⠶ HTTP {self.response.status_code} "
            f"from {self.offset} of {self.size} @ {self.request.url}"
        )

    def build_request(self) -> httpx.Request:
        """
        Clone the template request, adding the ``range`` header for a nonzero
        offset and binding the timeout (if one was given).
        """
        headers = httpx.Headers(self.template.headers)
        if self.offset > 0:
            headers.update(range_header(self.offset))
        extensions = dict(self.template.extensions)
        if self.timeout is not None:
            extensions["timeout"] = self.timeout.as_dict()
        return httpx.Request(
            method=self.template.method,
            url=self.template.url,
            headers=headers,
            content=self.template.read(),
            extensions=extensions,
        )

    def send(self, request: httpx.Request) -> httpx.Response:
        """
        Send ``request``, then follow up to
        :attr:`~seekable_streams.request.SeekRequest.max_redirects` redirects,
        setting :attr:`~seekable_streams.request.SeekRequest.request` to the
        request that got the final response. A redirect without a usable
        ``location`` header, or one past the limit, is returned as the final
        response.
        """
        response = self.transport.handle_request(request)
        response.request = request
        for _ in range(self.max_redirects):
            if not is_redirect(response):
                break
            next_request = self.build_redirect_request(request, response)
            if next_request is None:
                break
            log.debug(
                f"Following HTTP {response.status_code} from {request.url} "
                f"to {next_request.url}"
            )
            response.close()
            request = next_request
            response = self.transport.handle_request(request)
            response.request = request
        self.request = request
        return response

    @staticmethod
    def build_redirect_request(
        request: httpx.Request, response: httpx.Response
    ) -> httpx.Request | None:
        """
        Build the request to send on receiving a redirect ``response`` to
        ``request``, keeping the method and headers (but not the ``host`` header,
        nor ``authorization`` when the redirect leaves the origin). Returns ``None``
        if there is no ``location`` to follow or it cannot be parsed.
        """
        location = response.headers.get("location")
        if not location:
            return None
        try:
            url = request.url.join(location)
        except httpx.InvalidURL:
            return None
        headers = httpx.Headers(request.headers)
        headers.pop("host", None)
        if url.scheme != request.url.scheme or url.netloc != request.url.netloc:
            headers.pop("authorization", None)
        return httpx.Request(
            method=request.method,
            url=url,
            headers=headers,
            content=request.content,
            extensions=request.extensions,
        )

    def dispatch(self, known_size: int = UNKNOWN_SIZE) -> int:
        """
        Decide from the response status whether the response can be used, and
        if so return the total size of the resource it reports (``-1`` if unknown).

        Raises:
          :class:`~seekable_streams.http_utils.RangeNotHonouredError` if a range was
          requested but the whole resource was sent;
          :class:`~seekable_streams.http_utils.ContentRangeError` or
          :class:`~seekable_streams.http_utils.ContentSizeChangedError` if a
          partial content response does not match the request or ``known_size``.
        """
        status = self.response.status_code
        if status in (httpx.codes.OK, httpx.codes.NO_CONTENT):
            if self.offset > 0:
                raise RangeNotHonouredError(request=self.request, response=self.response)
            self.is_seekable = True
            return self.content_length(known_size=known_size)
        if status == httpx.codes.PARTIAL_CONTENT:
            self.is_seekable = True
            return validate_content_range(
                self.content_range_header(), offset=self.offset, size=known_size
            )
        log.debug(f"Accepting HTTP {status} from {self.request.url} as-is")
        return UNKNOWN_SIZE

    def content_range_header(self) -> str:
        """
        Validate request was range request by presence of ``content-range`` header
        """
        value = self.response.headers.get("content-range")
        if value is None:
            raise ContentRangeError("No Content-Range header found in HTTP 206 response")
        return value

    def content_length(self, known_size: int = UNKNOWN_SIZE) -> int:
        """
        The ``content-length`` of a complete (non-partial) response as an integer,
        or ``-1`` if absent or unreadable.
        """
        value = self.response.headers.get("content-length")
        try:
            length = UNKNOWN_SIZE if value is None else int(value)
        except ValueError:
            log.debug(f"Ignoring unreadable Content-Length {value!r}")
            return UNKNOWN_SIZE
        if length >= 0 and known_size >= 0 and length != known_size:
            raise ContentSizeChangedError(expected=known_size, reported=length)
        return length

    def iter_raw(self) -> Iterator[bytes]:
        """
        Iterate the raw (undecoded) body of
        :attr:`~seekable_streams.request.SeekRequest.response`: byte offsets in a
        range request refer to the encoded content.
        """
        return iter(self.response.stream)

    def read(self, size: int = -1) -> bytes:
        return self.body.read(size)

    @property
    def exhausted(self) -> bool:
        return self.body.exhausted

    def close(self) -> None:
        """
        Close the :attr:`~seekable_streams.request.SeekRequest.response`.
        """
        if not self.response.is_closed:
            self.response.close()
