r"""
An in-memory resource served through :class:`httpx.MockTransport`, honouring
(or, if told to, ignoring) ``range`` headers, with faults that can be injected:
response bodies that break off with a :class:`httpx.ReadError` after a number of
bytes, bodies that end early without an error, and connection failures.
"""
from __future__ import annotations

import httpx

from .data import EXAMPLE_CONTENT, EXAMPLE_URL

__all__ = ["FlakyStream", "RangeServer"]


class FlakyStream(httpx.SyncByteStream):
    """
    Yield ``content`` in chunks of ``chunk_size``, raising :class:`httpx.ReadError`
    once ``fail_after`` bytes are sent, or stopping (without error) once
    ``truncate_after`` bytes are sent.
    """

    def __init__(self, content, chunk_size=4, fail_after=None, truncate_after=None):
        self.content = content
        self.chunk_size = chunk_size
        self.fail_after = fail_after
        self.truncate_after = truncate_after
        self.closed = False

    def __iter__(self):
        limit = len(self.content)
        if self.truncate_after is not None:
            limit = min(limit, self.truncate_after)
        sent = 0
        while sent < limit:
            chunk = self.content[sent : min(sent + self.chunk_size, limit)]
            if self.fail_after is not None and sent + len(chunk) > self.fail_after:
                chunk = chunk[: self.fail_after - sent]
                if chunk:
                    yield chunk
                raise httpx.ReadError("intentional error")
            sent += len(chunk)
            yield chunk

    def close(self):
        self.closed = True


class RangeServer:
    """
    Serve ``content`` at the path of ``EXAMPLE_URL`` (any other path gets a 404,
    unless listed in ``redirects`` as ``{path: (status, location)}``).
    """

    def __init__(
        self,
        content: bytes = EXAMPLE_CONTENT,
        chunk_size: int = 4,
        fail_after: int | None = None,
        truncate_after: int | None = None,
        connect_failures: int = 0,
        honour_ranges: bool = True,
        unknown_size: bool = False,
        redirects: dict | None = None,
    ):
        self.content = content
        self.path = httpx.URL(EXAMPLE_URL).path
        self.chunk_size = chunk_size
        self.fail_after = fail_after
        self.truncate_after = truncate_after
        self.connect_failures = connect_failures
        self.honour_ranges = honour_ranges
        self.unknown_size = unknown_size
        self.redirects = {} if redirects is None else redirects
        self.requests: list[httpx.Request] = []
        self.streams: list[FlakyStream] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle_request)

    def client(self, **kwargs) -> httpx.Client:
        return httpx.Client(transport=self.transport(), **kwargs)

    @property
    def ranges_requested(self) -> list[str | None]:
        return [r.headers.get("range") for r in self.requests]

    def make_stream(self, body: bytes) -> FlakyStream:
        stream = FlakyStream(
            body,
            chunk_size=self.chunk_size,
            fail_after=self.fail_after,
            truncate_after=self.truncate_after,
        )
        self.streams.append(stream)
        return stream

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise httpx.ConnectError("intentional connection failure", request=request)
        path = request.url.path
        if path in self.redirects:
            status, location = self.redirects[path]
            headers = {} if location is None else {"location": location}
            return httpx.Response(status, headers=headers)
        if path != self.path:
            return httpx.Response(404, content=b"Not Found")
        total = len(self.content)
        range_header = request.headers.get("range")
        if range_header is None or not self.honour_ranges:
            headers = {} if self.unknown_size else {"content-length": str(total)}
            return httpx.Response(200, headers=headers, stream=self.make_stream(self.content))
        offset = int(range_header.replace("bytes=", "").rstrip("-"))
        if offset >= total:
            return httpx.Response(416, headers={"content-range": f"bytes */{total}"})
        body = self.content[offset:]
        size = "*" if self.unknown_size else total
        headers = {
            "content-range": f"bytes {offset}-{total - 1}/{size}",
            "content-length": str(len(body)),
        }
        return httpx.Response(206, headers=headers, stream=self.make_stream(body))
