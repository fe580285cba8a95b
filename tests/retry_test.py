import httpx
from pytest import fixture, mark, raises

from seekable_streams.http_utils import RangeNotHonouredError, TruncatedStreamError
from seekable_streams.retry import RetryingReader, count_retries, stop_after
from seekable_streams.seeker import Seeker

from .data import EXAMPLE_CONTENT, EXAMPLE_URL
from .share import RangeServer


class RecordingHandler:
    """An error handler recording each error it is given."""

    def __init__(self, verdict=None):
        self.verdict = verdict
        self.errors = []

    def __call__(self, exc):
        self.errors.append(exc)
        return self.verdict


def make_reader(server, **kwargs):
    seeker = Seeker.from_url(EXAMPLE_URL, transport=server.transport())
    return RetryingReader(seeker, **kwargs)


@fixture
def handler():
    return RecordingHandler()


@mark.parametrize("fail_after", [1, 2, 5])
def test_resume_after_read_errors(handler, fail_after):
    server = RangeServer(fail_after=fail_after)
    reader = make_reader(server, error_handler=handler)
    assert reader.read() == EXAMPLE_CONTENT
    assert reader.tell() == len(EXAMPLE_CONTENT)
    assert all(isinstance(exc, httpx.ReadError) for exc in handler.errors)
    offsets = [f"bytes={n}-" for n in range(fail_after, len(EXAMPLE_CONTENT), fail_after)]
    assert server.ranges_requested == [None, *offsets]


def test_resume_after_truncation(handler):
    server = RangeServer(truncate_after=5)
    reader = make_reader(server, error_handler=handler)
    assert reader.read() == EXAMPLE_CONTENT
    assert [type(exc) for exc in handler.errors] == [TruncatedStreamError] * 2
    assert server.ranges_requested == [None, "bytes=5-", "bytes=10-"]


def test_no_handler_raises():
    server = RangeServer(fail_after=2)
    reader = make_reader(server)
    with raises(httpx.ReadError):
        reader.read()
    assert len(server.requests) == 1


def test_handler_returns_error():
    server = RangeServer(fail_after=2)
    stop = RuntimeError("stop")
    handler = RecordingHandler(verdict=stop)
    reader = make_reader(server, error_handler=handler)
    with raises(RuntimeError) as exc_info:
        reader.read()
    assert exc_info.value is stop
    assert isinstance(exc_info.value.__cause__, httpx.ReadError)
    assert len(handler.errors) == 1
    assert len(server.requests) == 1


def test_handler_returns_same_error():
    server = RangeServer(fail_after=2)
    reader = make_reader(server, error_handler=lambda exc: exc)
    with raises(httpx.ReadError) as exc_info:
        reader.read()
    assert exc_info.value.__cause__ is None


def test_protocol_error_not_retried(handler):
    server = RangeServer(fail_after=2, honour_ranges=False)
    reader = make_reader(server, error_handler=handler)
    with raises(RangeNotHonouredError):
        reader.read()
    assert len(handler.errors) == 1
    assert server.ranges_requested == [None, "bytes=2-"]


def test_seek_retried(handler):
    server = RangeServer(connect_failures=2)
    reader = make_reader(server, error_handler=handler)
    assert reader.seek(6) == 6
    assert reader.read() == b"World!"
    assert [type(exc) for exc in handler.errors] == [httpx.ConnectError] * 2
    assert server.ranges_requested == ["bytes=6-"] * 3


def test_seek_invalid_not_retried(handler):
    server = RangeServer()
    reader = make_reader(server, error_handler=handler)
    with raises(ValueError):
        reader.seek(-1)
    assert handler.errors == []
    assert server.requests == []


def test_max_seek_failures(handler):
    server = RangeServer(connect_failures=5)
    reader = make_reader(server, error_handler=handler, max_seek_failures=2)
    with raises(httpx.ConnectError):
        reader.seek(0)
    assert len(server.requests) == 3
    assert len(handler.errors) == 2


def test_first_read_retried(handler):
    server = RangeServer(connect_failures=1)
    reader = make_reader(server, error_handler=handler)
    assert reader.read() == EXAMPLE_CONTENT
    assert len(handler.errors) == 1


def test_close_closes_seeker():
    server = RangeServer()
    reader = make_reader(server)
    assert reader.read(4) == b"Hell"
    reader.close()
    assert reader.closed
    assert reader.seeker.closed
    assert server.streams[0].closed


def test_repr():
    reader = make_reader(RangeServer())
    assert repr(reader) == "RetryingReader ⠶ Seeker ⠶ [0/?] @ 'hello.txt' from example.com"


def test_count_retries():
    seen = []

    def handler(retries, exc):
        seen.append(retries)
        return None if retries < 2 else exc

    error_handler = count_retries(handler)
    exc = OSError("boom")
    assert [error_handler(exc) for _ in range(4)] == [None, None, exc, exc]
    assert seen == [0, 1, 2, 3]


@mark.parametrize("max_retries", [0, 1, 3])
def test_stop_after(max_retries):
    server = RangeServer(fail_after=1)
    reader = make_reader(server, error_handler=stop_after(max_retries))
    with raises(httpx.ReadError):
        reader.read()
    assert len(server.requests) == max_retries + 1


def test_stop_after_backoff(monkeypatch):
    delays = []
    monkeypatch.setattr("seekable_streams.retry.time.sleep", delays.append)
    error_handler = stop_after(3, backoff=0.5)
    exc = OSError("boom")
    assert [error_handler(exc) for _ in range(4)] == [None, None, None, exc]
    assert delays == [0.5, 1.0, 2.0]
