from pytest import mark, raises
from ranges import Range

from seekable_streams.http_utils import ContentRangeError, ContentSizeChangedError
from seekable_streams.range_utils import (
    ContentRange,
    parse_content_range,
    range_len,
    range_termini,
    validate_content_range,
)

termini_test_triples = [(0, 3, (0, 2)), (1, 4, (1, 3))]


@mark.parametrize("start,stop,expected", termini_test_triples)
def test_range_termini(start, stop, expected):
    assert range_termini(Range(start, stop)) == expected


@mark.parametrize("start,stop", [(0, 3), (1, 4), (6, 12)])
def test_range_len(start, stop):
    assert range_len(Range(start, stop)) == stop - start


def test_empty_range():
    assert range_len(Range(0, 0)) == 0
    with raises(ValueError, match="Empty range has no termini"):
        range_termini(Range(0, 0))


@mark.parametrize(
    "value,start,end,total",
    [
        ("bytes 0-11/12", 0, 11, 12),
        ("bytes 6-11/12", 6, 11, 12),
        ("bytes 6-11/*", 6, 11, None),
        ("Bytes 0-0/1", 0, 0, 1),
    ],
)
def test_parse_content_range(value, start, end, total):
    content_range = parse_content_range(value)
    assert content_range == ContentRange(Range(start, end + 1), total)
    assert (content_range.start, content_range.end) == (start, end)
    assert content_range.length == end - start + 1
    assert content_range.size == (-1 if total is None else total)


@mark.parametrize(
    "value", ["", "bytes", "bytes 6-/12", "bytes */12", "bits 0-1/2", "bytes 0-1"]
)
def test_parse_malformed_content_range(value):
    with raises(ContentRangeError, match="Could not parse"):
        parse_content_range(value)


def test_parse_backwards_content_range():
    with raises(ContentRangeError, match="ends before it starts"):
        parse_content_range("bytes 6-5/12")


@mark.parametrize("offset,size", [(0, -1), (6, -1), (6, 12)])
def test_validate_content_range(offset, size):
    assert validate_content_range(f"bytes {offset}-11/12", offset=offset, size=size) == 12


def test_validate_unknown_total():
    assert validate_content_range("bytes 6-11/*", offset=6, size=12) == -1


def test_validate_start_mismatch():
    with raises(ContentRangeError, match="starting at 0 instead of requested 6"):
        validate_content_range("bytes 0-11/12", offset=6)


def test_validate_stops_short():
    with raises(ContentRangeError, match="stops before the end"):
        validate_content_range("bytes 6-9/12", offset=6)


def test_validate_size_changed():
    with raises(ContentSizeChangedError):
        validate_content_range("bytes 6-13/14", offset=6, size=12)
