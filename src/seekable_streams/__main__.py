"""Command line interface: ``python -m seekable_streams URL``."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import httpx
import typer

from .http_utils import SeekableStreamError
from .log_utils import log, set_up_logging
from .retry import RetryingReader, stop_after
from .seeker import Seeker

app = typer.Typer(
    add_completion=False,
    help="Stream a remote file, resuming with range requests when reads fail.",
)

CHUNK_SIZE = 64 * 1024


def make_transport() -> httpx.BaseTransport:
    return httpx.HTTPTransport()


def parse_headers(headers: list[str]) -> dict[str, str]:
    """Turn ``"Name: value"`` strings into a header :class:`dict`."""
    parsed = {}
    for header in headers:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: value', got {header!r}")
        parsed[name.strip()] = value.strip()
    return parsed


@app.command()
def main(
    url: str = typer.Argument(..., help="URL of the file to stream"),
    offset: int = typer.Option(0, "--offset", min=0, help="Start from this byte"),
    retries: int = typer.Option(5, "--retries", min=0, help="Most retries to allow"),
    backoff: float = typer.Option(
        0.0, "--backoff", min=0.0, help="Seconds to wait before the first retry (doubling after)"
    ),
    timeout: float = typer.Option(30.0, "--timeout", min=0.0, help="Request timeout (seconds)"),
    header: Optional[List[str]] = typer.Option(
        None, "-H", "--header", help="Extra request header as 'Name: value'"
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write to PATH instead of stdout"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log requests and retries"),
):
    """Stream the file at URL (from --offset) to stdout or --output."""
    set_up_logging(quiet=not verbose)
    headers = parse_headers(header or [])
    seeker = Seeker.from_url(
        url, transport=make_transport(), headers=headers, timeout=timeout
    )
    sink = sys.stdout.buffer if output is None else output.open("wb")
    written = 0
    try:
        with RetryingReader(seeker, error_handler=stop_after(retries, backoff)) as reader:
            reader.seek(offset)
            response = seeker.active_response
            if response is not None and response.is_error:
                raise typer.Exit(code=_report(f"HTTP {response.status_code} from {url}"))
            for chunk in iter(lambda: reader.read(CHUNK_SIZE), b""):
                written += sink.write(chunk)
    except (httpx.HTTPError, SeekableStreamError) as exc:
        raise typer.Exit(code=_report(f"{exc.__class__.__name__}: {exc}"))
    finally:
        seeker.transport.close()
        if output is None:
            sink.flush()
        else:
            sink.close()
    log.debug(f"Wrote {written} bytes from {url}")


def _report(message: str) -> int:
    typer.echo(f"Error: {message}", err=True)
    return 1


if __name__ == "__main__":
    app()
