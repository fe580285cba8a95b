from __future__ import annotations

from typing import Callable, Optional

__all__ = ["ErrorHandler", "CountingErrorHandler", "ErrorHandlerFactory"]

ErrorHandler = Callable[[Exception], Optional[Exception]]
"""
Given an error raised while reading, return ``None`` to have the read retried
from the last known offset, or an exception to be raised instead.
"""

CountingErrorHandler = Callable[[int, Exception], Optional[Exception]]
"""
As for :data:`ErrorHandler`, but also passed the number of errors already
handled (starting from ``0``). See :func:`~seekable_streams.retry.count_retries`.
"""

ErrorHandlerFactory = Callable[[], ErrorHandler]
"""
Builds a fresh :data:`ErrorHandler` for each transfer, so that handlers which keep
count (see :func:`~seekable_streams.retry.stop_after`) start from ``0`` each time.
"""
