import logging
import sys

__all__ = ["log", "set_up_logging"]

log = logging.getLogger("seekable_streams")  # Provided for ease of access in other modules

CONSOLE_HANDLER = "seekable_streams.console"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"


def set_up_logging(quiet: bool = True) -> logging.Logger:
    """
    Initialise the package log: when ``quiet`` only warnings (such as giving up
    after repeated failed requests) get through, otherwise every request, redirect
    and retry is logged to ``stderr``.

    Calling this again replaces the console handler rather than adding another, so
    it always writes to the current ``sys.stderr``.

    Args:
      quiet : Change this flag to True/False to turn off/on console logging
    """
    log.setLevel(logging.WARNING if quiet else logging.DEBUG)
    for handler in [h for h in log.handlers if h.get_name() == CONSOLE_HANDLER]:
        log.removeHandler(handler)
    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(console)
    return log
