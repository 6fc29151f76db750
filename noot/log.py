"""Logging setup for the noot server and CLI.

Call ``setup_logging`` once at process start to configure the ``"noot"``
package logger.  All other modules obtain a child logger via
``logging.getLogger(__name__)`` and let records propagate here.  uvicorn's
own loggers are pointed at the same handlers so request lines and
application records share one format.
"""

import logging
import sys
from pathlib import Path

_FMT = "%(asctime)s  %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
_DATE = "%H:%M:%S"

_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the ``noot`` logger for a server or CLI session.

    Args:
        verbose:  If True, set level to DEBUG (prompt sizes, page render
                  timings).  Default level is INFO.
        log_file: If provided, also write records to this path.  Parent
                  directories are created automatically.

    Safe to call more than once: existing handlers are cleared first.
    """
    handlers: list[logging.Handler] = []
    fmt = logging.Formatter(_FMT, datefmt=_DATE)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    handlers.append(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        handlers.append(fh)

    logger = logging.getLogger("noot")
    _install(logger, handlers, logging.DEBUG if verbose else logging.INFO)

    for name in _UVICORN_LOGGERS:
        _install(logging.getLogger(name), handlers, logging.INFO)


def _install(
    logger: logging.Logger, handlers: list[logging.Handler], level: int
) -> None:
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        logger.addHandler(handler)
