"""Logging for redimo and the AWS transport it drives."""

from __future__ import annotations

import logging
import sys

# boto3 logs every request at DEBUG; keep it quiet unless asked.
TRANSPORT_LOGGERS = ("boto3", "botocore", "urllib3")

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool = False, level: str | int = "INFO") -> logging.Logger:
    """Configure the ``redimo`` logger and the boto3 loggers under it.

    Parameters
    ----------
    verbose:
        Debug traces from redimo (store requests, page fetches, skipped
        writes, increment conflicts) and INFO from the transport.
    level:
        Level of the ``redimo`` logger when not verbose, usually
        ``Settings.log_level``.  The transport stays at WARNING.

    Returns
    -------
    logging.Logger
        The ``redimo`` logger.  Calling again only adjusts levels; the
        stderr handler is attached once.
    """
    logger = logging.getLogger("redimo")
    logger.setLevel(logging.DEBUG if verbose else _level(level))

    transport_level = logging.INFO if verbose else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    if not any(getattr(h, "name", None) == "redimo-stderr" for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name("redimo-stderr")
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
        for name in TRANSPORT_LOGGERS:
            logging.getLogger(name).addHandler(handler)

    return logger


def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level {level!r}")
    return resolved
