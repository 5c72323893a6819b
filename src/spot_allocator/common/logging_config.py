"""
Logging configuration with millisecond timestamps.

Log records go to stderr so that stdout only carries command output (the JSON
allocation result).
"""
import datetime
import logging
import sys
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class MillisecondFormatter(logging.Formatter):
    """
    Formatter that appends milliseconds to the timestamp.

    logging.Formatter ignores %f in datefmt, so the milliseconds are added from the
    record itself.
    """

    def formatTime(self, record, datefmt=None):
        ct = datetime.datetime.fromtimestamp(record.created)
        s = ct.strftime(datefmt or DATE_FORMAT)
        return f"{s}.{int(record.msecs):03d}"


def configure_logging(level=logging.INFO, stream: Optional[IO[str]] = None) -> logging.Logger:
    """
    Configure the root logger with a single stream handler.

    Args:
        level: Logging level to use (default: INFO)
        stream: Stream to write to (default: sys.stderr)

    Returns:
        The root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers to avoid duplicates if called multiple times
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(MillisecondFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    return root_logger
