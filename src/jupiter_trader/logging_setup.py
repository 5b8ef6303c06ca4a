import logging
import sys
import time
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Configure the ``jupiter_trader`` logger tree with UTC timestamps.

    Safe to call more than once; handlers are replaced, not stacked.
    """
    log = logging.getLogger("jupiter_trader")
    log.setLevel(level if isinstance(level, int) else level.upper())
    log.propagate = False

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    fmt.converter = time.gmtime

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(str(log_file), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(fmt)
        log.addHandler(handler)
    return log
