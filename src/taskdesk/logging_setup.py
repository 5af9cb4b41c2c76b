from __future__ import annotations

import logging
import sys
from typing import Union

LOGGER_NAME = "taskdesk"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Configure the 'taskdesk' logger:
    - one stderr handler with a timestamped format (added once, even if called again)
    - the requested level; unknown level names fall back to INFO
    - records still propagate, so test log capture keeps working

    Route warnings.warn(...) into logging as 'py.warnings'.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not any(getattr(h, "_taskdesk", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        handler._taskdesk = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logging.captureWarnings(True)
    return logger
