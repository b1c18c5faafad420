from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stderr handler to the package logger; repeated calls only adjust the level."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("ldp_conformance")
    logger.setLevel(level)
    if not any(getattr(h, "_ldp_conformance", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ldp_conformance = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
