from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER_NAME = "sbom_license"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int | str = logging.WARNING, stream=None) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Calling it again replaces the handler installed by the previous call, so
    repeated CLI invocations in one process do not duplicate output.
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_sbom_license", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._sbom_license = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
