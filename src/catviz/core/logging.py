"""Logging helpers.

Library modules only ever call :func:`get_logger`. Applications (the CLI, a
notebook) call :func:`configure_logging` once to get output on the terminal.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "catviz"


def configure_logging(level: Optional[Union[str, int]] = None, *, force: bool = False) -> None:
    """Attach a rich handler to the ``catviz`` logger (never the root logger).

    Parameters
    ----------
    level:
        Logging level name or number. Defaults to ``CATVIZ_LOG_LEVEL`` or ``WARNING``.
    force:
        Replace an existing rich handler instead of keeping it.
    """

    if level is None:
        level = os.environ.get("CATVIZ_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for h in logger.handlers[:]:
        if isinstance(h, RichHandler):
            if not force:
                h.setLevel(level)
                return
            logger.removeHandler(h)
            h.close()

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setLevel(level)
    logger.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)
