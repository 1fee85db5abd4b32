"""Categorical frequency tables and bar chart layouts."""

import logging

__version__ = "0.1.0"

# Silent unless an application calls catviz.core.logging.configure_logging().
_logger = logging.getLogger("catviz")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())
