from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_configured = False


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single RichHandler (stderr) to the package logger."""
    global _configured
    logger = logging.getLogger("admit")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not _configured:
        # stdout stays clean for --json output
        handler = RichHandler(
            console=Console(stderr=True), show_path=False, rich_tracebacks=True, markup=False
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True
    return logger
