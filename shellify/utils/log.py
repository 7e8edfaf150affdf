"""Logger construction.

Loggers are built here and handed to each component explicitly. They are
created as standalone ``logging.Logger`` instances, outside the
``logging.getLogger`` registry, so no component depends on process-wide
logging state.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def null_logger() -> logging.Logger:
    """Return a logger that discards everything."""
    logger = logging.Logger("shellify.null")
    logger.addHandler(logging.NullHandler())
    return logger


def console_logger(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Return a logger writing to stderr through rich.

    Args:
        verbose: Emit debug messages. Otherwise only warnings and errors.
        console: Console to write to. Defaults to a stderr console.
    """
    logger = logging.Logger("shellify", level=logging.DEBUG if verbose else logging.WARNING)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
