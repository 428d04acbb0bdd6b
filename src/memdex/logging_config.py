"""
Logging configuration for the memdex CLI and server.

Library modules only create module loggers; handlers are installed here.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Route ``memdex`` logs to stderr through rich. DEBUG when *verbose*."""
    level = logging.DEBUG if verbose else logging.WARNING
    memdex_logger = logging.getLogger("memdex")
    memdex_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in memdex_logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=verbose,
            rich_tracebacks=verbose,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
        memdex_logger.addHandler(handler)

    for handler in memdex_logger.handlers:
        handler.setLevel(level)
