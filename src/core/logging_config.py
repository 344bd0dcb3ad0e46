"""Logging configuration.

Log records go through the root logger and are rendered by Rich, so warnings
from the manifest store or the uploader line up with the CLI output.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Configure application-wide logging.

    Args:
        verbose: log at DEBUG instead of WARNING
        console: Rich console to render to (stderr by default)

    Returns:
        The root logger
    """

    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    return root
