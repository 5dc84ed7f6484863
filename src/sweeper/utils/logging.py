"""Logging configuration."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure root logging to stderr through Rich.

    Stdout is left for the rendered report.

    Args:
        level: Log level name
        verbose: Show logger names, paths and AWS SDK debug output
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        show_time=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )

    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s" if verbose else "%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
