"""Shared rich console and logger."""

from __future__ import annotations

import logging
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

console = Console()
FORMAT = "%(message)s"
logger = logging.getLogger("wotping")


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Route the ``wotping`` logger through a :class:`RichHandler`."""
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=True,
        show_time=False,
    )
    handler.setFormatter(logging.Formatter(FORMAT, datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
