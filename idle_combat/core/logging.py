"""
Logging configuration module for the combat engine.

Provides centralized logging setup with colored output using rich. The
diagnostics emitted by catchery go through the standard logging module, so
they share the handler installed here.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: int = logging.INFO, width: int = 120) -> None:
    """
    Sets up logging configuration with rich colored output.

    Args:
        level (int):
            The logging level to set. Defaults to logging.INFO.
        width (int):
            The width of the console used by the handler.

    """
    console = Console(width=width, force_terminal=True, force_jupyter=False)

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
    )
    rich_handler.setFormatter(
        logging.Formatter("%(name)s - %(message)s", datefmt="[%X]")
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Gets a logger instance with the specified name.

    Args:
        name (str): The name of the logger.

    Returns:
        logging.Logger: The configured logger instance.

    """
    return logging.getLogger(name)


logger = get_logger("idle_combat")
