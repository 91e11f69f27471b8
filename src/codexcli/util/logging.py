"""Logging setup shared by the CLI and the engine."""

from __future__ import annotations

import logging
from typing import Final

ROOT_LOGGER_NAME: Final[str] = "codexcli"
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
# Libraries whose DEBUG output would drown the toolchain output on the terminal.
_CHATTY_LIBRARIES: Final[tuple[str, ...]] = ("urllib3", "requests")


def configure_logging(level: str = "WARNING", fmt: str | None = None) -> None:
    """Configure application logging.

    Log records share the terminal with the output of the fragments being
    run, so the CLI defaults to WARNING. Third-party HTTP libraries never go
    below WARNING.

    Args:
        level: Logging level name (e.g., "INFO", "DEBUG").
        fmt: Optional logging format string.
    """

    numeric_level = normalize_level(level)
    logging.basicConfig(level=numeric_level, format=fmt or DEFAULT_LOG_FORMAT)
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return a logger for a dotted module path or a bare component name.

    Bare names such as a class name are placed under the ``codexcli``
    namespace so one level setting covers every component.
    """

    if "." not in name and name != ROOT_LOGGER_NAME:
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def normalize_level(level: str) -> int:
    """Map a level name to its numeric value, falling back to INFO."""

    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO
