"""Logging helpers shared by every querydeck module."""

import logging
import sys

LOGGER_NAMESPACE = "querydeck"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the querydeck namespace."""
    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)


def configure_logging(level: str | int = "INFO") -> None:
    """
    Attach a single stderr handler to the querydeck root logger.

    Safe to call more than once; later calls replace the handler so it
    writes to the current sys.stderr.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Raises:
        ValueError: If the level name is unknown
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level)
    for existing in [h for h in root.handlers if getattr(h, "_querydeck_handler", False)]:
        root.removeHandler(existing)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    handler._querydeck_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
