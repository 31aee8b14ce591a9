"""
Logging utilities for Bilbul backend.

CRITICAL PRIVACY RULES:
- NEVER log raw receipt images, data URLs or binary data
- NEVER log passwords, Supabase Auth tokens or API keys
- NEVER log full receipt contents or free-text split suggestions

Acceptable logging:
- High-level events (e.g., "ExtractionAgent invoked", "Session REVIEWING -> CHOOSING_STRATEGY")
- Non-sensitive metadata (item counts, participant counts, session ids)
- Error codes and sanitized error messages
"""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Configure root logging once for the application process.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number; unknown names fall back to INFO
    """
    logging.basicConfig(level=_resolve_level(level), format=LOG_FORMAT, datefmt=DATE_FORMAT)


def get_logger(name: str, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to INFO)

    Usage:
        >>> from bilbul.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("High-level event occurred")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    # Avoid duplicate output when the root logger is already configured
    if not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger
