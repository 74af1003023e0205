"""
RAG Assistant - Logging
========================
Provides a pre-configured logger factory for consistent, readable
log output across all modules.

Logging verbosity follows the environment mode:
  • ``"dev"``  → DEBUG level  (maximum detail, includes LLM traffic)
  • ``"prod"`` → WARNING level (errors & warnings only)

The mode is read from the ``ENV`` environment variable when a logger is
first created, and ``set_env_level()`` re-applies it once ``Settings``
have been loaded.

Usage:
    from ragassist.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import os
import sys

# ── Resolve default level from environment mode ───────────────────────
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(os.getenv("ENV", "dev"), logging.INFO)

# Loggers handed out by get_logger(), so set_env_level() can re-level them
_MANAGED: dict[str, logging.Logger] = {}


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create and return a named logger with a standardised formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level is derived from the ``ENV`` variable.

    Returns:
        A configured ``logging.Logger`` instance.
    """
    resolved_level = level if level is not None else _DEFAULT_LEVEL
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if the logger already exists
    if not logger.handlers:
        logger.setLevel(resolved_level)

        # ── Console Handler ────────────────────────────────────────────
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(resolved_level)

        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        # Prevent log propagation to the root logger (avoids duplicates)
        logger.propagate = False

    _MANAGED[name] = logger
    return logger


def set_env_level(env: str) -> int:
    """
    Re-level every logger created by ``get_logger`` for *env*.

    Returns the level applied.
    """
    level = _ENV_LEVEL_MAP.get(env, logging.INFO)
    for logger in _MANAGED.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
    return level
