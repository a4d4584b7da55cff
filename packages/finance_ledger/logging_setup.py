"""Centralized logging configuration for the ``finance_ledger`` package.

Public helpers:

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"finance_ledger"``). Called once by entrypoints (the CLI) at
  process startup.
- ``get_logger(name)``: acquire a logger by name, making sure the package root
  logger carries at least a ``NullHandler`` when nothing was configured.
- ``log_event(logger, event, **fields)``: emit one ``event key=value ...`` line.
  Ledger operations log through this helper so the output stays greppable
  (``commit_batch:created owner=u1 batch_key=draft:42 rows=3``).

Library modules never attach their own handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any

_PKG_LOGGER_NAME = "finance_ledger"
_ENV_LEVEL = "FINANCE_LEDGER_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or standard level names (INFO/DEBUG/etc.).
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv(_ENV_LEVEL)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    force: bool = False,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level-name string. ``None`` falls back to
        ``FINANCE_LEDGER_LOG_LEVEL`` and then ``logging.INFO``.
    fmt:
        Optional format string (defaults to ``"%(asctime)s %(name)s %(levelname)s %(message)s"``).
    stream:
        Output stream of the single ``StreamHandler``.
    force:
        Replace a previous configuration instead of keeping it.
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if force or isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with a silent default for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def _fmt_value(value: Any) -> str:
    s = str(value)
    if not s or any(ch.isspace() for ch in s):
        return repr(s)
    return s


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    """Log ``event`` followed by ``key=value`` pairs in insertion order."""

    if not logger.isEnabledFor(level):
        return
    parts = [event] + [f"{k}={_fmt_value(v)}" for k, v in fields.items()]
    logger.log(level, " ".join(parts))


__all__ = [
    "configure_logging",
    "get_logger",
    "log_event",
]
