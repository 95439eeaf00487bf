"""
logger.py
---------
Logging for the ``d1`` hierarchy.

Design Decisions:
    * Every module logs through ``get_logger(__name__)``, a child of the
      ``d1`` logger, so applications can tune the whole library with one
      ``logging.getLogger("d1")`` call.
    * ``configure()`` runs once at import with values from ``config.CONFIG``;
      applications may call it again to change level or log file, which
      replaces the handlers installed earlier instead of stacking them.
    * The API token never reaches a handler: a filter on each handler masks
      it in the rendered message.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import CONFIG, get_log_level

ROOT_LOGGER_NAME = "d1"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
_MASK = "***"

_installed: list[logging.Handler] = []


class SecretFilter(logging.Filter):
    """Replace each of *secrets* with ``***`` in the final log message."""

    def __init__(self, secrets: list[str]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, _MASK)
        if masked != message:
            record.msg, record.args = masked, None
        return True


def configure(level: int | None = None, log_file: str | Path | None = None) -> logging.Logger:
    """
    (Re)install the console handler and the optional file handler on the
    ``d1`` logger.

    Args:
        level:    Console and logger level; defaults to ``LOG_LEVEL``.
        log_file: Append DEBUG and above to this file; defaults to ``LOG_FILE``.

    Returns:
        The ``d1`` logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    level = get_log_level() if level is None else level
    path = log_file or CONFIG.migration.log_file
    secrets = SecretFilter([CONFIG.d1.api_token])
    root.setLevel(min(level, logging.DEBUG) if path else level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    console.addFilter(secrets)
    root.addHandler(console)
    _installed.append(console)

    if path:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as exc:
            root.warning("Could not open log file '%s': %s", path, exc)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
            file_handler.addFilter(secrets)
            root.addHandler(file_handler)
            _installed.append(file_handler)

    return root


configure()


def get_logger(name: str) -> logging.Logger:
    """
    Return ``d1.<name>``.

    Example::

        log = get_logger(__name__)
        log.info("Migrating up %s", migration.id)
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
