"""Rich console logging for the CLI, the API server and library code.

Log records go to stderr so that tables printed on stdout by the CLI stay
clean when piped.
"""

from __future__ import annotations

import logging
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

_DEFAULT_LEVEL: Final[str] = "INFO"
_FORMAT: Final[str] = "%(message)s"
_DATE_FORMAT: Final[str] = "[%X]"

# Chatty third-party loggers, raised to WARNING unless running at DEBUG.
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "uvicorn.access")

_handler: RichHandler | None = None


def setup_logging(level: str | None = None) -> None:
    """Attach a Rich handler to the root logger.

    Only the first call installs the handler; later calls with an explicit
    *level* just adjust it.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to ``log_level`` from the config, which
               ``SCREENLAB_LOG_LEVEL`` overrides.
    """
    global _handler
    if _handler is not None and level is None:
        return

    if level is None:
        # Deferred import: config may log while it loads.
        from app.config import load_config
        level = str(load_config().get("log_level", _DEFAULT_LEVEL))

    resolved = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if _handler is None:
        _handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        _handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(_handler)

    _handler.setLevel(resolved)
    root.setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING if resolved > logging.DEBUG else resolved)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for *name* (usually ``__name__``), configuring logging first."""
    setup_logging()
    return logging.getLogger(name)
