"""
Logging configuration for Yakumo.

All loggers live under the "yakumo" namespace so a single call to
setup_logging() controls the whole package. Library modules only call
get_logger(); handlers are installed by the CLI entry points.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "yakumo"
DEFAULT_LOG_DIR = Path.home() / ".config" / "yakumo"

FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the yakumo namespace.

    Args:
        name: Component name, e.g. "session_layout"

    Returns:
        Logger named "yakumo.<name>"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the yakumo root logger.

    Existing handlers are removed first, so calling this twice does not
    duplicate output.

    Args:
        level: Logging level for the yakumo namespace
        log_file: Optional file to append plain-text records to
        console: Whether to log to the terminal
        rich_console: Use a Rich handler for terminal output

    Returns:
        The configured root "yakumo" logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    if console:
        if rich_console:
            handler: logging.Handler = RichHandler(
                show_path=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        handler.setLevel(level)
        logger.addHandler(handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def setup_cli_logging() -> logging.Logger:
    """Quiet logging for one-shot CLI commands: warnings and errors only."""
    setup_logging(level=logging.WARNING, console=True)
    return get_logger("cli")


def setup_watcher_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """Logging for the rename watcher.

    The watcher runs inside a tmux background pane, so records go both to
    the terminal (visible in the pane) and to the debug log.
    """
    if log_file is None:
        log_file = DEFAULT_LOG_DIR / "debug.log"
    setup_logging(level=logging.DEBUG, log_file=log_file, console=True)
    return get_logger("rename_watcher")


class StructuredLogger:
    """Logger wrapper that appends key=value context to every message."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self._logger = logger
        self._context: Dict[str, Any] = dict(context or {})

    def with_context(self, **kwargs: Any) -> "StructuredLogger":
        """Return a new logger with extra context merged in."""
        merged = dict(self._context)
        merged.update(kwargs)
        return StructuredLogger(self._logger, merged)

    def _format(self, message: str, extra: Dict[str, Any]) -> str:
        fields = dict(self._context)
        fields.update(extra)
        if not fields:
            return message
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} {rendered}"

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format(message, kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format(message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self._format(message, kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        self._logger.exception(self._format(message, kwargs))


def get_structured_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a StructuredLogger wrapping get_logger(name)."""
    return StructuredLogger(get_logger(name), context)
