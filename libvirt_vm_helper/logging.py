"""
Loguru configuration for libvirt-vm-helper.

Standard output carries command results, so every handler configured here
writes to stderr or to a file.
"""

import sys
from pathlib import Path
from typing import Any, List

from loguru import logger

from .config import Config

# Console format for regular runs
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)

# File format, no colour markup
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS ZZ} | "
    "{level: <8} | "
    "{extra[name]}:{function}:{line} | "
    "{message} | {extra}"
)


class LoggingManager:
    """Owns the loguru handlers installed for one process."""

    def __init__(self, config: Config):
        self.config = config
        self._handler_ids: List[int] = []

    def setup_logging(self) -> None:
        """Replace loguru's default handler with the configured ones."""
        logger.remove()
        logger.configure(extra={"name": "libvirt_vm_helper"})

        self._add_console_handler()
        if self.config.logging.file:
            self._add_file_handler(self.config.logging.file)

    def _add_console_handler(self) -> None:
        is_debug = self.config.logging.level in ("DEBUG", "TRACE")

        handler_id = logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=self.config.logging.level,
            colorize=None,
            backtrace=is_debug,
            diagnose=is_debug,
            catch=True,
        )
        self._handler_ids.append(handler_id)

    def _add_file_handler(self, file_path: str) -> None:
        log_file = Path(file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        handler_id = logger.add(
            str(log_file),
            format=FILE_FORMAT,
            level=self.config.logging.level,
            rotation=self.config.logging.rotation,
            retention=self.config.logging.retention,
            backtrace=False,
            diagnose=False,
            catch=True,
        )
        self._handler_ids.append(handler_id)

    def cleanup(self) -> None:
        """Remove the handlers installed by setup_logging."""
        for handler_id in self._handler_ids:
            try:
                logger.remove(handler_id)
            except ValueError:
                # already removed
                pass
        self._handler_ids.clear()


def get_logger(name: str) -> Any:
    """
    Get a logger bound to a module name.

    Args:
        name: module name, usually __name__

    Returns:
        loguru logger with ``name`` in its extra dict
    """
    return logger.bind(name=name)


def configure_logging(config: Config) -> LoggingManager:
    """
    Configure logging for the process.

    Args:
        config: loaded configuration

    Returns:
        the logging manager, so the caller can clean up its handlers
    """
    logging_manager = LoggingManager(config)
    logging_manager.setup_logging()
    return logging_manager
