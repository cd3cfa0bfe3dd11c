"""Reporter protocol used by the config store."""

import logging
from typing import Protocol

logger = logging.getLogger("sshbook.store")


class Reporter(Protocol):
    """Where the store sends progress messages and warnings."""

    def log(self, message: str) -> None:
        """Verbose progress output."""
        ...

    def warn(self, message: str) -> None:
        """A recoverable problem the user should fix."""
        ...


class LoggingReporter:
    """Reporter backed by the standard logging module."""

    def __init__(self, log: logging.Logger = logger):
        self.logger = log

    def log(self, message: str) -> None:
        self.logger.debug(message)

    def warn(self, message: str) -> None:
        self.logger.warning(message)
