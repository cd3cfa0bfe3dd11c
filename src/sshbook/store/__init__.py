"""Storage module for host configuration."""

from sshbook.store.base import LoggingReporter, Reporter
from sshbook.store.config_store import ConfigStore

__all__ = ["ConfigStore", "LoggingReporter", "Reporter"]
