"""sshbook - personal SSH host configuration manager."""

__version__ = "0.1.0"
