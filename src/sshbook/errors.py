"""Exception types for sshbook."""


class SshbookError(Exception):
    """Base class for fatal sshbook errors."""

    pass


class SSHConfigSyntaxError(SshbookError):
    """A line in an SSH config file could not be parsed."""

    def __init__(self, path: str, line_no: int, line: str = ""):
        self.path = path
        self.line_no = line_no
        self.line = line
        super().__init__(f"Unexpected syntax - check {path} line {line_no}")


class StoreLoadError(SshbookError):
    """A store document or config file could not be read or decoded."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        message = f"Likely syntax error: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NotExportableError(SshbookError):
    """Export was attempted while the store has unresolved problems."""

    pass


class StoreInvariantError(SshbookError):
    """Store data is structurally broken."""

    pass


class SyncError(SshbookError):
    """A git sync step failed."""

    pass


class ProvisionError(SshbookError):
    """Copying keys or running the CLI script on a host failed."""

    pass
