"""Error taxonomy for workspace provisioning.

Every failure raised by this package derives from WorkspaceProvisionError
so callers can catch the whole family in one place. Messages are built only
from sanitized text; the underlying exception, when there is one, is
chained with ``raise ... from``.
"""

from typing import Optional


class WorkspaceProvisionError(Exception):
    """Raised when a pull request workspace cannot be provisioned."""

    pass


class CredentialError(WorkspaceProvisionError):
    """Raised when the credential provider fails to produce a token."""

    pass


class ConfigError(WorkspaceProvisionError):
    """Raised when required local configuration cannot be resolved."""

    pass


class WorkspaceIOError(WorkspaceProvisionError):
    """Raised when a directory or credential-file operation fails.

    Attributes:
        path: Filesystem path the operation targeted.
    """

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class CloneError(WorkspaceProvisionError):
    """Raised when an external git command fails.

    All three attributes have already been passed through the credential
    sanitizer by the time this error is constructed.

    Attributes:
        command: The sanitized command line that failed.
        output: The sanitized combined stdout/stderr of the command.
        error: The sanitized error text (exit status or OS error).
    """

    def __init__(self, command: str, output: str, error: Optional[str] = None):
        self.command = command
        self.output = output
        self.error = error or ""
        super().__init__(f"running {command}: {output}: {self.error}")
