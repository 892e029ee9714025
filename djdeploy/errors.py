"""
Error types raised while resolving and converging a Django deployment.
"""

from typing import List, Optional, Sequence

from .redact import redact_url


class DeployError(Exception):
    """Base class for every djdeploy failure."""


class ResourceValidationError(DeployError, ValueError):
    """An attribute on a resource declaration has an invalid value."""


class DeclarationError(DeployError):
    """A declaration file could not be read or validated."""


class InvalidURL(DeployError):
    """A database connection string is not a parseable URI."""

    def __init__(self, url, reason: Optional[str] = None):
        self.url = url
        self.reason = reason
        shown = redact_url(url) if isinstance(url, str) else repr(url)
        message = f"Invalid database URL: {shown}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class FileNotFound(DeployError):
    """No file matching a required name exists under the application path."""

    def __init__(self, filename: str, base_dir: Optional[str] = None):
        self.filename = filename
        self.base_dir = base_dir
        message = f"Unable to find a file matching {filename}"
        if base_dir:
            message += f" under {base_dir}"
        super().__init__(message)


class FileAccessError(DeployError):
    """A file the deployment reads or writes could not be accessed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class SubprocessFailure(DeployError):
    """A management command exited non-zero."""

    def __init__(self, command: Sequence[str], returncode: int, last_lines: Optional[List[str]] = None):
        self.command = list(command)
        self.returncode = returncode
        self.last_lines = last_lines or []
        super().__init__(f"Command failed with exit code {returncode}: {' '.join(self.command)}")


class StateConflict(DeployError):
    """A shared state key was published twice with different values."""

    def __init__(self, key: str, existing, value):
        self.key = key
        self.existing = existing
        self.value = value
        super().__init__(f"State key {key} already published as {existing!r}, refusing {value!r}")
