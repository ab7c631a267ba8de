"""Errors that end an update run.

Each class carries the process exit code the CLI uses for it. Sanity-check
problems and region lookup failures are logged as warnings and never raised.
"""

from __future__ import annotations


class UpdaterError(Exception):
    """Base class for fatal update errors."""

    exit_code = 1


class UsageError(UpdaterError):
    """Wrong argument count or an unsupported package type."""

    exit_code = 2


class AmbiguousEnvironmentError(UpdaterError):
    """More than one package-manager family is installed on the host."""

    exit_code = 3


class DetectionFailure(UpdaterError):
    """No supported package manager, or installer provisioning failed."""

    exit_code = 4


class RetrievalError(UpdaterError):
    """A remote object could not be retrieved.

    ``kind`` is one of ``not_found``, ``http_status``, ``connection``,
    ``malformed`` or ``local_io`` (the download could not be written to
    disk). It only feeds log output; every kind is fatal.
    """

    exit_code = 5

    def __init__(self, message: str, url: str, kind: str) -> None:
        super().__init__(message)
        self.url = url
        self.kind = kind


class InstallFailure(UpdaterError):
    """The package manager returned a non-zero exit status."""

    exit_code = 6

    def __init__(self, message: str, artifact_path: str) -> None:
        super().__init__(message)
        self.artifact_path = artifact_path
