"""Error kinds raised while exporting and packaging.

Every error carries the offending identifier (a path, locator, pattern or
method) as :attr:`SvngrabError.subject` and a process exit code, so callers
can branch on the class without parsing messages.
"""
from __future__ import annotations


EXIT_OK = 0
EXIT_USAGE = 1
EXIT_UNKNOWN = 99


class SvngrabError(Exception):
    """Base class of all fault conditions."""

    exit_code = EXIT_UNKNOWN
    prefix = "error"

    def __init__(self, subject: str, detail: str | None = None) -> None:
        self.subject = str(subject)
        self.detail = detail
        message = f"{self.prefix}: {self.subject}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ConfigError(SvngrabError):
    """Configuration file could not be located, read or written."""


class DirectoryNotFound(ConfigError):
    exit_code = 10
    prefix = "directory not found"


class ConfigFileNotFound(ConfigError):
    exit_code = 11
    prefix = "configuration file not found"


class InvalidPath(ConfigError):
    exit_code = 12
    prefix = "invalid file path"


class NotRegularFile(ConfigError):
    exit_code = 13
    prefix = "not a regular file"


class InvalidConfig(ConfigError):
    exit_code = 15
    prefix = "invalid configuration"


class RepositoryError(SvngrabError):
    """A repository could not be bound, reached, fetched or queried."""


class InvalidRepository(RepositoryError):
    exit_code = 20
    prefix = "invalid repository"


class ConnectionFailed(RepositoryError):
    exit_code = 21
    prefix = "failed to connect to repository"


class ExportFailed(RepositoryError):
    exit_code = 22
    prefix = "failed to export repository"


class UnknownRevision(RepositoryError):
    exit_code = 23
    prefix = "cannot determine revision of repository"


class PipelineError(SvngrabError):
    """Package assembly failed."""


class FileExists(PipelineError):
    """An output file is already present and may not be overwritten.

    Keeps exit code 14 from the configuration range, where it was first used.
    """

    exit_code = 14
    prefix = "file already exists"


class InvalidIgnorePattern(PipelineError):
    exit_code = 100
    prefix = "invalid ignore pattern"


class InvalidCompressMethod(PipelineError):
    exit_code = 101
    prefix = "invalid compress method"


class CopyFailed(PipelineError):
    exit_code = 102
    prefix = "copy failed"


class ArchiveFailed(PipelineError):
    exit_code = 103
    prefix = "archive failed"


class AllUpToDate(Exception):
    """Every working copy was already current and only-if-changed mode is active.

    Not a fault: it deliberately does not derive from :class:`SvngrabError`.
    """

    exit_code = 2

    def __init__(self) -> None:
        super().__init__("all working copies up-to-date")


__all__ = [
    "AllUpToDate",
    "ArchiveFailed",
    "ConfigError",
    "ConfigFileNotFound",
    "ConnectionFailed",
    "CopyFailed",
    "DirectoryNotFound",
    "EXIT_OK",
    "EXIT_UNKNOWN",
    "EXIT_USAGE",
    "ExportFailed",
    "FileExists",
    "InvalidCompressMethod",
    "InvalidConfig",
    "InvalidIgnorePattern",
    "InvalidPath",
    "InvalidRepository",
    "NotRegularFile",
    "PipelineError",
    "RepositoryError",
    "SvngrabError",
    "UnknownRevision",
]
