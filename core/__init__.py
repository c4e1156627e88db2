"""Shared core utilities for configuration, command execution, archives and console output."""

from .archive import ArchiveFormat, ArchiveManager, has_valid_extension, normalize_output_path, resolve_format
from .command_runner import CommandError, CommandResult, CommandRunner, SubprocessCommandRunner
from .config_loader import (
    FILE_DUMPERS,
    FILE_LOADERS,
    dump_config_file,
    load_config_file,
    normalize_string_list,
)
from .console import Console, StepResult

__all__ = [
    "ArchiveFormat",
    "ArchiveManager",
    "has_valid_extension",
    "normalize_output_path",
    "resolve_format",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "FILE_DUMPERS",
    "FILE_LOADERS",
    "dump_config_file",
    "load_config_file",
    "normalize_string_list",
    "Console",
    "StepResult",
]
