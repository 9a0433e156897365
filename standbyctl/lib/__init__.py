"""Shared utility library for standbyctl commands."""

from standbyctl.lib.filesystem import (
    FileError,
    backup_file,
    file_exists,
    read_file,
    replace_file,
    update_file,
)
from standbyctl.lib.process import CommandError, check_tool, run_best_effort, run_command

__all__ = [
    "CommandError",
    "FileError",
    "backup_file",
    "check_tool",
    "file_exists",
    "read_file",
    "replace_file",
    "run_best_effort",
    "run_command",
    "update_file",
]
