"""Filesystem utilities for editing system files safely."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from standbyctl.core.context import Context


BACKUP_TIME_FORMAT = "%Y%m%d-%H%M%S"


class FileError(Exception):
    """Error accessing a file."""

    pass


def read_file(
    path: str,
    context: "Context | None" = None,
    default: str | None = None,
) -> str:
    """
    Read file contents.

    Args:
        path: Path to file
        context: Execution context (for testing)
        default: Default value if file doesn't exist

    Returns:
        File contents

    Raises:
        FileError: If file doesn't exist and no default provided
    """
    if context is None:
        from standbyctl.core.context import Context
        context = Context()

    try:
        return context.read_file(path)
    except FileNotFoundError:
        if default is not None:
            return default
        raise FileError(f"File not found: {path}")
    except OSError as e:
        raise FileError(f"Cannot read {path}: {e}")


def file_exists(
    path: str,
    context: "Context | None" = None,
) -> bool:
    """Check if file exists."""
    if context is None:
        from standbyctl.core.context import Context
        context = Context()

    return context.file_exists(path)


def backup_path(path: str, context: "Context") -> str:
    """
    <path>.bak-<YYYYMMDD-HHMMSS> for the current time.

    A backup already taken in the same second is never reused; the name
    gets a -1, -2, ... suffix instead.
    """
    base = f"{path}.bak-{context.now().strftime(BACKUP_TIME_FORMAT)}"
    candidate = base
    n = 0
    while context.file_exists(candidate):
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def backup_file(path: str, context: "Context") -> str:
    """
    Snapshot a file next to itself before it is modified.

    Returns:
        Path of the backup

    Raises:
        FileError: If the copy fails
    """
    backup = backup_path(path, context)
    try:
        context.copy_file(path, backup)
    except OSError as e:
        raise FileError(f"Cannot back up {path}: {e}")
    return backup


def replace_file(path: str, content: str, context: "Context", mode: int | None = None) -> None:
    """
    Write new content over a file.

    Args:
        mode: Permission bits; None keeps the current file's mode (0644 for new files)

    Raises:
        FileError: If the write fails
    """
    try:
        context.write_file(path, content, mode=mode)
    except OSError as e:
        raise FileError(f"Cannot write {path}: {e}")


def update_file(path: str, content: str, context: "Context", mode: int | None = None) -> str:
    """
    Back up a file, then replace its content.

    Returns:
        Path of the backup
    """
    backup = backup_file(path, context)
    replace_file(path, content, context, mode=mode)
    return backup
