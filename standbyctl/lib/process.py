"""Process utilities."""

import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from standbyctl.core.context import Context


class CommandError(Exception):
    """Error running a command."""

    pass


def run_command(
    cmd: list[str],
    context: "Context | None" = None,
    check: bool = False,
) -> str:
    """
    Run a command and return its output.

    Args:
        cmd: Command and arguments
        context: Execution context (for testing)
        check: Raise on non-zero exit

    Returns:
        Command stdout

    Raises:
        CommandError: If the command cannot be run, or check=True and it fails
    """
    if context is None:
        from standbyctl.core.context import Context
        context = Context()

    try:
        result = context.run(cmd, check=check)
    except (OSError, subprocess.SubprocessError) as e:
        raise CommandError(f"Command failed: {' '.join(cmd)}: {e}") from e
    return result.stdout


def check_tool(
    name: str,
    context: "Context | None" = None,
    required: bool = False,
) -> bool:
    """
    Check if a tool exists in PATH.

    Args:
        name: Tool name to check
        context: Execution context (for testing)
        required: Raise if tool is missing

    Returns:
        True if tool exists

    Raises:
        CommandError: If required=True and tool is missing
    """
    if context is None:
        from standbyctl.core.context import Context
        context = Context()

    exists = context.check_tool(name)

    if required and not exists:
        raise CommandError(f"Required tool not found: {name}")

    return exists


def run_best_effort(cmd: list[str], context: "Context", logger=None) -> bool:
    """
    Run a command whose failure must not abort the caller.

    Returns:
        True if the command ran and exited 0
    """
    try:
        context.run(cmd, check=True)
    except (OSError, subprocess.SubprocessError) as e:
        if logger is not None:
            logger.warning("Best-effort command failed", cmd=cmd, error=str(e))
        return False
    return True
