"""Execution context for testability."""

import os
import shutil
import subprocess
import sys
import tempfile
from datetime import datetime
from pathlib import Path


class Context:
    """
    Wraps external calls for testability.

    In production: executes real commands and touches real files
    In tests: can be replaced with MockContext
    """

    def check_tool(self, name: str) -> bool:
        """Check if a tool exists in PATH."""
        return shutil.which(name) is not None

    def run(
        self,
        cmd: list[str],
        check: bool = False,
        timeout: int | None = 60,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and return result.

        Args:
            cmd: Command and arguments as list
            check: Raise on non-zero exit code
            timeout: Timeout in seconds
            **kwargs: Additional subprocess.run arguments

        Returns:
            CompletedProcess with stdout, stderr, returncode
        """
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=check,
            timeout=timeout,
            **kwargs,
        )

    def run_dialog(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """
        Run an interactive dialog program.

        stdout stays attached to the terminal so the dialog can draw itself;
        the selection is read back from stderr.
        """
        return subprocess.run(cmd, stderr=subprocess.PIPE, text=True, check=False)

    def prompt(self, message: str) -> str:
        """Read one line from the operator; the prompt goes to stderr."""
        sys.stderr.write(message)
        sys.stderr.flush()
        return input()

    def read_file(self, path: str) -> str:
        """Read file contents."""
        return Path(path).read_text()

    def write_file(self, path: str, content: str, mode: int | None = None) -> None:
        """
        Replace a file's contents.

        Writes a temporary file next to the target and renames it over the
        original, so readers see either the old or the new content. With no
        mode, an existing file keeps its permission bits and a new one gets 0644.
        """
        target = Path(path)
        if mode is None:
            try:
                mode = target.stat().st_mode & 0o7777
            except FileNotFoundError:
                mode = 0o644
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.chmod(tmp, mode)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def copy_file(self, src: str, dst: str) -> None:
        """Copy a file preserving mode and timestamps."""
        shutil.copy2(src, dst)

    def remove_file(self, path: str) -> None:
        """Delete a file."""
        Path(path).unlink()

    def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        return Path(path).exists()

    def listdir(self, path: str) -> list[str]:
        """List directory entries, sorted by name."""
        return sorted(os.listdir(path))

    def realpath(self, path: str) -> str:
        """Resolve symlinks."""
        return os.path.realpath(path)

    def is_root(self) -> bool:
        """True when running with uid 0."""
        return os.geteuid() == 0

    def now(self) -> datetime:
        """Current local time."""
        return datetime.now()
