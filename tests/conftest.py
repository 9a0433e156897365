"""Shared test fixtures."""

import subprocess
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path so tests run without installing
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class MockContext:
    """Mock Context for testing without real system access.

    Files live in a dict that writes, copies and removals update, so tests
    can inspect what a command left behind.
    """

    def __init__(
        self,
        tools_available: list[str] | None = None,
        command_outputs: dict[tuple, str | Exception | subprocess.CompletedProcess] | None = None,
        file_contents: dict[str, str] | None = None,
        symlinks: dict[str, str] | None = None,
        root: bool = True,
        prompt_answers: list[str] | None = None,
        dialog_result: subprocess.CompletedProcess | None = None,
        now: datetime | None = None,
    ):
        self.tools_available = set(tools_available or [])
        self.command_outputs = command_outputs or {}
        self.file_contents = dict(file_contents or {})
        self.symlinks = symlinks or {}
        self.root = root
        self.prompt_answers = list(prompt_answers or [])
        self.dialog_result = dialog_result
        self.current_time = now or datetime(2025, 1, 2, 3, 4, 5)
        self.commands_run: list[list[str]] = []
        self.dialogs_run: list[list[str]] = []
        self.prompts: list[str] = []
        self.writes: list[str] = []
        self.modes: dict[str, int] = {}

    def check_tool(self, name: str) -> bool:
        """Check if tool is in mocked available list."""
        return name in self.tools_available

    def run(
        self,
        cmd: list[str],
        check: bool = False,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Return mocked command output."""
        self.commands_run.append(cmd)
        key = tuple(cmd)
        if key not in self.command_outputs:
            raise KeyError(f"No mock output for command: {cmd}")

        output = self.command_outputs[key]
        if isinstance(output, Exception):
            raise output
        if isinstance(output, subprocess.CompletedProcess):
            if check and output.returncode != 0:
                raise subprocess.CalledProcessError(output.returncode, cmd, output.stdout, output.stderr)
            return output

        return subprocess.CompletedProcess(
            cmd,
            returncode=0,
            stdout=output,
            stderr="",
        )

    def run_dialog(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """Return the mocked dialog result."""
        self.dialogs_run.append(cmd)
        if self.dialog_result is None:
            raise KeyError(f"No mock dialog result for: {cmd[0]}")
        return self.dialog_result

    def prompt(self, message: str) -> str:
        """Pop the next mocked answer; EOF when none are left."""
        self.prompts.append(message)
        if not self.prompt_answers:
            raise EOFError
        return self.prompt_answers.pop(0)

    def read_file(self, path: str) -> str:
        """Return mocked file content."""
        if path not in self.file_contents:
            raise FileNotFoundError(f"No mock content for: {path}")
        return self.file_contents[path]

    def write_file(self, path: str, content: str, mode: int | None = None) -> None:
        """Store content in the mocked filesystem."""
        self.file_contents[path] = content
        self.modes[path] = mode if mode is not None else self.modes.get(path, 0o644)
        self.writes.append(path)

    def copy_file(self, src: str, dst: str) -> None:
        """Copy within the mocked filesystem."""
        self.file_contents[dst] = self.read_file(src)
        if src in self.modes:
            self.modes[dst] = self.modes[src]

    def remove_file(self, path: str) -> None:
        """Delete from the mocked filesystem."""
        if path not in self.file_contents:
            raise FileNotFoundError(path)
        del self.file_contents[path]

    def file_exists(self, path: str) -> bool:
        """Check if path is a mocked file or symlink."""
        return path in self.file_contents or path in self.symlinks

    def listdir(self, path: str) -> list[str]:
        """Names of mocked symlinks directly under path."""
        prefix = path.rstrip("/") + "/"
        names = [p[len(prefix):] for p in self.symlinks if p.startswith(prefix)]
        if not names:
            raise FileNotFoundError(path)
        return sorted(names)

    def realpath(self, path: str) -> str:
        """Resolve through the mocked symlinks."""
        return self.symlinks.get(path, path)

    def is_root(self) -> bool:
        return self.root

    def now(self) -> datetime:
        return self.current_time


@pytest.fixture
def mock_context():
    """Factory fixture for creating MockContext instances."""
    def _create(**kwargs) -> MockContext:
        return MockContext(**kwargs)
    return _create


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep tests away from the real /etc, ~/.config and log directory."""
    sandbox = tmp_path_factory.mktemp("isolated")
    home = sandbox / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr("standbyctl.core.config.SYSTEM_CONFIG", sandbox / "etc" / "config.yaml")
    return home


def load_fixture(category: str, name: str) -> str:
    """Load a fixture file by category and name."""
    fixture_path = FIXTURES_DIR / category / name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text()
