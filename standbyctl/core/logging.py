"""JSONL logging for command runs."""

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any


# Log level ordering
LOG_LEVELS = {"debug": 0, "info": 1, "warning": 2, "error": 3}


def default_log_dir() -> Path:
    """~/var/log/standbyctl, falling back to /tmp when HOME is unset."""
    home = Path(os.environ.get("HOME", "/tmp"))
    return home / "var" / "log" / "standbyctl"


def get_log_path(command: str, base_path: Path | None = None) -> Path:
    """
    Get the log file path for a command.

    Args:
        command: Subcommand name (e.g. "exclude")
        base_path: Base directory for logs (default: ~/var/log/standbyctl)

    Returns:
        Path to the log file: {base}/{date}/{command}.jsonl
    """
    if base_path is None:
        base_path = default_log_dir()

    today = date.today().isoformat()
    return base_path / today / f"{command}.jsonl"


class RunLogger:
    """
    JSONL logger for one command run.

    Every entry carries a run id so entries from the same invocation can be
    grouped when read back.
    """

    def __init__(self, command: str, log_path: Path | None = None):
        self.command = command
        self.log_path = log_path or get_log_path(command)
        self.run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        self._file = None

    def _ensure_file(self) -> None:
        if self._file is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a")

    def _log(self, level: str, message: str, **extra: Any) -> None:
        self._ensure_file()
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "command": self.command,
            "run": self.run_id,
            "message": message,
            **extra,
        }
        self._file.write(json.dumps(entry, default=str) + "\n")
        self._file.flush()

    def debug(self, message: str, **extra: Any) -> None:
        self._log("debug", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log("info", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log("warning", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log("error", message, **extra)

    def close(self) -> None:
        """Close the log file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class NullLogger:
    """Logger that discards everything; used when no log is wanted."""

    def debug(self, message: str, **extra: Any) -> None:
        pass

    info = warning = error = debug

    def close(self) -> None:
        pass


def query_logs(
    base_path: Path,
    command: str | None = None,
    log_date: date | None = None,
    min_level: str = "debug",
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """
    Query log entries.

    Args:
        base_path: Base directory for logs
        command: Command to query (default: every command logged that day)
        log_date: Date to query (default: today)
        min_level: Minimum log level to include
        limit: Maximum number of entries to return (most recent kept)

    Returns:
        List of log entries matching criteria, oldest first
    """
    if log_date is None:
        log_date = date.today()

    day_dir = base_path / log_date.isoformat()
    if command is not None:
        log_files = [day_dir / f"{command}.jsonl"]
    elif day_dir.is_dir():
        log_files = sorted(day_dir.glob("*.jsonl"))
    else:
        log_files = []

    min_level_num = LOG_LEVELS.get(min_level, 0)
    results = []

    for log_file in log_files:
        if not log_file.exists():
            continue
        with open(log_file) as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                entry_level = LOG_LEVELS.get(entry.get("level", "debug"), 0)
                if entry_level >= min_level_num:
                    results.append(entry)

    results.sort(key=lambda e: e.get("timestamp", ""))
    if limit:
        results = results[-limit:]
    return results
