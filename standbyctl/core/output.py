"""Structured output helper for commands."""

import json
from typing import Any


class Output:
    """Collects command results and renders them once at the end."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.messages: list[str] = []
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self._summary: str | None = None
        self._printed: bool = False

    def emit(self, data: dict[str, Any]) -> None:
        """Store structured output data."""
        self.data.update(data)

    def info(self, message: str) -> None:
        """Record a progress message."""
        self.messages.append(message)

    def error(self, message: str) -> None:
        """Record an error message."""
        self.errors.append(message)

    def warning(self, message: str) -> None:
        """Record a warning message."""
        self.warnings.append(message)

    def set_summary(self, summary: str) -> None:
        """Set a one-line summary."""
        self._summary = summary

    @property
    def summary(self) -> str:
        """Get summary or generate from errors and warnings."""
        if self._summary:
            return self._summary
        if self.errors:
            return f"Error: {self.errors[0]}"
        if self.warnings:
            return f"Warning: {self.warnings[0]}"
        return "ok"

    def to_json(self) -> str:
        """Return data, messages and problems as a JSON string."""
        doc = dict(self.data)
        doc["summary"] = self.summary
        if self.errors:
            doc["errors"] = self.errors
        if self.warnings:
            doc["warnings"] = self.warnings
        return json.dumps(doc, indent=2, default=str)

    def to_plain(self) -> str:
        """Return everything as operator-facing text."""
        lines = [f"[*] {message}" for message in self.messages]
        for key, value in self.data.items():
            self._render_value(lines, key, value, indent=0)
        for warning in self.warnings:
            lines.append(f"[!] {warning}")
        for error in self.errors:
            lines.append(f"[ERROR] {error}")
        if self._summary:
            marker = "[ERROR]" if self.errors else "[OK]"
            lines.append(f"{marker} {self._summary}")
        return "\n".join(lines)

    def render(self, format: str = "plain") -> None:
        """Print output in the specified format.

        Args:
            format: Output format - "json" or "plain"
        """
        if self._printed:
            return
        self._printed = True

        if format == "json":
            print(self.to_json())
        else:
            text = self.to_plain()
            if text:
                print(text)

    def _render_value(self, lines: list, key: str | int, value: Any, indent: int = 0) -> None:
        """Recursively render a value with proper formatting."""
        prefix = "  " * indent
        display_key = str(key).replace("_", " ").capitalize()

        if isinstance(value, dict):
            lines.append(f"{prefix}{display_key}:")
            for k, v in value.items():
                self._render_value(lines, k, v, indent + 1)
        elif isinstance(value, list):
            if not value:
                lines.append(f"{prefix}{display_key}: (none)")
                return
            lines.append(f"{prefix}{display_key}:")
            for item in value:
                if isinstance(item, dict):
                    summary = "  ".join(str(v) for v in item.values() if v not in (None, ""))
                    lines.append(f"{prefix}  - {summary}")
                else:
                    lines.append(f"{prefix}  - {item}")
        elif isinstance(value, bool):
            lines.append(f"{prefix}{display_key}: {'yes' if value else 'no'}")
        elif value is None:
            lines.append(f"{prefix}{display_key}: (none)")
        else:
            lines.append(f"{prefix}{display_key}: {value}")
