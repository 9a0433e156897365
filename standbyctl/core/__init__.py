"""Core standbyctl functionality."""

from standbyctl.core.config import ConfigError, Settings, load_settings
from standbyctl.core.context import Context
from standbyctl.core.logging import NullLogger, RunLogger, query_logs
from standbyctl.core.output import Output

__all__ = [
    "ConfigError",
    "Context",
    "NullLogger",
    "Output",
    "RunLogger",
    "Settings",
    "load_settings",
    "query_logs",
]
