"""Best-effort LVM cache refresh and Proxmox service restarts."""

from typing import Any

from standbyctl.core.context import Context
from standbyctl.lib.process import run_best_effort


def _run_all(commands: list[list[str]], context: Context, logger) -> list[dict[str, Any]]:
    results = []
    for cmd in commands:
        ok = run_best_effort(cmd, context, logger)
        results.append({"command": " ".join(cmd), "ok": ok})
    return results


def refresh_lvm_caches(commands: list[list[str]], context: Context, logger=None) -> list[dict[str, Any]]:
    """Run the configured cache refresh commands (pvscan/vgscan --cache)."""
    return _run_all(commands, context, logger)


def restart_services(services: list[str], context: Context, logger=None) -> list[dict[str, Any]]:
    """systemctl restart each service; failures are reported, never raised."""
    return _run_all([["systemctl", "restart", name] for name in services], context, logger)
