"""Command-line interface for standbyctl."""

import argparse
import sys
from datetime import date
from pathlib import Path

from standbyctl import __version__
from standbyctl.core import ConfigError, Context, NullLogger, Output, RunLogger, load_settings, query_logs
from standbyctl.core.logging import get_log_path
from standbyctl.disks import list_disks_with_paths
from standbyctl.lib import CommandError, FileError, check_tool, file_exists, read_file
from standbyctl.lvm import FilterBlockError, apply_update, read_entries
from standbyctl.selection import SelectionError, choose_disks, missing_paths
from standbyctl.services import refresh_lvm_caches, restart_services
from standbyctl.smartpatch import PatchError, apply_patch, install_hook, remove_hook


class PreconditionError(Exception):
    """The host is not in a state the command can run in."""

    pass


# Errors a command reports and exits 1 on
HANDLED_ERRORS = (
    PreconditionError,
    CommandError,
    FileError,
    FilterBlockError,
    PatchError,
    SelectionError,
)

# Commands that read state only and leave no log behind
UNLOGGED_COMMANDS = {"doctor", "history"}

# (tool, required)
DOCTOR_TOOLS = [
    ("lsblk", True),
    ("systemctl", True),
    ("whiptail", False),
    ("pvscan", False),
    ("vgscan", False),
    ("smartctl", False),
]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="standbyctl",
        description="Keep idle Proxmox VE disks from being woken by LVM scans and SMART polling",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"standbyctl {__version__}",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        default="plain",
        help="Output format (default: plain)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra YAML config file, applied after /etc and ~/.config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("disks", help="List disks with their stable by-id paths")

    subparsers.add_parser("show", help="Show the current LVM global_filter")

    exclude_parser = subparsers.add_parser("exclude", help="Exclude disks from LVM scans")
    exclude_parser.add_argument(
        "paths",
        nargs="*",
        help="Device paths to exclude (default: choose interactively)",
    )
    exclude_parser.add_argument(
        "--manual",
        action="store_true",
        help="Type paths instead of using the whiptail checklist",
    )
    exclude_parser.add_argument(
        "--no-restart",
        action="store_true",
        help="Skip LVM cache refresh and service restarts",
    )

    patch_parser = subparsers.add_parser(
        "smart-patch",
        help="Make PVE SMART queries skip sleeping disks (smartctl -n standby)",
    )
    patch_parser.add_argument(
        "--remove",
        action="store_true",
        help="Remove the APT re-apply hook (the module patch stays)",
    )
    patch_parser.add_argument(
        "--check",
        action="store_true",
        help="Report whether the module is patched without changing it",
    )
    patch_parser.add_argument(
        "--no-hook",
        action="store_true",
        help="Do not install the APT hook",
    )
    patch_parser.add_argument(
        "--no-restart",
        action="store_true",
        help="Do not restart PVE services after patching",
    )

    subparsers.add_parser("doctor", help="Check tool availability and target files")

    history_parser = subparsers.add_parser("history", help="Show logged changes and backups")
    history_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Day to show, YYYY-MM-DD (default: today)",
    )
    history_parser.add_argument(
        "--only",
        choices=["disks", "show", "exclude", "smart-patch"],
        help="Only entries of this command",
    )
    history_parser.add_argument(
        "--level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Minimum level (default: info)",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        help="Show only the most recent N entries",
    )

    return parser


def require_root(context: Context) -> None:
    if not context.is_root():
        raise PreconditionError("Please run as root.")


def require_file(path: str, context: Context) -> None:
    if not file_exists(path, context=context):
        raise FileError(f"Missing {path}")


def _report_best_effort(results: list[dict], output: Output) -> None:
    for result in results:
        if not result["ok"]:
            output.warning(f"'{result['command']}' failed (ignored)")


def cmd_disks(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """List disks."""
    check_tool("lsblk", context=context, required=True)
    disks = list_disks_with_paths(context, args.settings.by_id_dir)

    if not disks:
        output.warning("No disks found via lsblk.")

    output.emit({"disks": [d.to_dict() for d in disks]})
    output.set_summary(f"{len(disks)} disk(s), {sum(d.rotational for d in disks)} rotational")
    logger.debug("Listed disks", disks=[d.to_dict() for d in disks])
    return 0


def cmd_show(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """Show the current global_filter."""
    path = args.settings.lvm_conf
    require_file(path, context)

    entries = read_entries(read_file(path, context=context))

    output.emit({"lvm_conf": path, "global_filter": [r.render() for r in entries]})
    output.set_summary(f"{len(entries)} global_filter entr{'y' if len(entries) == 1 else 'ies'}")
    return 0


def cmd_exclude(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """Select disks and reject them in lvm.conf."""
    settings = args.settings
    require_root(context)
    require_file(settings.lvm_conf, context)

    if args.paths:
        selections = list(dict.fromkeys(args.paths))
    else:
        check_tool("lsblk", context=context, required=True)
        disks = list_disks_with_paths(context, settings.by_id_dir)
        selections = choose_disks(disks, context, manual=args.manual)

    for path in missing_paths(selections, context):
        output.warning(f"{path} does not exist on this host; excluding it anyway")

    output.info("Will exclude these from LVM scans: " + ", ".join(selections))
    logger.info("Selected disks", selections=selections)

    result = apply_update(settings.lvm_conf, selections, context, logger)

    output.info(f"Backup created: {result.backup}")
    if result.inserted:
        output.info(f"No global_filter found in devices {{ }} of {result.path}; inserted a new one")
    for rule in result.suspicious:
        output.warning(f"Preserved rule looks malformed, kept as is: {rule.render()}")

    if not args.no_restart:
        output.info("Refreshing LVM caches and restarting " + ", ".join(settings.services))
        _report_best_effort(refresh_lvm_caches(settings.cache_refresh, context, logger), output)
        _report_best_effort(restart_services(settings.services, context, logger), output)

    output.emit({
        "lvm_conf": result.path,
        "backup": result.backup,
        "excluded": selections,
        "previous_global_filter": [r.render() for r in result.previous],
        "global_filter": [r.render() for r in result.entries],
    })
    output.set_summary(f"Excluded {len(selections)} disk(s) from LVM scans")
    return 0


def cmd_smart_patch(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """Patch PVE::Diskmanage to pass -n standby to smartctl."""
    settings = args.settings

    if args.remove:
        require_root(context)
        removed = remove_hook(settings.apt_hook, context, logger)
        output.emit({"apt_hook": settings.apt_hook, "removed": removed})
        output.set_summary(
            "APT hook removed; the module patch stays until the package is reinstalled"
            if removed
            else "No APT hook installed"
        )
        return 0

    if not args.check:
        require_root(context)
    require_file(settings.diskmanage_module, context)

    result = apply_patch(settings.diskmanage_module, context, logger, dry_run=args.check)

    if args.check:
        output.emit({
            "module": settings.diskmanage_module,
            "patched": not result.changed,
            "apt_hook": file_exists(settings.apt_hook, context=context),
        })
        output.set_summary("Module needs patching" if result.changed else "Module already patched")
        return 1 if result.changed else 0

    data = {"module": settings.diskmanage_module, "status": result.status}
    if result.backup:
        output.info(f"Backup created: {result.backup}")
        data["backup"] = result.backup

    if not args.no_hook:
        data["apt_hook_installed"] = install_hook(settings.apt_hook, context, logger)
        data["apt_hook"] = settings.apt_hook

    if result.changed and not args.no_restart:
        output.info("Restarting " + ", ".join(settings.services))
        _report_best_effort(restart_services(settings.services, context, logger), output)

    output.emit(data)
    output.set_summary(f"smartctl standby patch {result.status}")
    return 0


def cmd_doctor(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """Check tool availability and target files."""
    settings = args.settings

    tools = {name: context.check_tool(name) for name, _ in DOCTOR_TOOLS}
    missing_required = [name for name, required in DOCTOR_TOOLS if required and not tools[name]]
    missing_optional = [name for name, required in DOCTOR_TOOLS if not required and not tools[name]]

    files = {
        path: file_exists(path, context=context)
        for path in (settings.lvm_conf, settings.diskmanage_module, settings.apt_hook)
    }

    for name in missing_optional:
        output.warning(f"Optional tool missing: {name}")
    for name in missing_required:
        output.error(f"Required tool missing: {name}")

    output.emit({"root": context.is_root(), "tools": tools, "files": files})
    output.set_summary(
        f"{len(missing_required)} required tool(s) missing" if missing_required else "All required tools available"
    )
    return 1 if missing_required else 0


def cmd_history(args: argparse.Namespace, output: Output, context: Context, logger) -> int:
    """Show logged runs."""
    entries = query_logs(
        Path(args.settings.log_dir),
        command=args.only,
        log_date=args.date,
        min_level=args.level,
        limit=args.limit,
    )

    rows = []
    for entry in entries:
        row = {
            "timestamp": entry.get("timestamp"),
            "level": entry.get("level"),
            "command": entry.get("command"),
            "message": entry.get("message"),
        }
        if entry.get("backup"):
            row["backup"] = entry["backup"]
        rows.append(row)

    output.emit({"entries": rows})
    output.set_summary(f"{len(rows)} log entr{'y' if len(rows) == 1 else 'ies'}")
    return 0


COMMANDS = {
    "disks": cmd_disks,
    "show": cmd_show,
    "exclude": cmd_exclude,
    "smart-patch": cmd_smart_patch,
    "doctor": cmd_doctor,
    "history": cmd_history,
}


def main(argv: list[str] | None = None, context: Context | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    context = context or Context()
    output = Output()

    try:
        args.settings = load_settings(args.config)
    except ConfigError as e:
        output.error(str(e))
        output.render(args.format)
        return 1

    if args.command in UNLOGGED_COMMANDS:
        logger = NullLogger()
    else:
        logger = RunLogger(args.command, log_path=get_log_path(args.command, Path(args.settings.log_dir)))

    try:
        code = COMMANDS[args.command](args, output, context, logger)
    except HANDLED_ERRORS as e:
        output.error(str(e))
        logger.error(str(e), error=type(e).__name__)
        code = 1
    finally:
        logger.close()

    output.render(args.format)
    return code


if __name__ == "__main__":
    sys.exit(main())
